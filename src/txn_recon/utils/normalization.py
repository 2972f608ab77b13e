"""Reference and amount normalization shared by matching and grouping."""

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def normalize_reference(raw: Any) -> str:
    """
    Canonicalize a transaction reference for use as a matching key.

    Surrounding whitespace is trimmed and letters are upper-cased. ``None``
    and blank input yield ``""``, which callers treat as "exclude from
    matching and duplicate grouping".
    """
    if raw is None:
        return ""
    return str(raw).strip().upper()


def coerce_amount(value: Any) -> Decimal:
    """
    Convert an amount to a finite Decimal, falling back to zero.

    Used for every arithmetic step (totals, percentages, consistency checks)
    so that a malformed amount never aborts a reconciliation run.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO

    try:
        if isinstance(value, (int, float)):
            result = Decimal(str(value))
        else:
            text = str(value).strip()
            if not text:
                return ZERO
            result = Decimal(text)
    except (InvalidOperation, ValueError):
        return ZERO

    return result if result.is_finite() else ZERO
