"""
CSV export of reconciliation results.
Row builders flatten result buckets into one dict per exported row.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Sequence
import logging

import pandas as pd

from ..models.transaction import (
    DuplicateGroup,
    MatchedTransaction,
    MatchType,
    ReconciliationResult,
    Transaction,
    TransactionSide,
)
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

MATCH_RISK_LEVELS = {
    MatchType.MAJOR: "HIGH",
    MatchType.MINOR: "MEDIUM",
    MatchType.PERFECT: "LOW",
}


def _amount(value: Any) -> Any:
    """Numeric amounts export as floats, anything else as text."""
    if isinstance(value, Decimal):
        return float(value)
    return value if value is not None else 0


def _timestamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _transaction_fields(txn: Transaction) -> dict[str, Any]:
    return {
        "transaction_reference": txn.reference,
        "amount": _amount(txn.amount),
        "currency": txn.currency,
        "status": txn.status,
        "timestamp": _timestamp(txn.timestamp),
        "description": txn.description or "",
        "counterparty_id": txn.counterparty_id or "",
    }


def _issues(match: MatchedTransaction) -> list[str]:
    discrepancies = match.discrepancies
    issues: list[str] = []

    if discrepancies.amount:
        issues.append(f"Amount differs by {discrepancies.amount.percentage:.1f}%")
    if discrepancies.status:
        issues.append(
            f"Status mismatch: {discrepancies.status.internal} vs {discrepancies.status.provider}"
        )
    if discrepancies.currency:
        issues.append(
            f"Currency mismatch: {discrepancies.currency.internal} vs "
            f"{discrepancies.currency.provider}"
        )
    if discrepancies.timestamp:
        issues.append(f"Time difference: {discrepancies.timestamp.difference_minutes:.0f} minutes")

    return issues


def format_perfect_matches(matched: Sequence[MatchedTransaction]) -> list[dict[str, Any]]:
    """One row per perfect match, using the internal record's values."""
    return [
        {
            **_transaction_fields(match.internal),
            "match_status": "PERFECT_MATCH",
            "notes": "No discrepancies found",
        }
        for match in matched
        if match.is_perfect
    ]


def format_discrepancies_summary(matched: Sequence[MatchedTransaction]) -> list[dict[str, Any]]:
    """Key issues of each non-perfect match."""
    rows: list[dict[str, Any]] = []
    for match in matched:
        if match.is_perfect:
            continue
        issues = _issues(match)
        rows.append(
            {
                "transaction_reference": match.internal.reference,
                "internal_amount": _amount(match.internal.amount),
                "provider_amount": _amount(match.provider.amount),
                "internal_status": match.internal.status,
                "provider_status": match.provider.status,
                "issue_type": match.match_type.value.upper(),
                "issues_found": " | ".join(issues) or "Minor discrepancies",
                "priority": "HIGH" if len(issues) > 1 else "MEDIUM",
                "action_required": "YES" if len(issues) > 1 else "MONITOR",
            }
        )
    return rows


def format_discrepancies_detailed(matched: Sequence[MatchedTransaction]) -> list[dict[str, Any]]:
    """Field-by-field analysis of each non-perfect match."""
    rows: list[dict[str, Any]] = []
    for match in matched:
        if match.is_perfect:
            continue
        internal, provider = match.internal, match.provider
        amount = match.discrepancies.amount
        timestamp = match.discrepancies.timestamp

        rows.append(
            {
                "transaction_reference": internal.reference,
                "internal_amount": _amount(internal.amount),
                "provider_amount": _amount(provider.amount),
                "amount_difference": float(amount.difference) if amount else 0.0,
                "amount_percentage_diff": float(amount.percentage) if amount else 0.0,
                "internal_status": internal.status,
                "provider_status": provider.status,
                "status_mismatch": "YES" if match.discrepancies.status else "NO",
                "internal_currency": internal.currency,
                "provider_currency": provider.currency,
                "currency_mismatch": "YES" if match.discrepancies.currency else "NO",
                "internal_timestamp": _timestamp(internal.timestamp),
                "provider_timestamp": _timestamp(provider.timestamp),
                "timestamp_diff_minutes": timestamp.difference_minutes if timestamp else 0.0,
                "match_type": match.match_type.value.upper(),
                "risk_level": MATCH_RISK_LEVELS[match.match_type],
                "financial_impact": (
                    f"{amount.difference:.2f} {internal.currency}" if amount else "0.00"
                ),
                "action_required": (
                    "IMMEDIATE" if match.match_type == MatchType.MAJOR else "MONITOR"
                ),
                "internal_description": internal.description or "",
                "provider_description": provider.description or "",
            }
        )
    return rows


def format_matched(matched: Sequence[MatchedTransaction]) -> list[dict[str, Any]]:
    """One row per matched pair of any severity."""
    rows: list[dict[str, Any]] = []
    for match in matched:
        internal, provider = match.internal, match.provider
        amount = match.discrepancies.amount
        fields = match.discrepancies.fields

        rows.append(
            {
                "transaction_reference": internal.reference,
                "internal_amount": _amount(internal.amount),
                "provider_amount": _amount(provider.amount),
                "amount_difference": float(amount.difference) if amount else 0.0,
                "internal_status": internal.status,
                "provider_status": provider.status,
                "internal_currency": internal.currency,
                "provider_currency": provider.currency,
                "internal_timestamp": _timestamp(internal.timestamp),
                "provider_timestamp": _timestamp(provider.timestamp),
                "match_type": match.match_type.value,
                "has_discrepancies": "Yes" if fields else "No",
                "discrepancy_types": ", ".join(fields) or "None",
                "internal_description": internal.description or "",
                "internal_counterparty_id": internal.counterparty_id or "",
                "provider_counterparty_id": provider.counterparty_id or "",
            }
        )
    return rows


def format_unmatched(
    transactions: Sequence[Transaction], side: TransactionSide
) -> list[dict[str, Any]]:
    """Rows for one-sided transactions, annotated with the likely cause."""
    if side == TransactionSide.INTERNAL:
        annotations = {
            "file_source": "Internal System",
            "issue_type": "Missing from Provider",
            "potential_reason": "Transaction not processed by provider or sync delay",
            "recommended_action": "Contact provider to verify transaction status",
        }
    else:
        annotations = {
            "file_source": "Provider Statement",
            "issue_type": "Extra in Provider",
            "potential_reason": "Unauthorized transaction or provider error",
            "recommended_action": "Investigate transaction origin and verify authorization",
        }

    return [
        {
            **_transaction_fields(txn),
            "file_source": annotations["file_source"],
            "issue_type": annotations["issue_type"],
            "priority": "HIGH",
            "action_required": "YES",
            "potential_reason": annotations["potential_reason"],
            "recommended_action": annotations["recommended_action"],
        }
        for txn in transactions
    ]


def format_all_discrepancies(result: ReconciliationResult) -> list[dict[str, Any]]:
    """Non-perfect matches followed by internal-only and provider-only rows."""
    return (
        format_matched(result.matches_with_discrepancies)
        + format_unmatched(result.internal_only, TransactionSide.INTERNAL)
        + format_unmatched(result.provider_only, TransactionSide.PROVIDER)
    )


def format_duplicates(
    groups: Sequence[DuplicateGroup], as_of: Optional[date] = None
) -> list[dict[str, Any]]:
    """One row per member of each duplicate group."""
    detection_date = (as_of or date.today()).isoformat()
    rows: list[dict[str, Any]] = []

    for group in groups:
        for index, txn in enumerate(group.transactions, start=1):
            rows.append(
                {
                    "transaction_reference": txn.reference,
                    "duplicate_instance": f"{index} of {group.count}",
                    "total_duplicates": group.count,
                    "amount": _amount(txn.amount),
                    "currency": txn.currency,
                    "status": txn.status,
                    "timestamp": _timestamp(txn.timestamp),
                    "description": txn.description or "",
                    "group_total_amount": float(group.total_amount),
                    "risk_level": group.risk_level.value,
                    "data_consistency": "CONSISTENT" if group.consistent else "INCONSISTENT",
                    "action_required": "YES",
                    "recommended_action": group.recommended_action,
                    "potential_overcharge": float(group.potential_overcharge),
                    "detection_date": detection_date,
                }
            )
    return rows


def generate_export_filename(category: str, now: Optional[datetime] = None) -> str:
    """Build a timestamped CSV filename for an export category."""
    now = now or datetime.now()
    return f"reconciliation_{category}_{now:%Y-%m-%d}_{now:%H-%M-%S}.csv"


def write_csv(
    rows: list[dict[str, Any]],
    output_path: Path,
    delimiter: str = ",",
    encoding: str = "utf-8",
) -> Path:
    """
    Write export rows to a CSV file.

    Raises:
        ReportGenerationError: If the file cannot be written
    """
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(rows).to_csv(output_path, index=False, sep=delimiter, encoding=encoding)
    except OSError as e:
        raise ReportGenerationError(f"Failed to write CSV export {output_path}: {e}") from e

    logger.debug(f"Wrote {len(rows)} rows to {output_path}")
    return output_path


def export_all(
    result: ReconciliationResult,
    output_dir: Path,
    now: Optional[datetime] = None,
    delimiter: str = ",",
    encoding: str = "utf-8",
) -> dict[str, Path]:
    """
    Write every export category of a result to ``output_dir``.

    Returns:
        Mapping of category name to written file path
    """
    now = now or datetime.now()
    duplicate_groups = (
        result.duplicates.internal_only.duplicate_groups
        + result.duplicates.provider_only.duplicate_groups
        + result.duplicates.matched.duplicate_groups
    )

    categories = {
        "perfect_matches": format_perfect_matches(result.perfect_matches),
        "matched": format_matched(result.matched),
        "discrepancies_summary": format_discrepancies_summary(result.matched),
        "discrepancies_detailed": format_discrepancies_detailed(result.matched),
        "internal_only": format_unmatched(result.internal_only, TransactionSide.INTERNAL),
        "provider_only": format_unmatched(result.provider_only, TransactionSide.PROVIDER),
        "all_discrepancies": format_all_discrepancies(result),
        "duplicates": format_duplicates(duplicate_groups, as_of=now.date()),
    }

    written: dict[str, Path] = {}
    for category, rows in categories.items():
        path = output_dir / generate_export_filename(category, now)
        written[category] = write_csv(rows, path, delimiter=delimiter, encoding=encoding)

    logger.info(f"Exported {len(written)} CSV files to {output_dir}")
    return written
