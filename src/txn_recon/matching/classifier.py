"""
Discrepancy classification for matched transaction pairs.
Computes per-field differences and assigns a match severity.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ..models.transaction import (
    AmountDiscrepancy,
    Discrepancies,
    MatchType,
    TimestampDiscrepancy,
    Transaction,
    ValueDiscrepancy,
)

DEFAULT_TIMESTAMP_TOLERANCE_MINUTES = 5.0
DEFAULT_MAJOR_AMOUNT_PERCENTAGE = Decimal("5")


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DiscrepancyClassifier:
    """
    Compares an internal and a provider transaction field by field.

    Severity precedence: a status or currency difference, or an amount
    difference above ``major_amount_percentage``, is MAJOR; any other
    difference is MINOR; no difference is PERFECT.
    """

    def __init__(
        self,
        timestamp_tolerance_minutes: float = DEFAULT_TIMESTAMP_TOLERANCE_MINUTES,
        major_amount_percentage: Decimal = DEFAULT_MAJOR_AMOUNT_PERCENTAGE,
    ):
        self.timestamp_tolerance_minutes = timestamp_tolerance_minutes
        self.major_amount_percentage = Decimal(str(major_amount_percentage))

    def classify(
        self, internal: Transaction, provider: Transaction
    ) -> tuple[Discrepancies, MatchType]:
        """
        Compute discrepancies and match type for one pair.

        Args:
            internal: Transaction from the internal export
            provider: Transaction from the provider statement

        Returns:
            Tuple of (discrepancies, match_type)
        """
        discrepancies = Discrepancies(
            amount=self._compare_amount(internal, provider),
            status=self._compare_text(internal.status, provider.status),
            currency=self._compare_text(internal.currency, provider.currency),
            timestamp=self._compare_timestamp(internal, provider),
        )
        return discrepancies, self.match_type_for(discrepancies)

    def match_type_for(self, discrepancies: Discrepancies) -> MatchType:
        """Apply the severity precedence rules to a discrepancy set."""
        if discrepancies.status is not None or discrepancies.currency is not None:
            return MatchType.MAJOR

        amount = discrepancies.amount
        if amount is not None and amount.percentage > self.major_amount_percentage:
            return MatchType.MAJOR

        if discrepancies.has_any:
            return MatchType.MINOR

        return MatchType.PERFECT

    def _compare_amount(
        self, internal: Transaction, provider: Transaction
    ) -> Optional[AmountDiscrepancy]:
        internal_amount = internal.numeric_amount
        provider_amount = provider.numeric_amount

        if internal_amount == provider_amount:
            return None

        difference = abs(internal_amount - provider_amount)
        # Against the larger magnitude, so a zero on one side never divides
        base = max(abs(internal_amount), abs(provider_amount))
        percentage = difference / base * 100

        return AmountDiscrepancy(
            internal=internal_amount,
            provider=provider_amount,
            difference=difference,
            percentage=percentage,
        )

    @staticmethod
    def _compare_text(internal_value: str, provider_value: str) -> Optional[ValueDiscrepancy]:
        internal_value = "" if internal_value is None else str(internal_value)
        provider_value = "" if provider_value is None else str(provider_value)
        if internal_value == provider_value:
            return None
        return ValueDiscrepancy(internal=internal_value, provider=provider_value)

    def _compare_timestamp(
        self, internal: Transaction, provider: Transaction
    ) -> Optional[TimestampDiscrepancy]:
        if internal.timestamp is None or provider.timestamp is None:
            return None

        delta = _as_utc(internal.timestamp) - _as_utc(provider.timestamp)
        difference_minutes = abs(delta.total_seconds()) / 60

        if difference_minutes <= self.timestamp_tolerance_minutes:
            return None

        return TimestampDiscrepancy(
            internal=internal.timestamp,
            provider=provider.timestamp,
            difference_minutes=difference_minutes,
        )
