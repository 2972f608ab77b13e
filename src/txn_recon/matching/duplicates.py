"""
Duplicate detection within a single transaction collection.
Groups records by normalized reference and rates each repeated group.
"""

from decimal import Decimal
from typing import Iterable
import logging

from ..models.transaction import (
    DuplicateAnalysis,
    DuplicateGroup,
    RiskLevel,
    Transaction,
)

logger = logging.getLogger(__name__)


def group_by_reference(
    transactions: Iterable[Transaction],
) -> dict[str, list[Transaction]]:
    """
    Group transactions by normalized reference, in first-seen order.

    Transactions whose reference normalizes to "" are left out.
    """
    groups: dict[str, list[Transaction]] = {}
    for txn in transactions:
        key = txn.normalized_reference
        if not key:
            continue
        groups.setdefault(key, []).append(txn)
    return groups


def _distinct(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


class DuplicateDetector:
    """Finds references that occur more than once in one collection."""

    def __init__(self, medium_risk_min_count: int = 3, high_risk_min_count: int = 4):
        """
        Args:
            medium_risk_min_count: Smallest group size rated MEDIUM
            high_risk_min_count: Smallest group size rated HIGH
        """
        self.medium_risk_min_count = medium_risk_min_count
        self.high_risk_min_count = high_risk_min_count

    def risk_level_for(self, count: int) -> RiskLevel:
        if count >= self.high_risk_min_count:
            return RiskLevel.HIGH
        if count >= self.medium_risk_min_count:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def detect(self, transactions: Iterable[Transaction]) -> DuplicateAnalysis:
        """
        Detect duplicate groups in a transaction collection.

        Args:
            transactions: One collection (never a mix of buckets)

        Returns:
            Duplicate analysis with groups in first-seen reference order
        """
        groups: list[DuplicateGroup] = []

        for reference, members in group_by_reference(transactions).items():
            if len(members) < 2:
                continue
            groups.append(self._build_group(reference, members))
            logger.debug(f"Duplicate reference {reference}: {len(members)} instances")

        total = sum(group.count for group in groups)
        if groups:
            logger.info(f"Found {len(groups)} duplicate groups covering {total} transactions")

        return DuplicateAnalysis(
            duplicate_groups=tuple(groups),
            total_duplicate_transaction_count=total,
        )

    def _build_group(self, reference: str, members: list[Transaction]) -> DuplicateGroup:
        first = members[0]
        first_amount = first.numeric_amount

        consistent = all(
            txn.numeric_amount == first_amount and txn.currency == first.currency
            for txn in members
        )

        return DuplicateGroup(
            normalized_reference=reference,
            transactions=tuple(members),
            count=len(members),
            total_amount=sum((txn.numeric_amount for txn in members), Decimal("0")),
            currencies=_distinct(txn.currency for txn in members),
            statuses=_distinct(txn.status for txn in members),
            consistent=consistent,
            risk_level=self.risk_level_for(len(members)),
        )


def detect_duplicates(transactions: Iterable[Transaction]) -> DuplicateAnalysis:
    """Run duplicate detection with the default risk thresholds."""
    return DuplicateDetector().detect(transactions)
