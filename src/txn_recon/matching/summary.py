"""Summary statistics over the buckets of a reconciliation run."""

from decimal import Decimal
from typing import Optional, Sequence

from ..models.transaction import (
    DuplicateReport,
    MatchedTransaction,
    MatchType,
    ReconciliationSummary,
    Transaction,
)


def _total_amount(transactions: Sequence[Transaction]) -> Decimal:
    return sum((txn.numeric_amount for txn in transactions), Decimal("0"))


def summarize(
    internal_transactions: Sequence[Transaction],
    provider_transactions: Sequence[Transaction],
    matched: Sequence[MatchedTransaction],
    internal_only: Sequence[Transaction],
    provider_only: Sequence[Transaction],
    duplicates: Optional[DuplicateReport] = None,
) -> ReconciliationSummary:
    """
    Aggregate counts, totals and the match rate.

    Args:
        internal_transactions: Every internal input record
        provider_transactions: Every provider input record
        matched: Matched pairs of every severity
        internal_only: Internal records without a counterpart
        provider_only: Provider records without a counterpart
        duplicates: Per-bucket duplicate analyses, if computed

    Returns:
        Reconciliation summary
    """
    type_counts = {match_type.value: 0 for match_type in MatchType}
    for match in matched:
        type_counts[match.match_type.value] += 1

    reconciled = len(matched) + len(internal_only) + len(provider_only)
    match_rate = (len(matched) / reconciled) * 100 if reconciled else 0.0

    total_discrepancies = (
        len(matched) - type_counts[MatchType.PERFECT.value]
        + len(internal_only)
        + len(provider_only)
    )

    return ReconciliationSummary(
        total_internal=len(internal_transactions),
        total_provider=len(provider_transactions),
        total_internal_amount=_total_amount(internal_transactions),
        total_provider_amount=_total_amount(provider_transactions),
        matched_count=len(matched),
        internal_only_count=len(internal_only),
        provider_only_count=len(provider_only),
        total_discrepancies=total_discrepancies,
        match_rate=match_rate,
        total_duplicates=duplicates.total_count if duplicates else 0,
        match_type_counts=tuple(type_counts.items()),
    )
