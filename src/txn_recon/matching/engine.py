"""
Reference-based matching engine for internal vs. provider reconciliation.
Partitions both ledgers into matched pairs and one-sided records, then
runs duplicate detection and summary aggregation over the buckets.
"""

from datetime import datetime
from typing import Optional, Sequence
import logging

from ..models.transaction import (
    DuplicateReport,
    MatchedTransaction,
    ReconciliationResult,
    Transaction,
)
from ..config import ReconConfig
from .classifier import DiscrepancyClassifier
from .duplicates import DuplicateDetector, group_by_reference
from .strategies import PairingStrategy, get_pairing_strategy
from .summary import summarize

logger = logging.getLogger(__name__)

MatchBuckets = tuple[list[MatchedTransaction], list[Transaction], list[Transaction]]


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates matching, classification,
    duplicate detection and summary aggregation.

    The engine keeps no state between runs; its settings are fixed at
    construction, so one instance may serve concurrent reconciliations.
    """

    def __init__(
        self,
        config: Optional[ReconConfig] = None,
        pairing_strategy: Optional[PairingStrategy] = None,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration (defaults when omitted)
            pairing_strategy: Overrides the strategy named in the configuration
        """
        self.config = config or ReconConfig()

        matching_config = self.config.matching
        self.pairing_strategy = pairing_strategy or get_pairing_strategy(
            matching_config.pairing_strategy
        )
        self.classifier = DiscrepancyClassifier(
            timestamp_tolerance_minutes=matching_config.timestamp_tolerance_minutes,
            major_amount_percentage=matching_config.major_amount_percentage,
        )
        self.duplicate_detector = DuplicateDetector(
            medium_risk_min_count=self.config.duplicates.medium_risk_min_count,
            high_risk_min_count=self.config.duplicates.high_risk_min_count,
        )

    def match(
        self,
        internal_transactions: Sequence[Transaction],
        provider_transactions: Sequence[Transaction],
    ) -> MatchBuckets:
        """
        Partition two ledgers by normalized reference.

        Args:
            internal_transactions: Internal export records, in input order
            provider_transactions: Provider statement records, in input order

        Returns:
            Tuple of (matched, internal_only, provider_only)
        """
        internal_groups = group_by_reference(internal_transactions)
        provider_groups = group_by_reference(provider_transactions)

        matched: list[MatchedTransaction] = []
        internal_only: list[Transaction] = []
        provider_leftovers: dict[str, list[Transaction]] = {}

        for reference, internal_txns in internal_groups.items():
            provider_txns = provider_groups.get(reference)

            if not provider_txns:
                logger.debug(f"Internal only: {reference} ({len(internal_txns)} records)")
                internal_only.extend(internal_txns)
                continue

            pairs, internal_rest, provider_rest = self.pairing_strategy.pair(
                internal_txns, provider_txns
            )
            for internal_txn, provider_txn in pairs:
                matched.append(self._build_match(internal_txn, provider_txn))

            internal_only.extend(internal_rest)
            provider_leftovers[reference] = provider_rest

            logger.debug(
                f"Matched {reference}: {len(pairs)} pairs, "
                f"{len(internal_rest)} internal and {len(provider_rest)} provider left over"
            )

        provider_only: list[Transaction] = []
        for reference, provider_txns in provider_groups.items():
            if reference in provider_leftovers:
                provider_only.extend(provider_leftovers[reference])
            else:
                logger.debug(f"Provider only: {reference} ({len(provider_txns)} records)")
                provider_only.extend(provider_txns)

        return matched, internal_only, provider_only

    def _build_match(
        self, internal_txn: Transaction, provider_txn: Transaction
    ) -> MatchedTransaction:
        discrepancies, match_type = self.classifier.classify(internal_txn, provider_txn)
        return MatchedTransaction(
            internal=internal_txn,
            provider=provider_txn,
            discrepancies=discrepancies,
            match_type=match_type,
        )

    def detect_duplicates(
        self,
        matched: Sequence[MatchedTransaction],
        internal_only: Sequence[Transaction],
        provider_only: Sequence[Transaction],
    ) -> DuplicateReport:
        """
        Run duplicate detection over each bucket separately.

        A repeat means something different per bucket (processing failure,
        double charge, benign repeat), so buckets are never mixed.
        """
        return DuplicateReport(
            internal_only=self.duplicate_detector.detect(internal_only),
            provider_only=self.duplicate_detector.detect(provider_only),
            matched=self.duplicate_detector.detect(m.internal for m in matched),
        )

    def reconcile(
        self,
        internal_transactions: Sequence[Transaction],
        provider_transactions: Sequence[Transaction],
    ) -> ReconciliationResult:
        """
        Perform a full reconciliation between the two ledgers.

        Args:
            internal_transactions: Internal export records
            provider_transactions: Provider statement records

        Returns:
            Reconciliation result with buckets, duplicates and summary
        """
        start_time = datetime.now()
        logger.info(
            f"Starting reconciliation: {len(internal_transactions)} internal txns, "
            f"{len(provider_transactions)} provider txns"
        )

        self._log_excluded(internal_transactions, "internal")
        self._log_excluded(provider_transactions, "provider")

        matched, internal_only, provider_only = self.match(
            internal_transactions, provider_transactions
        )
        duplicates = self.detect_duplicates(matched, internal_only, provider_only)

        summary = summarize(
            internal_transactions=internal_transactions,
            provider_transactions=provider_transactions,
            matched=matched,
            internal_only=internal_only,
            provider_only=provider_only,
            duplicates=duplicates,
        )

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {len(matched)} matches, "
            f"{len(internal_only)} internal-only, {len(provider_only)} provider-only, "
            f"match rate {summary.match_rate:.1f}%"
        )

        return ReconciliationResult(
            matched=tuple(matched),
            internal_only=tuple(internal_only),
            provider_only=tuple(provider_only),
            summary=summary,
            duplicates=duplicates,
        )

    @staticmethod
    def _log_excluded(transactions: Sequence[Transaction], side: str) -> None:
        skipped = sum(1 for txn in transactions if not txn.normalized_reference)
        if skipped:
            logger.info(f"Excluding {skipped} {side} transactions with an empty reference")


def reconcile_transactions(
    internal_transactions: Sequence[Transaction],
    provider_transactions: Sequence[Transaction],
    config: Optional[ReconConfig] = None,
) -> ReconciliationResult:
    """Reconcile two ledgers with a one-off engine."""
    return ReconciliationEngine(config).reconcile(internal_transactions, provider_transactions)
