"""Matching engine, discrepancy classification, duplicates and summaries."""

from .engine import ReconciliationEngine, reconcile_transactions
from .classifier import DiscrepancyClassifier
from .duplicates import DuplicateDetector, detect_duplicates, group_by_reference
from .strategies import (
    PairingStrategy,
    PositionalPairing,
    BestAmountPairing,
    get_pairing_strategy,
)
from .summary import summarize

__all__ = [
    "ReconciliationEngine",
    "reconcile_transactions",
    "DiscrepancyClassifier",
    "DuplicateDetector",
    "detect_duplicates",
    "group_by_reference",
    "PairingStrategy",
    "PositionalPairing",
    "BestAmountPairing",
    "get_pairing_strategy",
    "summarize",
]
