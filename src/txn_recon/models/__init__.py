"""Data models for reconciliation."""

from .transaction import (
    Transaction,
    TransactionSide,
    MatchType,
    RiskLevel,
    AmountDiscrepancy,
    ValueDiscrepancy,
    TimestampDiscrepancy,
    Discrepancies,
    MatchedTransaction,
    DuplicateGroup,
    DuplicateAnalysis,
    DuplicateReport,
    ReconciliationSummary,
    ReconciliationResult,
)

__all__ = [
    "Transaction",
    "TransactionSide",
    "MatchType",
    "RiskLevel",
    "AmountDiscrepancy",
    "ValueDiscrepancy",
    "TimestampDiscrepancy",
    "Discrepancies",
    "MatchedTransaction",
    "DuplicateGroup",
    "DuplicateAnalysis",
    "DuplicateReport",
    "ReconciliationSummary",
    "ReconciliationResult",
]
