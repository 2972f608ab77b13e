"""Data models for reconciliation transactions and results."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ..utils.normalization import coerce_amount, normalize_reference


class TransactionSide(Enum):
    """Which ledger a transaction came from."""

    INTERNAL = "internal"
    PROVIDER = "provider"


class MatchType(Enum):
    """Severity of the differences between two paired transactions."""

    PERFECT = "perfect"
    MINOR = "minor"
    MAJOR = "major"


class RiskLevel(Enum):
    """Coarse severity of a duplicate group, driven by member count."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class Transaction:
    """
    A single ledger entry from either the internal export or the provider
    statement.

    ``amount`` normally holds a Decimal, but an unparseable source value is
    kept as-is; arithmetic always goes through :attr:`numeric_amount`.
    """

    reference: str
    amount: Any
    currency: str
    status: str
    # None when the source value could not be read as a date/time
    timestamp: Optional[datetime]
    description: Optional[str] = None
    # Customer or provider identifier
    counterparty_id: Optional[str] = None
    fees: Optional[Decimal] = None

    @property
    def normalized_reference(self) -> str:
        return normalize_reference(self.reference)

    @property
    def numeric_amount(self) -> Decimal:
        return coerce_amount(self.amount)


@dataclass(frozen=True)
class AmountDiscrepancy:
    """Amount difference between a matched pair."""

    internal: Decimal
    provider: Decimal
    difference: Decimal
    # Relative to the larger of the two amounts
    percentage: Decimal


@dataclass(frozen=True)
class ValueDiscrepancy:
    """Raw differing values of a text field (status or currency)."""

    internal: str
    provider: str


@dataclass(frozen=True)
class TimestampDiscrepancy:
    """Timestamp gap beyond the configured tolerance."""

    internal: datetime
    provider: datetime
    difference_minutes: float


@dataclass(frozen=True)
class Discrepancies:
    """Per-field differences of a matched pair; absent fields agree."""

    amount: Optional[AmountDiscrepancy] = None
    status: Optional[ValueDiscrepancy] = None
    currency: Optional[ValueDiscrepancy] = None
    timestamp: Optional[TimestampDiscrepancy] = None

    @property
    def fields(self) -> list[str]:
        """Names of the fields that differ, in a stable order."""
        names = ("amount", "status", "currency", "timestamp")
        return [name for name in names if getattr(self, name) is not None]

    @property
    def has_any(self) -> bool:
        return bool(self.fields)


@dataclass(frozen=True)
class MatchedTransaction:
    """An internal and a provider transaction sharing a normalized reference."""

    internal: Transaction
    provider: Transaction
    discrepancies: Discrepancies
    match_type: MatchType

    @property
    def reference(self) -> str:
        return self.internal.normalized_reference

    @property
    def is_perfect(self) -> bool:
        return self.match_type == MatchType.PERFECT


@dataclass(frozen=True)
class DuplicateGroup:
    """Two or more transactions of one collection sharing a normalized reference."""

    normalized_reference: str
    transactions: tuple[Transaction, ...]
    count: int
    total_amount: Decimal
    currencies: tuple[str, ...]
    statuses: tuple[str, ...]
    consistent: bool
    risk_level: RiskLevel

    @property
    def potential_overcharge(self) -> Decimal:
        """Amount charged beyond the first occurrence."""
        return self.total_amount - self.transactions[0].numeric_amount

    @property
    def recommended_action(self) -> str:
        if self.risk_level == RiskLevel.HIGH:
            return "IMMEDIATE_REVIEW"
        return "STANDARD_REVIEW"


@dataclass(frozen=True)
class DuplicateAnalysis:
    """Duplicate groups found in one transaction collection."""

    duplicate_groups: tuple[DuplicateGroup, ...] = ()
    total_duplicate_transaction_count: int = 0

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicate_groups)


@dataclass(frozen=True)
class DuplicateReport:
    """Duplicate analyses of each reconciliation bucket, kept apart."""

    internal_only: DuplicateAnalysis = field(default_factory=DuplicateAnalysis)
    provider_only: DuplicateAnalysis = field(default_factory=DuplicateAnalysis)
    matched: DuplicateAnalysis = field(default_factory=DuplicateAnalysis)

    @property
    def total_count(self) -> int:
        return (
            self.internal_only.total_duplicate_transaction_count
            + self.provider_only.total_duplicate_transaction_count
            + self.matched.total_duplicate_transaction_count
        )


@dataclass(frozen=True)
class ReconciliationSummary:
    """Counts, totals and match-rate statistics of a reconciliation run."""

    # Input counts
    total_internal: int
    total_provider: int

    # Sums over all inputs, regardless of bucket
    total_internal_amount: Decimal
    total_provider_amount: Decimal

    # Bucket sizes
    matched_count: int
    internal_only_count: int
    provider_only_count: int

    # Non-perfect matches plus both one-sided buckets
    total_discrepancies: int

    # Percentage of reconciled records that found a counterpart
    match_rate: float

    total_duplicates: int = 0
    # (match type, count) pairs in perfect, minor, major order
    match_type_counts: tuple[tuple[str, int], ...] = ()


@dataclass(frozen=True)
class ReconciliationResult:
    """Single output of a reconciliation run."""

    matched: tuple[MatchedTransaction, ...]
    internal_only: tuple[Transaction, ...]
    provider_only: tuple[Transaction, ...]
    summary: ReconciliationSummary
    duplicates: DuplicateReport = field(default_factory=DuplicateReport)

    @property
    def perfect_matches(self) -> list[MatchedTransaction]:
        return [m for m in self.matched if m.is_perfect]

    @property
    def matches_with_discrepancies(self) -> list[MatchedTransaction]:
        return [m for m in self.matched if not m.is_perfect]
