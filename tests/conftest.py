"""Shared fixtures for reconciliation tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable

import pytest

from txn_recon.config import ReconConfig
from txn_recon.matching.engine import ReconciliationEngine
from txn_recon.models.transaction import Transaction

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_txn(
    reference: str = "TXN-001",
    amount: Any = Decimal("100.00"),
    currency: str = "USD",
    status: str = "completed",
    timestamp: datetime | None = BASE_TIME,
    **extra: Any,
) -> Transaction:
    """Build a transaction with sensible defaults."""
    return Transaction(
        reference=reference,
        amount=amount,
        currency=currency,
        status=status,
        timestamp=timestamp,
        **extra,
    )


def minutes_after(minutes: float) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


@pytest.fixture
def txn() -> Callable[..., Transaction]:
    """Factory fixture for transactions."""
    return make_txn


@pytest.fixture
def config() -> ReconConfig:
    """Default configuration."""
    return ReconConfig()


@pytest.fixture
def engine(config: ReconConfig) -> ReconciliationEngine:
    """Engine with default settings."""
    return ReconciliationEngine(config)


@pytest.fixture
def internal_csv(tmp_path):
    """Internal export with a duplicate, a one-sided record and a blank reference."""
    path = tmp_path / "internal.csv"
    path.write_text(
        "Transaction Reference,Amount,Currency,Status,Timestamp,Description,Customer ID\n"
        "TXN-001,100.00,usd,completed,2024-03-01T12:00:00Z,Coffee beans,C-1\n"
        "TXN-002,\"$1,250.50\",USD,completed,2024-03-01T13:00:00Z,Equipment,C-2\n"
        "TXN-003,50.00,USD,completed,2024-03-01T14:00:00Z,Refund,C-3\n"
        "TXN-003,50.00,USD,completed,2024-03-01T14:30:00Z,Refund,C-3\n"
        "TXN-004,75.00,USD,pending,2024-03-01T15:00:00Z,Subscription,C-4\n"
        ",10.00,USD,completed,2024-03-01T16:00:00Z,No reference,C-5\n"
    )
    return path


@pytest.fixture
def provider_csv(tmp_path):
    """Provider statement matching part of ``internal_csv``."""
    path = tmp_path / "provider.csv"
    path.write_text(
        "reference,amount,currency,status,timestamp,description,provider_id\n"
        "txn-001,100.00,USD,completed,2024-03-01T12:02:00Z,Coffee beans,P-1\n"
        "TXN-002,1250.50,USD,failed,2024-03-01T13:00:00Z,Equipment,P-1\n"
        "TXN-003,50.00,USD,completed,2024-03-01T14:00:00Z,Refund,P-1\n"
        "TXN-900,20.00,USD,completed,2024-03-01T18:00:00Z,Unknown,P-1\n"
    )
    return path
