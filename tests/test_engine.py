"""Tests for the reconciliation matching engine."""

from __future__ import annotations

from decimal import Decimal

import pytest

from txn_recon.config import ReconConfig
from txn_recon.matching.engine import ReconciliationEngine, reconcile_transactions
from txn_recon.matching.strategies import BestAmountPairing, PositionalPairing
from txn_recon.models.transaction import MatchType, RiskLevel

from .conftest import make_txn, minutes_after


def _ids(transactions) -> list[int]:
    return [id(t) for t in transactions]


class TestMatchScenarios:
    """End-to-end pairing scenarios."""

    def test_case_insensitive_reference_with_small_time_gap_is_perfect(
        self, engine: ReconciliationEngine
    ) -> None:
        internal = [make_txn("TXN-001")]
        provider = [make_txn("txn-001", timestamp=minutes_after(2))]

        result = engine.reconcile(internal, provider)

        assert len(result.matched) == 1
        assert result.matched[0].match_type == MatchType.PERFECT
        assert result.internal_only == ()
        assert result.provider_only == ()

    def test_amount_difference_under_threshold_is_minor(
        self, engine: ReconciliationEngine
    ) -> None:
        result = engine.reconcile(
            [make_txn(amount=Decimal("100.00"))], [make_txn(amount=Decimal("103.00"))]
        )

        match = result.matched[0]
        assert match.match_type == MatchType.MINOR
        assert match.discrepancies.amount.difference == Decimal("3.00")
        assert float(match.discrepancies.amount.percentage) == pytest.approx(2.91, abs=0.01)

    def test_status_mismatch_is_major(self, engine: ReconciliationEngine) -> None:
        result = engine.reconcile([make_txn(status="completed")], [make_txn(status="failed")])
        assert result.matched[0].match_type == MatchType.MAJOR

    def test_unmatched_references_land_in_one_sided_buckets(
        self, engine: ReconciliationEngine
    ) -> None:
        internal_txn = make_txn("TXN-100")
        provider_txn = make_txn("TXN-900")

        result = engine.reconcile([internal_txn], [provider_txn])

        assert result.matched == ()
        assert result.internal_only == (internal_txn,)
        assert result.provider_only == (provider_txn,)

    def test_empty_references_are_excluded_everywhere(
        self, engine: ReconciliationEngine
    ) -> None:
        blank_internal = make_txn("   ")
        blank_provider = make_txn("")

        result = engine.reconcile([blank_internal, make_txn("A")], [blank_provider])

        assert [m.internal for m in result.matched] == []
        assert blank_internal not in result.internal_only
        assert blank_provider not in result.provider_only
        assert [t.reference for t in result.internal_only] == ["A"]
        # Still counted as input
        assert result.summary.total_internal == 2
        assert result.summary.total_provider == 1

    def test_non_numeric_amount_still_matches_by_reference(
        self, engine: ReconciliationEngine
    ) -> None:
        result = engine.reconcile([make_txn(amount="garbage")], [make_txn(amount=Decimal("0"))])
        assert len(result.matched) == 1
        assert result.matched[0].match_type == MatchType.PERFECT


class TestDuplicateReferencePairing:
    """Pairing when a reference repeats on one or both sides."""

    def test_positional_pairing_uses_input_order(self, engine: ReconciliationEngine) -> None:
        i1 = make_txn("DUP", amount=Decimal("10"))
        i2 = make_txn("DUP", amount=Decimal("20"))
        i3 = make_txn("dup", amount=Decimal("30"))
        p1 = make_txn("DUP", amount=Decimal("30"))
        p2 = make_txn("DUP", amount=Decimal("10"))

        matched, internal_only, provider_only = engine.match([i1, i2, i3], [p1, p2])

        assert [(m.internal, m.provider) for m in matched] == [(i1, p1), (i2, p2)]
        assert internal_only == [i3]
        assert provider_only == []

    def test_provider_surplus_goes_to_provider_only(self, engine: ReconciliationEngine) -> None:
        i1 = make_txn("DUP")
        p1, p2, p3 = make_txn("DUP"), make_txn("DUP"), make_txn("DUP")

        matched, internal_only, provider_only = engine.match([i1], [p1, p2, p3])

        assert len(matched) == 1
        assert matched[0].provider is p1
        assert internal_only == []
        assert _ids(provider_only) == _ids([p2, p3])

    def test_best_amount_pairing_is_injectable(self, config: ReconConfig) -> None:
        engine = ReconciliationEngine(config, pairing_strategy=BestAmountPairing())
        i1 = make_txn("DUP", amount=Decimal("10"))
        i2 = make_txn("DUP", amount=Decimal("30"))
        p1 = make_txn("DUP", amount=Decimal("30"))
        p2 = make_txn("DUP", amount=Decimal("10"))

        matched, _, _ = engine.match([i1, i2], [p1, p2])

        assert [(m.internal, m.provider) for m in matched] == [(i1, p2), (i2, p1)]
        assert all(m.match_type == MatchType.PERFECT for m in matched)

    def test_pairing_strategy_from_config(self) -> None:
        config = ReconConfig()
        config.matching.pairing_strategy = "best_amount"
        assert isinstance(ReconciliationEngine(config).pairing_strategy, BestAmountPairing)
        assert isinstance(ReconciliationEngine().pairing_strategy, PositionalPairing)


class TestOutputOrdering:
    """Bucket ordering follows first-seen reference order."""

    def test_bucket_order(self, engine: ReconciliationEngine) -> None:
        internal = [make_txn("B"), make_txn("A"), make_txn("C")]
        provider = [make_txn("Z"), make_txn("A"), make_txn("B"), make_txn("Y")]

        matched, internal_only, provider_only = engine.match(internal, provider)

        assert [m.reference for m in matched] == ["B", "A"]
        assert [t.reference for t in internal_only] == ["C"]
        assert [t.reference for t in provider_only] == ["Z", "Y"]


class TestInvariants:
    """Partition, determinism and conservation properties."""

    @pytest.fixture
    def ledgers(self):
        internal = [
            make_txn("A", amount=Decimal("10")),
            make_txn("a", amount=Decimal("11")),
            make_txn("B", amount="oops"),
            make_txn("", amount=Decimal("5")),
            make_txn("C", amount=Decimal("7"), status="failed"),
            make_txn("D", amount=Decimal("1")),
        ]
        provider = [
            make_txn("A", amount=Decimal("10")),
            make_txn("C", amount=Decimal("7")),
            make_txn("C", amount=Decimal("7")),
            make_txn("E", amount=Decimal("3")),
            make_txn(" ", amount=Decimal("2")),
        ]
        return internal, provider

    def test_every_referenced_transaction_appears_exactly_once(
        self, engine: ReconciliationEngine, ledgers
    ) -> None:
        internal, provider = ledgers
        result = engine.reconcile(internal, provider)

        placed = (
            _ids(m.internal for m in result.matched)
            + _ids(m.provider for m in result.matched)
            + _ids(result.internal_only)
            + _ids(result.provider_only)
        )
        expected = _ids(t for t in internal + provider if t.normalized_reference)

        assert sorted(placed) == sorted(expected)
        assert len(placed) == len(set(placed))

    def test_results_are_deterministic(self, engine: ReconciliationEngine, ledgers) -> None:
        internal, provider = ledgers
        assert engine.reconcile(internal, provider) == engine.reconcile(internal, provider)

    def test_result_is_a_hashable_value(self, engine: ReconciliationEngine, ledgers) -> None:
        internal, provider = ledgers
        first = engine.reconcile(internal, provider)
        second = engine.reconcile(internal, provider)

        assert hash(first) == hash(second)
        assert len({first, second}) == 1

    def test_amount_totals_cover_all_inputs(self, engine: ReconciliationEngine, ledgers) -> None:
        internal, provider = ledgers
        summary = engine.reconcile(internal, provider).summary

        assert summary.total_internal_amount == Decimal("34")
        assert summary.total_provider_amount == Decimal("29")

    def test_inputs_are_not_mutated(self, engine: ReconciliationEngine, ledgers) -> None:
        internal, provider = ledgers
        before = (list(internal), list(provider))
        engine.reconcile(internal, provider)
        assert (internal, provider) == before


class TestReconcile:
    """Full reconcile() output."""

    def test_duplicates_are_detected_per_bucket(self, engine: ReconciliationEngine) -> None:
        internal = [make_txn("X"), make_txn("X"), make_txn("M"), make_txn("M")]
        provider = [make_txn("M"), make_txn("M"), make_txn("P"), make_txn("P"), make_txn("P")]

        result = engine.reconcile(internal, provider)

        internal_groups = result.duplicates.internal_only.duplicate_groups
        provider_groups = result.duplicates.provider_only.duplicate_groups
        matched_groups = result.duplicates.matched.duplicate_groups

        assert [g.normalized_reference for g in internal_groups] == ["X"]
        assert [(g.normalized_reference, g.risk_level) for g in provider_groups] == [
            ("P", RiskLevel.MEDIUM)
        ]
        assert [g.normalized_reference for g in matched_groups] == ["M"]
        assert result.summary.total_duplicates == 7

    def test_empty_inputs(self, engine: ReconciliationEngine) -> None:
        result = engine.reconcile([], [])
        assert result.matched == ()
        assert result.summary.match_rate == 0.0
        assert result.summary.total_internal_amount == Decimal("0")

    def test_module_level_helper(self) -> None:
        result = reconcile_transactions([make_txn()], [make_txn()])
        assert result.summary.matched_count == 1
