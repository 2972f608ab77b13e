"""Tests for pairing strategies."""

from __future__ import annotations

from decimal import Decimal

import pytest

from txn_recon.matching.strategies import (
    BestAmountPairing,
    PositionalPairing,
    get_pairing_strategy,
)

from .conftest import make_txn


class TestPositionalPairing:
    """Tests for PositionalPairing."""

    def test_pairs_up_to_the_shorter_side(self) -> None:
        internal = [make_txn(amount=Decimal(n)) for n in (1, 2, 3)]
        provider = [make_txn(amount=Decimal(n)) for n in (7, 8)]

        pairs, internal_rest, provider_rest = PositionalPairing().pair(internal, provider)

        assert pairs == [(internal[0], provider[0]), (internal[1], provider[1])]
        assert internal_rest == [internal[2]]
        assert provider_rest == []


class TestBestAmountPairing:
    """Tests for BestAmountPairing."""

    def test_closest_amount_wins(self) -> None:
        internal = [make_txn(amount=Decimal("50")), make_txn(amount=Decimal("10"))]
        provider = [
            make_txn(amount=Decimal("11")),
            make_txn(amount=Decimal("49")),
            make_txn(amount=Decimal("500")),
        ]

        pairs, internal_rest, provider_rest = BestAmountPairing().pair(internal, provider)

        assert pairs == [(internal[0], provider[1]), (internal[1], provider[0])]
        assert internal_rest == []
        assert provider_rest == [provider[2]]

    def test_ties_go_to_earlier_provider_record(self) -> None:
        internal = [make_txn(amount=Decimal("10"))]
        provider = [make_txn(amount=Decimal("12"), status="a"), make_txn(amount=Decimal("8"), status="b")]

        pairs, _, provider_rest = BestAmountPairing().pair(internal, provider)

        assert pairs[0][1].status == "a"
        assert provider_rest[0].status == "b"

    def test_internal_surplus_is_left_over(self) -> None:
        internal = [make_txn(), make_txn(status="second")]
        provider = [make_txn()]

        pairs, internal_rest, _ = BestAmountPairing().pair(internal, provider)

        assert len(pairs) == 1
        assert [t.status for t in internal_rest] == ["second"]


class TestGetPairingStrategy:
    """Tests for strategy lookup."""

    def test_known_names(self) -> None:
        assert isinstance(get_pairing_strategy("positional"), PositionalPairing)
        assert isinstance(get_pairing_strategy("best_amount"), BestAmountPairing)

    def test_unknown_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown pairing strategy"):
            get_pairing_strategy("fuzzy")
