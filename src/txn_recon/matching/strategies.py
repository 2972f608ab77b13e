"""
Pairing strategies for transactions that share a normalized reference.
Each strategy decides which internal record pairs with which provider record.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from ..models.transaction import Transaction

Pairs = list[tuple[Transaction, Transaction]]


class PairingStrategy(ABC):
    """Abstract base class for pairing strategies."""

    name: str = ""

    @abstractmethod
    def pair(
        self,
        internal_txns: Sequence[Transaction],
        provider_txns: Sequence[Transaction],
    ) -> tuple[Pairs, list[Transaction], list[Transaction]]:
        """
        Pair internal and provider transactions sharing one reference.

        Args:
            internal_txns: Internal transactions, in input order
            provider_txns: Provider transactions, in input order

        Returns:
            Tuple of (pairs, internal leftovers, provider leftovers); leftovers
            keep input order
        """
        pass


class PositionalPairing(PairingStrategy):
    """
    Pairs records by position: the first internal record with the first
    provider record, and so on. Surplus records on either side are leftovers.
    """

    name = "positional"

    def pair(
        self,
        internal_txns: Sequence[Transaction],
        provider_txns: Sequence[Transaction],
    ) -> tuple[Pairs, list[Transaction], list[Transaction]]:
        paired_count = min(len(internal_txns), len(provider_txns))
        pairs = list(zip(internal_txns[:paired_count], provider_txns[:paired_count]))
        return pairs, list(internal_txns[paired_count:]), list(provider_txns[paired_count:])


class BestAmountPairing(PairingStrategy):
    """
    Each internal record, in input order, takes the still-unpaired provider
    record with the closest amount. Ties go to the earlier provider record.
    """

    name = "best_amount"

    def pair(
        self,
        internal_txns: Sequence[Transaction],
        provider_txns: Sequence[Transaction],
    ) -> tuple[Pairs, list[Transaction], list[Transaction]]:
        available = list(range(len(provider_txns)))
        pairs: Pairs = []
        internal_leftovers: list[Transaction] = []

        for internal_txn in internal_txns:
            if not available:
                internal_leftovers.append(internal_txn)
                continue

            amount = internal_txn.numeric_amount
            # min() keeps the first index on ties, preserving provider order
            best_index = min(
                available,
                key=lambda i: abs(provider_txns[i].numeric_amount - amount),
            )
            available.remove(best_index)
            pairs.append((internal_txn, provider_txns[best_index]))

        provider_leftovers = [provider_txns[i] for i in available]
        return pairs, internal_leftovers, provider_leftovers


PAIRING_STRATEGIES: dict[str, type[PairingStrategy]] = {
    PositionalPairing.name: PositionalPairing,
    BestAmountPairing.name: BestAmountPairing,
}


def get_pairing_strategy(name: str) -> PairingStrategy:
    """
    Look up a pairing strategy by its configured name.

    Raises:
        ValueError: If no strategy is registered under ``name``
    """
    try:
        return PAIRING_STRATEGIES[name]()
    except KeyError:
        known = ", ".join(sorted(PAIRING_STRATEGIES))
        raise ValueError(f"Unknown pairing strategy '{name}' (expected one of: {known})")
