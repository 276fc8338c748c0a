"""
Per-pool state: event application and price derivation.

apply_event() is pure: it returns a new Pair and never mutates the input, so
replaying an event against the same starting state always gives the same
result. PairTable is the single-owner map of pool address -> Pair; only the
control loop holds a reference to it.
"""

from __future__ import annotations

import dataclasses
from decimal import Context, Decimal
from typing import TYPE_CHECKING, Iterator, Mapping

from config.loader import get_config
from shared.constants import DEFAULT_DECIMAL_PRECISION
from shared.types import (
    BurnFields,
    DecodedEvent,
    MintFields,
    Pair,
    PairMode,
    SwapFields,
)

if TYPE_CHECKING:
    from core.query_filter import QueryFilter

_ZERO = Decimal(0)

_DECIMAL_CONTEXT = Context(
    prec=get_config().get_app_config().get("precision", {}).get(
        "decimal_precision", DEFAULT_DECIMAL_PRECISION
    )
)


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------


def apply_event(pair: Pair, event: DecodedEvent) -> Pair:
    """Return the pair state after one decoded event."""
    fields = event.fields
    if isinstance(fields, SwapFields):
        # One in-leg is zero on a two-asset swap; a zero A-in means A left the pool.
        if fields.amount_a_in == 0:
            return dataclasses.replace(
                pair,
                amount_a=fields.amount_a_out,
                amount_b=fields.amount_b_in,
                mode=PairMode.SELL,
            )
        return dataclasses.replace(
            pair,
            amount_a=fields.amount_a_in,
            amount_b=fields.amount_b_out,
            mode=PairMode.BUY,
        )
    if isinstance(fields, MintFields):
        return dataclasses.replace(
            pair, amount_a=fields.amount_a, amount_b=fields.amount_b, mode=PairMode.MINT
        )
    if isinstance(fields, BurnFields):
        return dataclasses.replace(
            pair, amount_a=fields.amount_a, amount_b=fields.amount_b, mode=PairMode.BURN
        )
    raise TypeError(f"Unsupported event fields: {type(fields).__name__}")


# ---------------------------------------------------------------------------
# Price derivation
# ---------------------------------------------------------------------------


def scaled_amounts(pair: Pair) -> tuple[Decimal, Decimal]:
    """Raw integer amounts converted to token units (amount / 10**decimals)."""
    amount_a = _DECIMAL_CONTEXT.divide(Decimal(pair.amount_a), Decimal(10) ** pair.decimals_a)
    amount_b = _DECIMAL_CONTEXT.divide(Decimal(pair.amount_b), Decimal(10) ** pair.decimals_b)
    return amount_a, amount_b


def price(pair: Pair) -> Decimal:
    """
    A/B when the pair is in normal orientation, B/A otherwise.

    Zero when the scaled A amount is zero. A zero B amount with normal
    orientation also yields zero instead of an infinite price.
    """
    amount_a, amount_b = scaled_amounts(pair)
    if amount_a == _ZERO:
        return _ZERO
    if pair.orientation_normal:
        if amount_b == _ZERO:
            return _ZERO
        return _DECIMAL_CONTEXT.divide(amount_a, amount_b)
    return _DECIMAL_CONTEXT.divide(amount_b, amount_a)


# ---------------------------------------------------------------------------
# State table
# ---------------------------------------------------------------------------


class PairTable:
    """Pool address (lower-case hex) -> Pair."""

    def __init__(self, pairs: Mapping[str, Pair] | None = None) -> None:
        self._pairs: dict[str, Pair] = {}
        for address, pair in (pairs or {}).items():
            self._pairs[address.lower()] = pair

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and address.lower() in self._pairs

    def __iter__(self) -> Iterator[str]:
        return iter(self._pairs)

    def items(self) -> Iterator[tuple[str, Pair]]:
        return iter(self._pairs.items())

    def get(self, address: str) -> Pair | None:
        return self._pairs.get(address.lower())

    def set(self, address: str, pair: Pair) -> None:
        self._pairs[address.lower()] = pair

    def apply(self, event: DecodedEvent) -> Pair | None:
        """Apply an event to its pool. None if the pool is not in the table."""
        address = event.address.lower()
        pair = self._pairs.get(address)
        if pair is None:
            return None
        updated = apply_event(pair, event)
        self._pairs[address] = updated
        return updated

    def chain_ids(self) -> list[int]:
        return sorted({pair.chain_id for pair in self._pairs.values()})

    def addresses_for_chain(self, chain_id: int) -> list[str]:
        return sorted(addr for addr, pair in self._pairs.items() if pair.chain_id == chain_id)

    def filter(self, query: QueryFilter) -> PairTable:
        """New table holding only the pools matched by the query."""
        return PairTable({addr: pair for addr, pair in self._pairs.items() if query.matches(pair)})

    def widest_symbol(self) -> int:
        """Length of the longest token symbol in the table (0 when empty)."""
        return max(
            (max(len(p.symbol_a), len(p.symbol_b)) for p in self._pairs.values()),
            default=0,
        )
