"""
Presentation formatter: turns an updated Pair into a feed line and color tag.

Line layout (w = symbol column width, p = amount precision):

    BUY   <A> <symA>  -> -><B> <symB> | <price>
    SELL  <B> <symB>  -> -><A> <symA> | <price>
    MINT  <A> <symA>  -> <-<B> <symB> | <price>
    BURN  <A> <symA>  <- -><B> <symB> | <price>

Amounts are right-aligned in 12 columns, the price in 9.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from core.pair_state import PairTable, price, scaled_amounts
from shared.constants import DEFAULT_AMOUNT_PRECISION, DEFAULT_MIN_SYMBOL_WIDTH
from shared.types import ColorTag, DecodedEvent, FeedRecord, Pair, PairMode


class FeedFormatter:
    def __init__(
        self,
        symbol_width: int = DEFAULT_MIN_SYMBOL_WIDTH,
        amount_precision: int = DEFAULT_AMOUNT_PRECISION,
    ) -> None:
        self._width = symbol_width
        self._precision = amount_precision

    @classmethod
    def for_table(
        cls,
        table: PairTable,
        min_width: int = DEFAULT_MIN_SYMBOL_WIDTH,
        amount_precision: int = DEFAULT_AMOUNT_PRECISION,
    ) -> FeedFormatter:
        """Formatter whose symbol column fits every pool in the table."""
        return cls(max(min_width, table.widest_symbol()), amount_precision)

    @property
    def symbol_width(self) -> int:
        return self._width

    def _leg(self, amount: Decimal, symbol: str) -> str:
        return f"{amount:12.{self._precision}f} {symbol:<{self._width}}"

    def format(self, pair: Pair) -> tuple[str, ColorTag]:
        """Feed text and color tag for the pair's latest event."""
        amount_a, amount_b = scaled_amounts(pair)
        leg_a = self._leg(amount_a, pair.symbol_a)
        leg_b = self._leg(amount_b, pair.symbol_b)

        if pair.mode is PairMode.BUY:
            left, right = f"{leg_a}  ->", f"->{leg_b}"
            color = ColorTag.POSITIVE if pair.orientation_normal else ColorTag.NEGATIVE
        elif pair.mode is PairMode.SELL:
            left, right = f"{leg_b}  ->", f"->{leg_a}"
            color = ColorTag.NEGATIVE if pair.orientation_normal else ColorTag.POSITIVE
        elif pair.mode is PairMode.MINT:
            left, right = f"{leg_a}  ->", f"<-{leg_b}"
            color = ColorTag.INFO
        elif pair.mode is PairMode.BURN:
            left, right = f"{leg_a}  <-", f"->{leg_b}"
            color = ColorTag.WARNING
        else:
            raise ValueError("Pair has no event applied yet")

        return f"{left} {right} | {price(pair):9.{self._precision}f}", color

    def build_record(self, pair: Pair, event: DecodedEvent, timestamp: datetime) -> FeedRecord:
        text, color = self.format(pair)
        return FeedRecord(
            text=text,
            color=color,
            pool_address=event.address,
            chain_id=pair.chain_id,
            timestamp=timestamp,
            tx_hash=event.tx_hash,
            mode=pair.mode,
            price=price(pair),
        )
