"""
Shared data types for the DEX pool feed.

Centralized dataclasses and enums used across all modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventKind(Enum):
    SWAP = "Swap"
    MINT = "Mint"  # liquidity added
    BURN = "Burn"  # liquidity removed


class PairMode(Enum):
    BUY = "buy"
    SELL = "sell"
    MINT = "mint"
    BURN = "burn"


class ColorTag(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    INFO = "info"
    WARNING = "warning"


class ChainStatus(Enum):
    CONNECTING = "connecting"
    HEALTHY = "healthy"
    RECONNECTING = "reconnecting"
    FAILED = "failed"  # retries exhausted, no further logs from this chain


# ---------------------------------------------------------------------------
# Pool state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Pair:
    """
    One monitored pool contract.

    Token metadata and orientation are fixed at bootstrap. amount_a/amount_b
    and mode only ever hold the latest event's values; updates replace the
    whole value so they change together.
    """

    symbol_a: str
    symbol_b: str
    decimals_a: int
    decimals_b: int
    chain_id: int
    orientation_normal: bool = True  # True: price = A/B, False: B/A
    amount_a: int = 0
    amount_b: int = 0
    mode: PairMode | None = None


@dataclass(frozen=True)
class ChainEndpoint:
    chain_id: int
    name: str
    ws_url: str
    http_url: str
    addresses: tuple[str, ...]


# ---------------------------------------------------------------------------
# Decoded events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SwapFields:
    amount_a_in: int
    amount_b_in: int
    amount_a_out: int
    amount_b_out: int


@dataclass(frozen=True)
class MintFields:
    amount_a: int
    amount_b: int


@dataclass(frozen=True)
class BurnFields:
    amount_a: int
    amount_b: int


EventFields = Union[SwapFields, MintFields, BurnFields]


@dataclass(frozen=True)
class DecodedEvent:
    kind: EventKind
    address: str  # lower-case hex
    fields: EventFields
    tx_hash: str = ""
    block_number: int = 0
    log_index: int = 0
    chain_id: int | None = None


@dataclass(frozen=True)
class RawLog:
    """A log entry as delivered by one chain's subscription."""

    chain_id: int
    log: dict[str, Any]


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeedRecord:
    text: str
    color: ColorTag
    pool_address: str
    chain_id: int
    timestamp: datetime
    tx_hash: str
    mode: PairMode
    price: Decimal
