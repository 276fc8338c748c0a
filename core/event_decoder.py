"""
Pool event decoder.

Identifies Uniswap V2 pair events (Swap, Mint, Burn) by topic0 and decodes
their non-indexed data into typed field records.

Usage:
    decoder = EventDecoder()
    event = decoder.decode(raw_log, chain_id=250)
    if event is not None:
        ...
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from eth_abi.abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from monitor_logging.logger_manager import setup_module_logger
from shared.constants import (
    BURN_DATA_TYPES,
    BURN_SIGNATURE,
    MINT_DATA_TYPES,
    MINT_SIGNATURE,
    SWAP_DATA_TYPES,
    SWAP_SIGNATURE,
)
from shared.types import (
    BurnFields,
    DecodedEvent,
    EventFields,
    EventKind,
    MintFields,
    SwapFields,
)


class EventTopics:
    """Canonical topic0 hashes of the monitored pair events."""

    SWAP = Web3.to_hex(Web3.keccak(text=SWAP_SIGNATURE))
    MINT = Web3.to_hex(Web3.keccak(text=MINT_SIGNATURE))
    BURN = Web3.to_hex(Web3.keccak(text=BURN_SIGNATURE))


# topic0 -> (kind, data types, field builder)
EVENT_TOPIC_MAP: dict[str, tuple[EventKind, list[str], Callable[..., EventFields]]] = {
    EventTopics.SWAP: (EventKind.SWAP, SWAP_DATA_TYPES, SwapFields),
    EventTopics.MINT: (EventKind.MINT, MINT_DATA_TYPES, MintFields),
    EventTopics.BURN: (EventKind.BURN, BURN_DATA_TYPES, BurnFields),
}


def _hex_str(value: Any) -> str:
    """Normalize bytes / HexBytes / str to a lower-case 0x-prefixed string."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value).lower()
    return text if text.startswith("0x") else "0x" + text


def _int_value(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value or 0)


def _data_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value or "0x")
    return bytes.fromhex(text[2:] if text.startswith("0x") else text)


class EventDecoder:
    """Stateless decoder from raw logs to DecodedEvent values."""

    def __init__(self) -> None:
        self._logger = setup_module_logger(
            "event_decoder",
            "event_decode.log",
            level=logging.DEBUG,
            module_folder="Decoder_Logs",
            use_json_formatter=True,
        )

    @staticmethod
    def topics_filter() -> list[str]:
        """topic0 alternatives for the eth_subscribe log filter."""
        return list(EVENT_TOPIC_MAP.keys())

    def decode(self, log: dict[str, Any], chain_id: int | None = None) -> DecodedEvent | None:
        """
        Decode one raw log entry.

        Accepts JSON-RPC notification dicts (hex strings) as well as web3
        AttributeDicts (HexBytes values). Returns None for logs without topics,
        unknown topics and malformed payloads; never raises for bad input.
        """
        topics = log.get("topics") or []
        if not topics:
            return None

        address = _hex_str(log.get("address", ""))
        tx_hash = _hex_str(log.get("transactionHash", "")) if log.get("transactionHash") else ""

        topic0 = _hex_str(topics[0])
        event_info = EVENT_TOPIC_MAP.get(topic0)
        if event_info is None:
            self._logger.debug(
                "Ignoring unknown topic %s",
                topic0,
                extra={"chain_id": chain_id, "pool_address": address, "tx_hash": tx_hash},
            )
            return None
        kind, data_types, build_fields = event_info

        try:
            block_number = _int_value(log.get("blockNumber", 0))
            log_index = _int_value(log.get("logIndex", 0))
            values = abi_decode(data_types, _data_bytes(log.get("data", "0x")))
        except (DecodingError, ValueError, TypeError) as e:
            self._logger.warning(
                "Failed to decode %s at %s tx %s: %s",
                kind.value,
                address,
                tx_hash,
                e,
                extra={
                    "chain_id": chain_id,
                    "pool_address": address,
                    "event_type": kind.value,
                    "tx_hash": tx_hash,
                    "error": str(e),
                },
            )
            return None

        return DecodedEvent(
            kind=kind,
            address=address,
            fields=build_fields(*values),
            tx_hash=tx_hash,
            block_number=block_number,
            log_index=log_index,
            chain_id=chain_id,
        )
