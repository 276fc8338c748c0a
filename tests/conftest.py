"""
Shared pytest configuration and fixtures for the pool feed tests.

Provides sample pools, raw log builders and a patched config loader.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
from eth_abi.abi import encode as abi_encode

from core.event_decoder import EventTopics
from shared.types import Pair

# ---------------------------------------------------------------------------
# Sample pools
# ---------------------------------------------------------------------------

FTM_POOL = "0x2b4c76d0dc16be1c31d4c1dc53bf9b45987fc75c"
FTM_POOL_2 = "0xe120ffbda0d14f3bb6d6053e90e63c572a66a428"
AVAX_POOL = "0xa389f9430876455c36478deea9769b7ca4e3ddb1"
SAMPLE_TX = "0x" + "ab" * 32

WFTM_USDC = Pair(
    symbol_a="WFTM",
    symbol_b="USDC",
    decimals_a=18,
    decimals_b=6,
    chain_id=250,
)

WFTM_DAI = Pair(
    symbol_a="WFTM",
    symbol_b="DAI",
    decimals_a=18,
    decimals_b=18,
    chain_id=250,
)

WAVAX_USDC = Pair(
    symbol_a="WAVAX",
    symbol_b="USDC.e",
    decimals_a=18,
    decimals_b=6,
    chain_id=43114,
    orientation_normal=False,
)


# ---------------------------------------------------------------------------
# Raw log builders (JSON-RPC notification shape)
# ---------------------------------------------------------------------------


def make_log(
    topic: str,
    types: list[str],
    values: list[int],
    address: str = FTM_POOL,
    tx_hash: str = SAMPLE_TX,
    block_number: int = 0x1234,
) -> dict:
    return {
        "address": address,
        "topics": [topic, "0x" + "00" * 12 + "11" * 20],
        "data": "0x" + abi_encode(types, values).hex(),
        "blockNumber": hex(block_number),
        "transactionHash": tx_hash,
        "logIndex": "0x0",
    }


def swap_log(a_in: int, b_in: int, a_out: int, b_out: int, **kwargs) -> dict:
    return make_log(EventTopics.SWAP, ["uint256"] * 4, [a_in, b_in, a_out, b_out], **kwargs)


def mint_log(amount_a: int, amount_b: int, **kwargs) -> dict:
    return make_log(EventTopics.MINT, ["uint256"] * 2, [amount_a, amount_b], **kwargs)


def burn_log(amount_a: int, amount_b: int, **kwargs) -> dict:
    return make_log(EventTopics.BURN, ["uint256"] * 2, [amount_a, amount_b], **kwargs)


# ---------------------------------------------------------------------------
# Standard mock configs
# ---------------------------------------------------------------------------

STANDARD_WEBSOCKET_CONFIG = {
    "connection": {
        "max_connection_attempts": 3,
        "ping_interval_seconds": 20,
        "ping_timeout_seconds": 30,
        "close_timeout_seconds": 10,
        "max_message_bytes": 1024 * 1024,
    },
    "timeouts": {"subscription_response_timeout_seconds": 1.0},
    "reconnection": {
        "enabled": True,
        "base_delay_seconds": 2,
        "max_delay_seconds": 60,
        "jitter_max_seconds": 0.0,
    },
}

STANDARD_CHAIN_CONFIGS = {
    250: {
        "chain_id": 250,
        "name": "FTM",
        "rpc": {"http_url": "https://rpc.ftm.tools", "ws_url": "wss://wsapi.fantom.network/"},
    },
    43114: {
        "chain_id": 43114,
        "name": "AVAX",
        "rpc": {
            "http_url": "https://api.avax.network/ext/bc/C/rpc",
            "ws_url": "wss://api.avax.network/ext/bc/C/ws",
        },
    },
}


@pytest.fixture
def mock_config_loader():
    """
    Provide a mock ConfigLoader that returns standard configs.

    Usage in tests:
        def test_something(mock_config_loader):
            mock_config_loader.get_websocket_config.return_value = {...}
    """
    loader = MagicMock()
    loader.get_app_config.return_value = {
        "chains": [250, 43114],
        "files": {"ram_file": "ram.data", "bootstrap_file": "bootstrap.data"},
        "display": {"timezone": "America/New_York"},
        "logging": {"log_dir": "logs"},
    }
    loader.get_websocket_config.return_value = STANDARD_WEBSOCKET_CONFIG
    loader.get_chain_config.side_effect = lambda cid: STANDARD_CHAIN_CONFIGS.get(cid, {})
    loader.get_chain_ids.return_value = [250, 43114]
    loader.get_chain_name.side_effect = lambda cid: STANDARD_CHAIN_CONFIGS[cid]["name"]
    loader.get_ws_url.side_effect = lambda cid: STANDARD_CHAIN_CONFIGS[cid]["rpc"]["ws_url"]
    loader.get_http_url.side_effect = lambda cid: STANDARD_CHAIN_CONFIGS[cid]["rpc"]["http_url"]
    loader.get_abi.return_value = []
    return loader


# ---------------------------------------------------------------------------
# asyncio.Queue fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def log_queue():
    return asyncio.Queue()


@pytest.fixture
def error_queue():
    return asyncio.Queue()
