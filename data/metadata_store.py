"""
Pool metadata persistence.

Two JSON files:

    ram file        {"<pool address>": {"symbol0": "WFTM", "symbol1": "USDC",
                                        "decimals0": 18, "decimals1": 6,
                                        "chainID": 250, "normal": true}, ...}
    bootstrap file  {"<chain id>": ["<pool address>", ...], ...}

The ram file is what a normal run monitors. The bootstrap file is the short
list of pools that --bootstrap expands into a ram file via RPC.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from web3 import Web3

from config.loader import ConfigLoader, get_config
from core.pair_state import PairTable
from shared.errors import MetadataError
from shared.types import ChainEndpoint, Pair


def _display_address(address: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except ValueError:
        return address


def _read_json(path: str | Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise MetadataError(f"Metadata file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise MetadataError(f"Invalid JSON in {path}: {e}") from e


def _write_json(path: str | Path, data: Any) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
    except OSError as e:
        raise MetadataError(f"Cannot write {path}: {e}") from e


# ---------------------------------------------------------------------------
# Ram file
# ---------------------------------------------------------------------------


def pair_from_record(record: dict[str, Any]) -> Pair:
    try:
        return Pair(
            symbol_a=str(record["symbol0"]),
            symbol_b=str(record["symbol1"]),
            decimals_a=int(record["decimals0"]),
            decimals_b=int(record["decimals1"]),
            chain_id=int(record["chainID"]),
            orientation_normal=bool(record.get("normal", True)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MetadataError(f"Malformed pool record {record!r}: {e}") from e


def pair_to_record(pair: Pair) -> dict[str, Any]:
    return {
        "symbol0": pair.symbol_a,
        "symbol1": pair.symbol_b,
        "decimals0": pair.decimals_a,
        "decimals1": pair.decimals_b,
        "chainID": pair.chain_id,
        "normal": pair.orientation_normal,
    }


def load_ram_file(path: str | Path) -> PairTable:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise MetadataError(f"{path}: expected an object of pool address -> pool record")
    return PairTable({address: pair_from_record(record) for address, record in data.items()})


def save_ram_file(table: PairTable, path: str | Path) -> None:
    _write_json(
        path,
        {_display_address(address): pair_to_record(pair) for address, pair in table.items()},
    )


# ---------------------------------------------------------------------------
# Bootstrap file
# ---------------------------------------------------------------------------


def load_bootstrap_file(path: str | Path) -> dict[int, list[str]]:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise MetadataError(f"{path}: expected an object of chain id -> pool addresses")
    bootstrap: dict[int, list[str]] = {}
    for chain_id, addresses in data.items():
        try:
            cid = int(chain_id)
        except ValueError as e:
            raise MetadataError(f"{path}: invalid chain id {chain_id!r}") from e
        if not isinstance(addresses, list):
            raise MetadataError(f"{path}: chain {chain_id} must map to a list of addresses")
        bootstrap[cid] = [str(a) for a in addresses]
    return bootstrap


def save_bootstrap_file(table: PairTable, path: str | Path) -> None:
    bootstrap: dict[str, list[str]] = {}
    for address, pair in table.items():
        bootstrap.setdefault(str(pair.chain_id), []).append(_display_address(address))
    _write_json(path, bootstrap)


# ---------------------------------------------------------------------------
# Chain endpoints
# ---------------------------------------------------------------------------


def build_endpoints(
    table: PairTable,
    chain_ids: Iterable[int] | None = None,
    config: ConfigLoader | None = None,
) -> list[ChainEndpoint]:
    """
    One endpoint per configured chain that has at least one pool in the table.

    Pools on chains without configuration are left out.
    """
    config = config or get_config()
    allowed = set(chain_ids if chain_ids is not None else config.get_chain_ids())
    endpoints = []
    for chain_id in table.chain_ids():
        if chain_id not in allowed:
            continue
        endpoints.append(
            ChainEndpoint(
                chain_id=chain_id,
                name=config.get_chain_name(chain_id),
                ws_url=config.get_ws_url(chain_id),
                http_url=config.get_http_url(chain_id),
                addresses=tuple(table.addresses_for_chain(chain_id)),
            )
        )
    return endpoints
