"""
Unit tests for main.py wiring: CLI parsing, bootstrap mode and the monitor
startup/shutdown paths.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from web3 import Web3

import main
from conftest import FTM_POOL, WFTM_USDC
from core.pair_state import PairTable
from data.fan_in import ERROR
from data.metadata_store import save_ram_file
from shared.errors import SubscriptionError


@pytest.fixture
def ram_file(tmp_path):
    path = tmp_path / "ram.data"
    save_ram_file(PairTable({FTM_POOL: WFTM_USDC}), path)
    return path


def _args(tmp_path, ram_file, *extra):
    return main.parse_args(
        ["--ram-file", str(ram_file), "--bootstrap-file", str(tmp_path / "bootstrap.data"), *extra]
    )


class TestParseArgs:
    def test_defaults(self):
        args = main.parse_args([])
        assert args.bootstrap is False
        assert args.gen_bootstrap is False
        assert args.query == []
        assert args.ram_file == "ram.data"
        assert args.bootstrap_file == "bootstrap.data"

    def test_repeatable_query(self):
        args = main.parse_args(["--query", "wftm", "--query", "wavax/usdc"])
        assert args.query == ["wftm", "wavax/usdc"]


class TestBootstrapMode:
    def test_writes_ram_file(self, tmp_path):
        bootstrap = tmp_path / "bootstrap.data"
        bootstrap.write_text(json.dumps({"250": [FTM_POOL]}))
        ram = tmp_path / "ram.data"
        args = main.parse_args(
            ["--bootstrap", "--yes", "--ram-file", str(ram), "--bootstrap-file", str(bootstrap)]
        )

        fetcher = MagicMock()
        fetcher.fetch_all = AsyncMock(return_value=PairTable({FTM_POOL: WFTM_USDC}))
        fetcher.__aenter__ = AsyncMock(return_value=fetcher)
        fetcher.__aexit__ = AsyncMock(return_value=False)
        with patch("main.TokenMetadataFetcher.from_config", return_value=fetcher) as mock_from:
            assert main.run_bootstrap(args) == 0

        assert list(mock_from.call_args[0][0]) == [250]
        fetcher.fetch_all.assert_awaited_once_with({250: [FTM_POOL]})
        fetcher.__aexit__.assert_awaited_once()
        data = json.loads(ram.read_text())
        assert data[Web3.to_checksum_address(FTM_POOL)]["symbol0"] == "WFTM"

    def test_missing_bootstrap_file(self, tmp_path, capsys):
        args = main.parse_args(
            ["--bootstrap", "--yes", "--bootstrap-file", str(tmp_path / "missing.data")]
        )
        assert main.run_bootstrap(args) == 1
        assert "Bootstrap failed" in capsys.readouterr().err


class TestMonitorMode:
    async def test_missing_ram_file(self, tmp_path, capsys):
        args = _args(tmp_path, tmp_path / "missing.data")
        assert await main.run_monitor(args) == 1
        assert "--bootstrap" in capsys.readouterr().err

    async def test_query_without_matches(self, tmp_path, ram_file, capsys):
        args = _args(tmp_path, ram_file, "--query", "nothing")
        assert await main.run_monitor(args) == 1
        assert "No pools" in capsys.readouterr().err

    async def test_gen_bootstrap_writes_file(self, tmp_path, ram_file):
        args = _args(tmp_path, ram_file, "--gen-bootstrap", "--query", "nothing")
        await main.run_monitor(args)
        data = json.loads((tmp_path / "bootstrap.data").read_text())
        assert data == {"250": [Web3.to_checksum_address(FTM_POOL)]}

    async def test_gen_bootstrap_unwritable_path(self, tmp_path, ram_file, capsys):
        target = tmp_path / "missing_dir" / "bootstrap.data"
        args = main.parse_args(
            ["--ram-file", str(ram_file), "--bootstrap-file", str(target), "--gen-bootstrap"]
        )
        assert await main.run_monitor(args) == 1
        assert "Cannot write bootstrap file" in capsys.readouterr().err
        assert not target.exists()

    async def test_all_chains_failed_exits_with_error(self, tmp_path, ram_file, capsys):
        dispatcher = MagicMock()
        dispatcher.chain_ids = [250]
        dispatcher.stop = AsyncMock()
        dispatcher.next_item = AsyncMock(
            return_value=(ERROR, SubscriptionError(250, "gave up", terminal=True))
        )
        args = _args(tmp_path, ram_file, "--no-color")

        with (
            patch("main.FanInDispatcher", return_value=dispatcher),
            patch("main.JsonFeedLogSink"),
        ):
            assert await main.run_monitor(args) == 1

        endpoint = dispatcher.add_subscriber.call_args[0][0]
        assert endpoint.chain_id == 250
        assert endpoint.addresses == (FTM_POOL,)
        dispatcher.start.assert_called_once()
        dispatcher.stop.assert_awaited_once()
        out = capsys.readouterr()
        assert "dialing FTM blockchains" in out.out
        assert "FATAL" in out.err
