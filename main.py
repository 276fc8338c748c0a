"""
DEX pool feed: main entrypoint.

Single-process asyncio runner: one subscription task per chain feeding a
fan-in dispatcher, and one control loop that decodes events, updates pool
state and prints the live feed.

Usage:
    python main.py                          # monitor pools listed in ram.data
    python main.py --query wftm/usdc        # only pools matching a symbol prefix
    python main.py --gen-bootstrap          # rewrite bootstrap.data from ram.data, then monitor
    python main.py --bootstrap              # rebuild ram.data from bootstrap.data via RPC
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Sequence

from dotenv import load_dotenv

from config.loader import get_config, get_env_var
from config.validate import ConfigValidationError, validate_all_configs
from core.event_decoder import EventDecoder
from core.feed_sink import ConsoleSink, FeedSink, JsonFeedLogSink
from core.formatter import FeedFormatter
from core.monitor import PoolMonitor
from core.pair_state import PairTable
from core.query_filter import QueryFilter
from data.fan_in import FanInDispatcher
from data.metadata_store import (
    build_endpoints,
    load_bootstrap_file,
    load_ram_file,
    save_bootstrap_file,
    save_ram_file,
)
from data.token_metadata import TokenMetadataFetcher
from monitor_logging.logger_manager import create_module_log_directories, setup_module_logger
from shared.constants import (
    DEFAULT_AMOUNT_PRECISION,
    DEFAULT_DISPLAY_TIMEZONE,
    DEFAULT_MIN_SYMBOL_WIDTH,
    DEFAULT_SHORT_HASH_LENGTH,
)
from shared.errors import AllChainsFailedError, MetadataError

_logger = setup_module_logger("main", "main.log", module_folder="Main_Logs")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    cfg = get_config()
    parser = argparse.ArgumentParser(description="Live Swap/Mint/Burn feed for DEX liquidity pools")
    parser.add_argument(
        "--bootstrap",
        action="store_true",
        help="fetch pool metadata for the addresses in the bootstrap file and overwrite the ram file",
    )
    parser.add_argument(
        "--gen-bootstrap",
        action="store_true",
        help="regenerate the bootstrap file from the current ram file before monitoring",
    )
    parser.add_argument(
        "--query",
        action="append",
        default=[],
        metavar="TERM",
        help="only monitor pools whose symbols match TERM (prefix, or A/B in either order); repeatable",
    )
    parser.add_argument("--ram-file", default=cfg.get_ram_file())
    parser.add_argument("--bootstrap-file", default=cfg.get_bootstrap_file())
    parser.add_argument("--yes", action="store_true", help="skip confirmation prompts")
    parser.add_argument("--no-color", action="store_true", help="plain console output")
    return parser.parse_args(argv)


def _confirm(prompt: str, assume_yes: bool) -> None:
    if assume_yes:
        return
    print(prompt, end="", flush=True)
    input()


# ---------------------------------------------------------------------------
# Bootstrap mode
# ---------------------------------------------------------------------------


async def _fetch_pool_metadata(bootstrap: dict[int, list[str]]) -> PairTable:
    async with TokenMetadataFetcher.from_config(bootstrap.keys()) as fetcher:
        return await fetcher.fetch_all(bootstrap)


def run_bootstrap(args: argparse.Namespace) -> int:
    """Expand the bootstrap file into a ram file by querying each pool's tokens."""
    _confirm(f"Load addresses in {args.bootstrap_file} and fetch data? [press enter]", args.yes)
    try:
        bootstrap = load_bootstrap_file(args.bootstrap_file)
    except MetadataError as exc:
        _logger.critical("Bootstrap failed: %s", exc)
        print(f"Bootstrap failed: {exc}", file=sys.stderr)
        return 1

    print("Fetching data from blockchain...")
    table = asyncio.run(_fetch_pool_metadata(bootstrap))
    total = sum(len(v) for v in bootstrap.values())
    print(f"Fetched {len(table)}/{total} pools.")

    _confirm(f"Success! Overwrite {args.ram_file} with fetched data? [press enter]", args.yes)
    print(f"Overwriting {args.ram_file}...")
    try:
        save_ram_file(table, args.ram_file)
    except MetadataError as exc:
        _logger.critical("Saving ram file failed: %s", exc)
        print(f"Saving ram file failed: {exc}", file=sys.stderr)
        return 1
    print("Success!")
    _logger.info("Bootstrap wrote %d pools to %s", len(table), args.ram_file)
    return 0


# ---------------------------------------------------------------------------
# Task done callback: detect unhandled exceptions
# ---------------------------------------------------------------------------


def _task_done_callback(task: asyncio.Task[None], shutdown_event: asyncio.Event) -> None:
    """Called when the control loop finishes (normally or with error)."""
    try:
        exc = task.exception()
    except asyncio.CancelledError:
        _logger.info("Task %s cancelled", task.get_name())
        return
    if exc is not None and not isinstance(exc, AllChainsFailedError):
        _logger.critical(
            "Task %s failed with unhandled exception: %s", task.get_name(), exc, exc_info=exc
        )
    shutdown_event.set()


# ---------------------------------------------------------------------------
# Monitor mode
# ---------------------------------------------------------------------------


async def run_monitor(args: argparse.Namespace) -> int:
    """Wire all components and run the feed until shutdown or total failure."""
    try:
        validate_all_configs()
    except ConfigValidationError as exc:
        _logger.critical("Config validation failed:\n%s", exc)
        print(exc, file=sys.stderr)
        return 1

    cfg = get_config()
    app_cfg = cfg.get_app_config()
    display_cfg = app_cfg.get("display", {})

    try:
        table = load_ram_file(args.ram_file)
    except MetadataError as exc:
        _logger.critical("Cannot load pool metadata: %s", exc)
        print(f"Make sure {args.ram_file} is in the current directory", file=sys.stderr)
        print("Run with --bootstrap and a bootstrap file to create it", file=sys.stderr)
        return 1

    if args.gen_bootstrap:
        try:
            save_bootstrap_file(table, args.bootstrap_file)
        except MetadataError as exc:
            _logger.critical("Cannot write bootstrap file: %s", exc)
            print(f"Cannot write bootstrap file: {exc}", file=sys.stderr)
            return 1
        _logger.info("Wrote bootstrap file %s", args.bootstrap_file)

    query = QueryFilter.parse(args.query)
    if not query.is_empty():
        table = table.filter(query)
    if len(table) == 0:
        _logger.critical("No pools to monitor (query: %s)", args.query)
        print("No pools to monitor.", file=sys.stderr)
        return 1

    endpoints = build_endpoints(table, config=cfg)
    if not endpoints:
        _logger.critical("None of the pools belong to a configured chain")
        print("None of the pools belong to a configured chain.", file=sys.stderr)
        return 1

    names = " and ".join(e.name for e in endpoints)
    print(f"dialing {names} blockchains...")
    _logger.info("=" * 60)
    _logger.info("Pool feed starting")
    _logger.info("=" * 60)
    for endpoint in endpoints:
        _logger.info("  %-8s: %d pools via %s", endpoint.name, len(endpoint.addresses), endpoint.ws_url)

    decoder = EventDecoder()
    dispatcher = FanInDispatcher()
    for endpoint in endpoints:
        dispatcher.add_subscriber(endpoint, decoder.topics_filter())

    formatter = FeedFormatter.for_table(
        table,
        min_width=display_cfg.get("min_symbol_width", DEFAULT_MIN_SYMBOL_WIDTH),
        amount_precision=display_cfg.get("amount_precision", DEFAULT_AMOUNT_PRECISION),
    )
    sinks: list[FeedSink] = [
        ConsoleSink(
            timezone=get_env_var(
                "DISPLAY_TIMEZONE", display_cfg.get("timezone", DEFAULT_DISPLAY_TIMEZONE), str
            ),
            short_hash_length=display_cfg.get("short_hash_length", DEFAULT_SHORT_HASH_LENGTH),
            use_color=not args.no_color,
        )
    ]
    feed_log_cfg = app_cfg.get("feed_log", {})
    if feed_log_cfg.get("enabled", False):
        sinks.append(JsonFeedLogSink(feed_log_cfg.get("log_file", "feed.jsonl")))

    monitor = PoolMonitor(table, dispatcher, decoder, formatter, sinks)

    # ------------------------------------------------------------------
    # Signal handling for graceful shutdown
    # ------------------------------------------------------------------
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(sig: signal.Signals) -> None:
        _logger.info("Received %s, initiating graceful shutdown", sig.name)
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    dispatcher.start()
    task_monitor = asyncio.create_task(monitor.run(), name="pool_monitor")
    task_monitor.add_done_callback(lambda t: _task_done_callback(t, shutdown_event))
    print("successfully initialized! listening on the blockchain for swap events...")

    exit_code = 0
    try:
        await shutdown_event.wait()
    finally:
        _logger.info("Shutting down, stopping subscribers")
        monitor.stop()
        await dispatcher.stop()
        if not task_monitor.done():
            task_monitor.cancel()
        results = await asyncio.gather(task_monitor, return_exceptions=True)
        result = results[0]
        if isinstance(result, AllChainsFailedError):
            _logger.critical("%s", result)
            print(f"FATAL: {result}", file=sys.stderr)
            exit_code = 1
        elif isinstance(result, Exception):
            _logger.error("Monitor exited with error: %s", result)
            exit_code = 1
        _logger.info(
            "Shutdown complete (%d events shown, %d dropped)",
            monitor.events_processed,
            monitor.events_dropped,
        )
    return exit_code


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> int:
    """Synchronous entry point."""
    load_dotenv()
    create_module_log_directories()
    args = parse_args(argv)

    if args.bootstrap:
        return run_bootstrap(args)

    try:
        return asyncio.run(run_monitor(args))
    except KeyboardInterrupt:
        _logger.info("Interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
