"""
Control loop of the pool feed.

The only owner of the PairTable. Pulls items from the fan-in dispatcher one
at a time and handles each fully (decode -> state update -> format -> emit)
before taking the next, so pool state needs no locking.

Subscription errors only change the affected chain's status. The loop fails
with AllChainsFailedError once every chain has reported a terminal error.

Usage:
    monitor = PoolMonitor(table, dispatcher, EventDecoder(), formatter, [ConsoleSink()])
    await monitor.run()
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Sequence

from data.fan_in import LOG
from monitor_logging.logger_manager import setup_module_logger
from shared.errors import AllChainsFailedError, SubscriptionError
from shared.types import ChainStatus, FeedRecord, Pair, RawLog

if TYPE_CHECKING:
    from core.event_decoder import EventDecoder
    from core.feed_sink import FeedSink
    from core.formatter import FeedFormatter
    from core.pair_state import PairTable
    from data.fan_in import FanInDispatcher


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PoolMonitor:
    def __init__(
        self,
        table: PairTable,
        dispatcher: FanInDispatcher,
        decoder: EventDecoder,
        formatter: FeedFormatter,
        sinks: Sequence[FeedSink],
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._table = table
        self._dispatcher = dispatcher
        self._decoder = decoder
        self._formatter = formatter
        self._sinks = list(sinks)
        self._clock = clock

        self._status: dict[int, ChainStatus] = {
            chain_id: ChainStatus.CONNECTING for chain_id in dispatcher.chain_ids
        }
        self._events_processed = 0
        self._events_dropped = 0
        self._running = False

        self._logger = setup_module_logger(
            "pool_monitor",
            "pool_monitor.log",
            level=logging.DEBUG,
            module_folder="Monitor_Logs",
            use_json_formatter=True,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def chain_status(self) -> dict[int, ChainStatus]:
        return dict(self._status)

    @property
    def events_processed(self) -> int:
        return self._events_processed

    @property
    def events_dropped(self) -> int:
        return self._events_dropped

    def get_pair(self, address: str) -> Pair | None:
        return self._table.get(address)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def stop(self) -> None:
        self._running = False

    async def run(self) -> None:
        """Consume the fan-in streams until stopped or every chain has failed."""
        self._running = True
        self._logger.info(
            "Monitoring %d pools on chains %s", len(self._table), sorted(self._status)
        )
        while self._running:
            kind, item = await self._dispatcher.next_item()
            if kind == LOG:
                self.handle_log(item)
            else:
                self.handle_error(item)

    def handle_log(self, raw: RawLog) -> FeedRecord | None:
        self._mark(raw.chain_id, ChainStatus.HEALTHY)

        event = self._decoder.decode(raw.log, chain_id=raw.chain_id)
        if event is None:
            self._events_dropped += 1
            self._logger.debug(
                "Dropped undecodable log on chain %s", raw.chain_id,
                extra={"chain_id": raw.chain_id},
            )
            return None

        pair = self._table.apply(event)
        if pair is None:
            self._events_dropped += 1
            self._logger.debug(
                "Ignoring %s from unmonitored pool %s",
                event.kind.value,
                event.address,
                extra={
                    "chain_id": event.chain_id,
                    "pool_address": event.address,
                    "event_type": event.kind.value,
                    "tx_hash": event.tx_hash,
                    "block_number": event.block_number,
                },
            )
            return None

        record = self._formatter.build_record(pair, event, self._clock())
        for sink in self._sinks:
            sink.emit(record)
        self._events_processed += 1
        return record

    def handle_error(self, error: SubscriptionError) -> None:
        status = ChainStatus.FAILED if error.terminal else ChainStatus.RECONNECTING
        self._mark(error.chain_id, status)
        context = {"chain_id": error.chain_id, "error": str(error)}
        if error.terminal:
            self._logger.error("Chain %s failed: %s", error.chain_id, error, extra=context)
        else:
            self._logger.warning("Chain %s reconnecting: %s", error.chain_id, error, extra=context)

        if self._status and all(s is ChainStatus.FAILED for s in self._status.values()):
            raise AllChainsFailedError(f"All chain subscriptions failed; last error: {error}")

    def _mark(self, chain_id: int, status: ChainStatus) -> None:
        previous = self._status.get(chain_id)
        if previous is status:
            return
        # A failed chain stays failed; its subscriber has stopped
        if previous is ChainStatus.FAILED:
            return
        self._status[chain_id] = status
        self._logger.info(
            "Chain %s status: %s -> %s",
            chain_id,
            previous.value if previous else None,
            status.value,
        )
