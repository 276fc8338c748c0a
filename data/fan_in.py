"""
Fan-in of all chain subscriptions into one log stream and one error stream.

Every subscriber writes into the same two FIFO queues, so logs from one chain
keep their delivery order; across chains the order is first-arrived. The
single control loop pulls from both streams with next_item(), which waits
cooperatively on whichever queue yields first.

Usage:
    dispatcher = FanInDispatcher()
    for endpoint in endpoints:
        dispatcher.add_subscriber(endpoint, EventDecoder.topics_filter())
    dispatcher.start()
    kind, item = await dispatcher.next_item()
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Literal, Protocol, Union

from data.chain_subscriber import ChainSubscriber
from monitor_logging.logger_manager import setup_module_logger
from shared.errors import SubscriptionError
from shared.types import ChainEndpoint, RawLog

LOG = "log"
ERROR = "error"

FanInItem = tuple[Literal["log", "error"], Union[RawLog, SubscriptionError]]


class LogSource(Protocol):
    chain_id: int

    async def run(self) -> None: ...

    def stop(self) -> None: ...


class FanInDispatcher:
    def __init__(self, sources: Iterable[LogSource] = ()) -> None:
        self._log_queue: asyncio.Queue[RawLog] = asyncio.Queue()
        self._error_queue: asyncio.Queue[SubscriptionError] = asyncio.Queue()
        self._sources: list[LogSource] = list(sources)
        self._tasks: list[asyncio.Task[None]] = []
        self._log_getter: asyncio.Future[Any] | None = None
        self._error_getter: asyncio.Future[Any] | None = None

        self._logger = setup_module_logger(
            "fan_in", "fan_in.log", module_folder="Subscriber_Logs"
        )

    @property
    def log_queue(self) -> asyncio.Queue:
        return self._log_queue

    @property
    def error_queue(self) -> asyncio.Queue:
        return self._error_queue

    @property
    def chain_ids(self) -> list[int]:
        return [source.chain_id for source in self._sources]

    # ------------------------------------------------------------------
    # Registration / lifecycle
    # ------------------------------------------------------------------

    def add_subscriber(
        self,
        endpoint: ChainEndpoint,
        topics: list[str],
        ws_config: dict[str, Any] | None = None,
    ) -> ChainSubscriber:
        subscriber = ChainSubscriber(
            endpoint, topics, self._log_queue, self._error_queue, ws_config=ws_config
        )
        self.register(subscriber)
        return subscriber

    def register(self, source: LogSource) -> None:
        self._sources.append(source)

    def start(self) -> None:
        """Launch one task per registered source."""
        for source in self._sources:
            task = asyncio.create_task(source.run(), name=f"subscriber_{source.chain_id}")
            task.add_done_callback(
                lambda done_task, cid=source.chain_id: self._task_done_callback(done_task, cid)
            )
            self._tasks.append(task)
        self._logger.info("Started %d subscriber task(s): %s", len(self._tasks), self.chain_ids)

    def _task_done_callback(self, task: asyncio.Task[None], chain_id: int) -> None:
        """A subscriber task that dies unexpectedly counts as a terminal chain failure."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.critical(
                "Subscriber %s crashed: %s", task.get_name(), exc, exc_info=exc
            )
            error = SubscriptionError(chain_id, f"subscriber crashed: {exc}", terminal=True)
            error.__cause__ = exc
            self._error_queue.put_nowait(error)

    async def stop(self) -> None:
        for source in self._sources:
            source.stop()
        pending = [t for t in self._tasks if not t.done()]
        for getter in (self._log_getter, self._error_getter):
            if getter is not None and not getter.done():
                getter.cancel()
                pending.append(getter)
        for task in self._tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._log_getter = None
        self._error_getter = None
        self._logger.info("Fan-in stopped")

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    async def next_item(self) -> FanInItem:
        """
        Next log or error, whichever is available first.

        A getter that completes while the other one wins is kept and served on
        the following call, so no item is ever dropped. Logs win ties.
        """
        if self._log_getter is None:
            self._log_getter = asyncio.ensure_future(self._log_queue.get())
        if self._error_getter is None:
            self._error_getter = asyncio.ensure_future(self._error_queue.get())

        if not (self._log_getter.done() or self._error_getter.done()):
            await asyncio.wait(
                {self._log_getter, self._error_getter},
                return_when=asyncio.FIRST_COMPLETED,
            )

        if self._log_getter.done():
            item = self._log_getter.result()
            self._log_getter = None
            return LOG, item
        error = self._error_getter.result()
        self._error_getter = None
        return ERROR, error
