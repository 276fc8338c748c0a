"""
Unit tests for data/fan_in.py.

Tests cover per-chain ordering, no lost items between the log and error
streams, crash reporting and shutdown.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from conftest import FTM_POOL
from data.fan_in import ERROR, LOG
from shared.errors import SubscriptionError
from shared.types import ChainEndpoint, RawLog


class FakeSource:
    """Pushes a fixed list of logs, yielding to the loop between each one."""

    def __init__(self, chain_id, queue, count=5, crash=None):
        self.chain_id = chain_id
        self._queue = queue
        self._count = count
        self._crash = crash
        self.stopped = False

    async def run(self):
        for i in range(self._count):
            await self._queue.put(RawLog(self.chain_id, {"seq": i}))
            await asyncio.sleep(0)
        if self._crash is not None:
            raise self._crash
        await asyncio.Event().wait()

    def stop(self):
        self.stopped = True


@pytest.fixture
async def dispatcher():
    with patch("data.fan_in.setup_module_logger") as mock_logger:
        mock_logger.return_value = MagicMock()
        from data.fan_in import FanInDispatcher

        fan_in = FanInDispatcher()
    yield fan_in
    await fan_in.stop()


class TestOrdering:
    async def test_per_chain_order_and_no_loss(self, dispatcher):
        dispatcher.register(FakeSource(250, dispatcher.log_queue, count=5))
        dispatcher.register(FakeSource(43114, dispatcher.log_queue, count=5))
        dispatcher.start()

        seen: dict[int, list[int]] = {250: [], 43114: []}
        for _ in range(10):
            kind, item = await asyncio.wait_for(dispatcher.next_item(), timeout=1)
            assert kind == LOG
            seen[item.chain_id].append(item.log["seq"])

        assert seen == {250: [0, 1, 2, 3, 4], 43114: [0, 1, 2, 3, 4]}
        assert dispatcher.chain_ids == [250, 43114]

    async def test_log_wins_tie_and_error_is_kept(self, dispatcher):
        error = SubscriptionError(250, "dropped")
        dispatcher.error_queue.put_nowait(error)
        dispatcher.log_queue.put_nowait(RawLog(250, {"seq": 0}))

        assert await dispatcher.next_item() == (LOG, RawLog(250, {"seq": 0}))
        assert await dispatcher.next_item() == (ERROR, error)

    async def test_pending_log_getter_is_not_lost(self, dispatcher):
        error = SubscriptionError(43114, "dropped")
        dispatcher.error_queue.put_nowait(error)
        assert await dispatcher.next_item() == (ERROR, error)

        # The log getter created by the previous call is still waiting
        dispatcher.log_queue.put_nowait(RawLog(250, {"seq": 1}))
        kind, item = await asyncio.wait_for(dispatcher.next_item(), timeout=1)
        assert (kind, item) == (LOG, RawLog(250, {"seq": 1}))
        assert dispatcher.log_queue.empty()


class TestLifecycle:
    async def test_crashed_source_posts_terminal_error(self, dispatcher):
        dispatcher.register(FakeSource(250, dispatcher.log_queue, count=0, crash=RuntimeError("boom")))
        dispatcher.start()

        kind, item = await asyncio.wait_for(dispatcher.next_item(), timeout=1)
        assert kind == ERROR
        assert item.chain_id == 250
        assert item.terminal is True
        assert isinstance(item.__cause__, RuntimeError)

    async def test_stop_cancels_sources(self, dispatcher):
        source = FakeSource(250, dispatcher.log_queue, count=0)
        dispatcher.register(source)
        dispatcher.start()
        await asyncio.sleep(0)

        await dispatcher.stop()

        assert source.stopped is True
        assert all(task.done() for task in dispatcher._tasks)
        assert dispatcher.error_queue.empty()

    async def test_add_subscriber_shares_queues(self, dispatcher):
        endpoint = ChainEndpoint(250, "FTM", "wss://x", "https://x", (FTM_POOL,))
        with patch("data.fan_in.ChainSubscriber") as mock_cls:
            mock_cls.return_value.chain_id = 250
            subscriber = dispatcher.add_subscriber(endpoint, ["0xtopic"], ws_config={})

        mock_cls.assert_called_once_with(
            endpoint, ["0xtopic"], dispatcher.log_queue, dispatcher.error_queue, ws_config={}
        )
        assert subscriber is mock_cls.return_value
        assert dispatcher.chain_ids == [250]
