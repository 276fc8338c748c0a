"""
Per-chain log subscription over WebSocket.

Connects to one chain's node, sends eth_subscribe("logs", filter) for the
chain's pool addresses and the Swap/Mint/Burn topics, and forwards every
notification into the shared log queue in delivery order. Failures are
reported into the shared error queue; the subscriber then reconnects with
exponential backoff plus jitter until max_connection_attempts consecutive
failures, after which it posts a terminal error and stops.

The subscriber never decodes logs or touches pool state.

Usage:
    subscriber = ChainSubscriber(endpoint, EventDecoder.topics_filter(), log_queue, error_queue)
    asyncio.create_task(subscriber.run())
"""

from __future__ import annotations

import asyncio
import json
import random
from typing import Any

import websockets
from web3 import Web3

from config.loader import get_config
from monitor_logging.logger_manager import setup_module_logger
from shared.errors import SubscriptionError
from shared.types import ChainEndpoint, RawLog


class ChainSubscriber:
    def __init__(
        self,
        endpoint: ChainEndpoint,
        topics: list[str],
        log_queue: asyncio.Queue,
        error_queue: asyncio.Queue,
        ws_config: dict[str, Any] | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._topics = list(topics)
        self._log_queue = log_queue
        self._error_queue = error_queue

        if ws_config is None:
            ws_config = get_config().get_websocket_config()
        conn_cfg = ws_config.get("connection", {})
        timeout_cfg = ws_config.get("timeouts", {})
        reconnect_cfg = ws_config.get("reconnection", {})

        self._max_attempts: int = conn_cfg.get("max_connection_attempts", 10)
        self._ping_interval: float = conn_cfg.get("ping_interval_seconds", 20)
        self._ping_timeout: float = conn_cfg.get("ping_timeout_seconds", 30)
        self._close_timeout: float = conn_cfg.get("close_timeout_seconds", 10)
        self._max_size: int = conn_cfg.get("max_message_bytes", 10 * 1024 * 1024)
        self._subscription_timeout: float = timeout_cfg.get(
            "subscription_response_timeout_seconds", 15.0
        )
        self._reconnect_enabled: bool = reconnect_cfg.get("enabled", True)
        self._base_delay: float = reconnect_cfg.get("base_delay_seconds", 2)
        self._max_delay: float = reconnect_cfg.get("max_delay_seconds", 60)
        self._jitter_max: float = reconnect_cfg.get("jitter_max_seconds", 1.0)

        self._retry_count = 0
        self._running = False
        self._subscription_id: str | None = None

        self._logger = setup_module_logger(
            f"subscriber_{endpoint.chain_id}",
            f"subscriber_{endpoint.chain_id}.log",
            module_folder="Subscriber_Logs",
        )

    @property
    def chain_id(self) -> int:
        return self._endpoint.chain_id

    @property
    def endpoint(self) -> ChainEndpoint:
        return self._endpoint

    def stop(self) -> None:
        self._running = False

    # ------------------------------------------------------------------
    # Subscription payload
    # ------------------------------------------------------------------

    def build_subscription_params(self) -> dict[str, Any]:
        """eth_subscribe request filtered to this chain's pools and the event topics."""
        checksum_addresses = []
        for addr in self._endpoint.addresses:
            try:
                checksum_addresses.append(Web3.to_checksum_address(addr))
            except ValueError:
                checksum_addresses.append(addr)

        return {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_subscribe",
            "params": [
                "logs",
                {
                    "address": checksum_addresses,
                    # topic[0] may be any of the monitored events
                    "topics": [self._topics],
                },
            ],
        }

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Subscribe and stream until stopped or retries are exhausted."""
        self._running = True
        while self._running:
            try:
                await self._stream_once()
            except asyncio.CancelledError:
                self._logger.info("[%s] Cancelled, shutting down.", self._endpoint.name)
                raise
            except Exception as e:
                if not self._running:
                    break
                self._retry_count += 1
                terminal = (not self._reconnect_enabled) or self._retry_count >= self._max_attempts
                error = SubscriptionError(
                    self._endpoint.chain_id,
                    f"{self._endpoint.name} subscription failed: {e}",
                    terminal=terminal,
                )
                error.__cause__ = e
                await self._error_queue.put(error)

                if terminal:
                    self._logger.critical(
                        "[%s] Giving up after %d attempt(s): %s",
                        self._endpoint.name,
                        self._retry_count,
                        e,
                    )
                    self._running = False
                    break

                delay = self._backoff_delay()
                self._logger.warning(
                    "[%s] Subscription error: %s. Retry %d/%d in %.1fs",
                    self._endpoint.name,
                    e,
                    self._retry_count,
                    self._max_attempts,
                    delay,
                )
                await asyncio.sleep(delay)

    def _backoff_delay(self) -> float:
        return min(
            self._base_delay * (2**self._retry_count) + random.uniform(0, self._jitter_max),
            self._max_delay,
        )

    async def _stream_once(self) -> None:
        """One connection lifetime. Always ends by raising."""
        self._logger.info("[%s] Connecting to %s...", self._endpoint.name, self._endpoint.ws_url)
        async with websockets.connect(
            self._endpoint.ws_url,
            ping_interval=self._ping_interval,
            ping_timeout=self._ping_timeout,
            close_timeout=self._close_timeout,
            max_size=self._max_size,
        ) as ws:
            await ws.send(json.dumps(self.build_subscription_params()))

            try:
                response = await asyncio.wait_for(ws.recv(), timeout=self._subscription_timeout)
            except asyncio.TimeoutError as e:
                raise SubscriptionError(
                    self._endpoint.chain_id, "subscription response timed out"
                ) from e
            response_data = json.loads(response)
            if "error" in response_data:
                raise SubscriptionError(
                    self._endpoint.chain_id, f"eth_subscribe rejected: {response_data['error']}"
                )
            self._subscription_id = response_data.get("result")
            self._retry_count = 0  # Reset on successful subscription
            self._logger.info(
                "[%s] Subscribed to %d pools. Subscription ID: %s",
                self._endpoint.name,
                len(self._endpoint.addresses),
                self._subscription_id,
            )

            async for raw_message in ws:
                try:
                    message = json.loads(raw_message)
                except json.JSONDecodeError as e:
                    self._logger.warning("[%s] Invalid JSON message: %s", self._endpoint.name, e)
                    continue

                # eth_subscribe notifications have method "eth_subscription"
                if message.get("method") != "eth_subscription":
                    continue
                log_data = message.get("params", {}).get("result")
                if not log_data:
                    continue
                await self._log_queue.put(RawLog(self._endpoint.chain_id, log_data))

        raise SubscriptionError(self._endpoint.chain_id, "subscription stream closed")
