"""Websocket stream of account events: fills, order updates and positions."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import json
import logging
import queue
import time
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any, Callable

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .auth import HyperLiquidAuth
from .types import (
    ApiConfig,
    ErrorEvent,
    FillEvent,
    HyperLiquidFill,
    HyperLiquidOrderStatus,
    HyperLiquidPosition,
    NetworkError,
    OrderUpdate,
    ParseError,
    PositionUpdate,
    now_millis,
)

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]
TradingEvent = FillEvent | OrderUpdate | PositionUpdate | ErrorEvent

_CONNECT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)
_SEND_ERRORS = (OSError, WebSocketException)

_SUBSCRIPTION_FLAGS = {
    "userEvents": "user_events",
    "fills": "fills",
    "orders": "orders",
    "positions": "positions",
}


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


@dataclass
class SubscriptionState:
    """Which account channels have been subscribed to."""

    user_events: bool = False
    fills: bool = False
    orders: bool = False
    positions: bool = False


def subscription_message(channel: str, account_id: int | None) -> dict[str, Any]:
    """The subscribe request for one account channel."""
    return {
        "method": "subscribe",
        "subscription": {
            "type": channel,
            "user": None if account_id is None else str(account_id),
        },
    }


def _default_connector(url: str) -> Awaitable[Any]:
    return websockets.connect(url)


class TradingWebSocket:
    """Connects to the account event stream and publishes events on ``events``.

    When the state is ``ERROR``, ``last_error`` holds the reason.
    """

    heartbeat_check_interval = 30.0
    heartbeat_timeout = 60.0
    reconnect_interval = 5.0
    max_reconnect_attempts = 10

    def __init__(
        self,
        auth: HyperLiquidAuth,
        config: ApiConfig | None = None,
        connector: Connector | None = None,
    ) -> None:
        self.auth = auth
        self.config = config if config is not None else ApiConfig()
        self.ws: Any = None
        self.events: queue.SimpleQueue[TradingEvent] = queue.SimpleQueue()
        self.state = ConnectionState.DISCONNECTED
        self.last_error: str | None = None
        self.subscriptions = SubscriptionState()
        self.reconnect_attempts = 0
        self.last_heartbeat = time.monotonic()
        self._connector = connector if connector is not None else _default_connector

    def _set_error(self, message: str) -> None:
        self.state = ConnectionState.ERROR
        self.last_error = message

    async def connect(self) -> None:
        """Open the websocket connection."""
        logger.info("Connecting to trading websocket")
        self.state = ConnectionState.CONNECTING
        try:
            self.ws = await self._connector(self.config.ws_url)
        except _CONNECT_ERRORS as exc:
            self._set_error(str(exc))
            raise NetworkError(str(exc)) from exc
        self.state = ConnectionState.CONNECTED
        self.reconnect_attempts = 0
        self.last_heartbeat = time.monotonic()
        logger.info("Connected to trading websocket")

    async def _subscribe(self, channel: str) -> None:
        if self.ws is None:
            raise NetworkError("WebSocket not connected")
        message = subscription_message(channel, self.auth.account_id)
        text = json.dumps(message, separators=(",", ":"), sort_keys=True)
        try:
            await self.ws.send(text)
        except _SEND_ERRORS as exc:
            raise NetworkError(str(exc)) from exc
        setattr(self.subscriptions, _SUBSCRIPTION_FLAGS[channel], True)
        logger.info("Subscribed to %s", channel)

    async def subscribe_to_user_events(self) -> None:
        await self._subscribe("userEvents")

    async def subscribe_to_fills(self) -> None:
        await self._subscribe("fills")

    async def subscribe_to_orders(self) -> None:
        await self._subscribe("orders")

    async def subscribe_to_positions(self) -> None:
        await self._subscribe("positions")

    async def subscribe_to_all(self) -> None:
        await self.subscribe_to_user_events()
        await self.subscribe_to_fills()
        await self.subscribe_to_orders()
        await self.subscribe_to_positions()

    async def run(self) -> None:
        """Process incoming messages until the connection closes."""
        if self.ws is None:
            raise NetworkError("WebSocket not connected")
        monitor = asyncio.get_running_loop().create_task(self._monitor_heartbeat())
        try:
            async for frame in self.ws:
                if isinstance(frame, str):
                    self.handle_text(frame)
        except ConnectionClosed as exc:
            logger.warning("WebSocket connection closed: %s", exc)
        finally:
            monitor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await monitor
        logger.warning("WebSocket connection closed by server")
        self.state = ConnectionState.DISCONNECTED

    async def _monitor_heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_check_interval)
            if time.monotonic() - self.last_heartbeat > self.heartbeat_timeout:
                logger.warning("WebSocket heartbeat timeout")
                self._set_error("Heartbeat timeout")
                self.events.put(
                    ErrorEvent(error="WebSocket heartbeat timeout", timestamp=now_millis())
                )

    def handle_text(self, text: str) -> None:
        """Decode a text frame; frames that are not JSON are ignored."""
        logger.debug("Received websocket message: %s", text)
        try:
            message = json.loads(text)
        except ValueError:
            return
        self.process_message(message)

    def process_message(self, message: Any) -> None:
        """Dispatch a decoded message by its channel."""
        if not isinstance(message, dict):
            return
        channel = message.get("channel")
        if not isinstance(channel, str):
            return
        if channel == "pong":
            self.last_heartbeat = time.monotonic()
            return
        if "data" not in message:
            if channel not in _SUBSCRIPTION_FLAGS:
                logger.debug("Unknown channel: %s", channel)
            return
        data = message["data"]
        if channel == "userEvents":
            logger.debug("Processing user event: %r", data)
        elif channel == "fills":
            self._process_fill(data)
        elif channel == "orders":
            self._process_order_update(data)
        elif channel == "positions":
            self._process_position_update(data)
        else:
            logger.debug("Unknown channel: %s", channel)

    def _process_fill(self, data: Any) -> None:
        try:
            fill = HyperLiquidFill.from_dict(data)
        except ParseError:
            return
        self.events.put(
            FillEvent(
                order_id=fill.oid,
                fill_size=fill.sz,
                fill_price=fill.px,
                fee=fill.fee,
                timestamp=fill.time,
            )
        )
        logger.info("Processed fill for order %s: %s %s at %s", fill.oid, fill.sz, fill.coin, fill.px)

    def _process_order_update(self, data: Any) -> None:
        try:
            status = HyperLiquidOrderStatus.from_dict(data)
        except ParseError:
            return
        if status.rest is not None:
            rest = status.rest
            self.events.put(
                OrderUpdate(
                    order_id=rest.oid,
                    status="rest",
                    filled_size="0",
                    remaining_size=rest.sz,
                    price=rest.px,
                    timestamp=rest.timestamp,
                )
            )
            logger.info("Processed order update for order %s: %s remaining", rest.oid, rest.sz)
        if status.filled is not None:
            filled = status.filled
            self.events.put(
                OrderUpdate(
                    order_id=filled.oid,
                    status="filled",
                    filled_size=filled.sz,
                    remaining_size="0",
                    price=filled.px,
                    timestamp=filled.timestamp,
                )
            )
            logger.info("Processed order fill for order %s: %s filled", filled.oid, filled.sz)

    def _process_position_update(self, data: Any) -> None:
        try:
            position = HyperLiquidPosition.from_dict(data)
        except ParseError:
            return
        self.events.put(
            PositionUpdate(
                coin=position.coin,
                size=position.szi,
                entry_price=position.entry_px,
                unrealized_pnl=position.unrealized_pnl,
            )
        )
        logger.info(
            "Processed position update for %s: %s at %s",
            position.coin,
            position.szi,
            position.entry_px,
        )

    async def disconnect(self) -> None:
        """Close the connection if one is open."""
        if self.ws is not None:
            try:
                await self.ws.close()
            except _SEND_ERRORS as exc:
                raise NetworkError(str(exc)) from exc
            self.ws = None
        self.state = ConnectionState.DISCONNECTED
        logger.info("Disconnected from trading websocket")

    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def start_reconnect_loop(self) -> asyncio.Task[None]:
        """Reconnect in the background whenever the connection is down or failed."""
        return asyncio.get_running_loop().create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        while True:
            if self.state in (ConnectionState.DISCONNECTED, ConnectionState.ERROR):
                self.reconnect_attempts += 1
                if self.reconnect_attempts > self.max_reconnect_attempts:
                    logger.error("Max reconnection attempts reached for trading websocket")
                    return
                logger.info(
                    "Attempting to reconnect to trading websocket (attempt %s)",
                    self.reconnect_attempts,
                )
                self.state = ConnectionState.RECONNECTING
                try:
                    ws = await self._connector(self.config.ws_url)
                except _CONNECT_ERRORS as exc:
                    logger.error("Failed to reconnect to trading websocket: %s", exc)
                    self._set_error(str(exc))
                else:
                    self.ws = ws
                    self.state = ConnectionState.CONNECTED
                    self.reconnect_attempts = 0
                    logger.info("Successfully reconnected to trading websocket")
            await asyncio.sleep(self.reconnect_interval)