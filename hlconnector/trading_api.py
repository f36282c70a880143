"""Order placement, cancellation, rate limiting and retries against the exchange."""

from __future__ import annotations

import asyncio
import enum
import itertools
import logging
import queue
import time
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any

import httpx

from .auth import HyperLiquidAuth
from .types import (
    ApiConfig,
    ApiError,
    ErrorEvent,
    HyperLiquidOrder,
    InvalidOrder,
    OrderRejected,
    ParseError,
    now_millis,
)

logger = logging.getLogger(__name__)

REQUESTS_PER_WINDOW = 100
RATE_WINDOW_SECONDS = 1.0
RETRY_POLL_SECONDS = 0.1

_client_order_ids = itertools.count(1)


class Side(enum.Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(enum.Enum):
    MARKET = "market"
    LIMIT = "limit"
    POST_ONLY = "post_only"


def map_order_type(order_type: OrderType) -> str:
    """Exchange name of an order type; post-only orders go out as limit orders."""
    if order_type is OrderType.MARKET:
        return "Market"
    return "Limit"


@dataclass
class NewOrder:
    """An order requested by a caller."""

    symbol: str
    side: Side
    order_type: OrderType
    price: Decimal
    size: Decimal


@dataclass
class PendingOrder:
    """An order sent to, or about to be sent to, the exchange."""

    internal_id: uuid.UUID
    client_order_id: int
    symbol: str
    side: Side
    order_type: OrderType
    price: Decimal
    size: Decimal
    created_at: float = field(default_factory=time.monotonic)
    retry_count: int = 0


@dataclass
class RetryRequest:
    """An order to resubmit once the monotonic clock reaches ``retry_after``."""

    order: PendingOrder
    retry_after: float


class RateLimiter:
    """Allows ``max_requests`` per ``window`` seconds, sleeping when the budget is spent."""

    def __init__(
        self,
        max_requests: int = REQUESTS_PER_WINDOW,
        window: float = RATE_WINDOW_SECONDS,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        now = time.monotonic()
        self.last_request = now
        self.request_count = 0
        self.window_start = now

    async def acquire(self) -> None:
        """Wait until a request may be sent and count it."""
        now = time.monotonic()
        elapsed = now - self.window_start
        if elapsed > self.window:
            self.window_start = now
            self.request_count = 0
            elapsed = 0.0
        if self.request_count >= self.max_requests:
            delay = self.window - elapsed
            if delay > 0:
                await asyncio.sleep(delay)
                now = time.monotonic()
        self.request_count += 1
        self.last_request = now


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise ParseError(str(exc)) from exc
    if not isinstance(body, dict) or not isinstance(body.get("status"), str):
        raise ParseError("missing field `status`")
    return body


def _decimal_text(value: Decimal) -> str:
    return format(value, "f")


class TradingApi:
    """Places and cancels orders, tracking those the exchange has accepted.

    Errors from the retry processor are published on ``events``.
    """

    def __init__(
        self,
        auth: HyperLiquidAuth,
        config: ApiConfig | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.auth = auth
        self.config = config if config is not None else ApiConfig()
        self.events: queue.SimpleQueue[ErrorEvent] = queue.SimpleQueue()
        self.retry_queue: list[RetryRequest] = []
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self._pending: dict[int, PendingOrder] = {}

    @property
    def _exchange_url(self) -> str:
        return f"{self.config.base_url}/exchange"

    async def place_order(self, order: NewOrder) -> uuid.UUID:
        """Submit an order and return its internal id."""
        pending = PendingOrder(
            internal_id=uuid.uuid4(),
            client_order_id=next(_client_order_ids),
            symbol=order.symbol,
            side=order.side,
            order_type=order.order_type,
            price=order.price,
            size=order.size,
        )
        self._pending[pending.client_order_id] = pending
        try:
            await self.auth_submit(pending, rate_limited=True)
        except ApiError as exc:
            logger.warning("Failed to place order %s: %s", pending.internal_id, exc)
            self._pending.pop(pending.client_order_id, None)
            raise
        logger.info("Order placed successfully: %s for %s", pending.internal_id, order.symbol)
        return pending.internal_id

    async def auth_submit(self, pending: PendingOrder, rate_limited: bool) -> None:
        wire = HyperLiquidOrder(
            a=self.auth.account_id,
            b=pending.side is Side.BUY,
            p=_decimal_text(pending.price),
            s=_decimal_text(pending.size),
            r=False,
            t=map_order_type(pending.order_type),
            cid=pending.client_order_id,
            oid=None,
        )
        if rate_limited:
            await self.rate_limiter.acquire()
        response = await self.auth.post_json(self._exchange_url, "order", wire)
        if not response.is_success:
            raise OrderRejected(
                f"Order failed with status {_status_line(response)}: {response.text}"
            )
        if _json_body(response)["status"] != "ok":
            raise OrderRejected("Order response status not ok")
        logger.debug("Order submitted to exchange: %s", pending.client_order_id)

    async def cancel_order(self, internal_id: uuid.UUID) -> None:
        pending = self.pending_order(internal_id)
        if pending is None:
            raise InvalidOrder("Order not found")
        await self.cancel_order_by_client_id(pending.client_order_id)

    async def cancel_order_by_client_id(self, client_order_id: int) -> None:
        await self.rate_limiter.acquire()
        response = await self.auth.post_json(
            self._exchange_url, "cancel", {"oid": client_order_id}
        )
        if not response.is_success:
            raise OrderRejected(
                f"Cancel failed with status {_status_line(response)}: {response.text}"
            )
        if _json_body(response)["status"] != "ok":
            raise OrderRejected("Cancel response status not ok")
        self._pending.pop(client_order_id, None)
        logger.info("Order cancelled successfully: %s", client_order_id)

    async def cancel_all_orders(self, symbol: str | None = None) -> None:
        """Cancel every pending order, or those of one symbol; failures are logged."""
        targets = [
            client_order_id
            for client_order_id, pending in self._pending.items()
            if symbol is None or pending.symbol == symbol
        ]
        for client_order_id in targets:
            try:
                await self.cancel_order_by_client_id(client_order_id)
            except ApiError as exc:
                logger.warning("Failed to cancel order %s: %s", client_order_id, exc)

    def schedule_retry(self, order: PendingOrder, retry_after: float | None = None) -> None:
        """Queue an order for resubmission; due immediately unless ``retry_after`` is given."""
        due = time.monotonic() if retry_after is None else retry_after
        self.retry_queue.append(RetryRequest(order=order, retry_after=due))

    async def process_retries(self) -> None:
        """Resubmit every due retry once, requeueing those that fail."""
        now = time.monotonic()
        due = [request for request in self.retry_queue if now >= request.retry_after]
        self.retry_queue = [request for request in self.retry_queue if now < request.retry_after]
        for request in due:
            order = request.order
            if order.retry_count >= self.config.max_retries:
                logger.warning("Max retries exceeded for order: %s", order.internal_id)
                self._pending.pop(order.client_order_id, None)
                self.events.put(
                    ErrorEvent(
                        error=f"Max retries exceeded for order {order.internal_id}",
                        timestamp=now_millis(),
                    )
                )
                continue
            updated = replace(order, retry_count=order.retry_count + 1)
            try:
                await self.auth_submit(updated, rate_limited=False)
            except ApiError as exc:
                logger.warning("Order retry failed: %s - %s", updated.internal_id, exc)
                self.retry_queue.append(
                    RetryRequest(
                        order=updated,
                        retry_after=now + self.config.retry_delay_ms / 1000,
                    )
                )
            else:
                logger.info("Order retry successful: %s", updated.internal_id)
                self._pending[updated.client_order_id] = updated

    def start_retry_processor(self) -> asyncio.Task[None]:
        """Run ``process_retries`` in the background every 100 ms."""
        return asyncio.get_running_loop().create_task(self._retry_loop())

    async def _retry_loop(self) -> None:
        while True:
            await self.process_retries()
            await asyncio.sleep(RETRY_POLL_SECONDS)

    def pending_orders(self) -> list[PendingOrder]:
        return list(self._pending.values())

    def pending_order(self, internal_id: uuid.UUID) -> PendingOrder | None:
        return next(
            (pending for pending in self._pending.values() if pending.internal_id == internal_id),
            None,
        )