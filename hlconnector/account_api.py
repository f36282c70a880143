"""Account state queries: margin, positions, open orders, fills."""

from __future__ import annotations

import asyncio
import logging
import queue
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from .auth import HyperLiquidAuth
from .types import (
    AccountUpdate,
    ApiConfig,
    HyperLiquidAccountInfo,
    HyperLiquidFill,
    HyperLiquidOrderRest,
    HyperLiquidPosition,
    HyperLiquidUserState,
    NetworkError,
    ParseError,
    PositionUpdate,
)

logger = logging.getLogger(__name__)

CLEARINGHOUSE_STATE = "clearinghouseState"


@dataclass
class Position:
    """A position held in one symbol."""

    symbol: str
    size: Decimal
    entry_price: Decimal
    mark_price: Decimal
    unrealized_pnl: Decimal
    realized_pnl: Decimal
    updated_at: datetime


def _parse_decimal(text: str) -> Decimal:
    """Parse a plain finite decimal number, rejecting NaN, infinities and padding."""
    if text != text.strip():
        raise ValueError(f"invalid decimal: {text!r}")
    try:
        value = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"invalid decimal: {text!r}") from exc
    if not value.is_finite():
        raise ValueError(f"invalid decimal: {text!r}")
    return value


def _position_from_wire(wire: HyperLiquidPosition) -> Position | None:
    try:
        size = _parse_decimal(wire.szi)
        entry_price = _parse_decimal(wire.entry_px)
        unrealized_pnl = _parse_decimal(wire.unrealized_pnl)
    except ValueError:
        return None
    return Position(
        symbol=wire.coin,
        size=size,
        entry_price=entry_price,
        mark_price=entry_price,
        unrealized_pnl=unrealized_pnl,
        realized_pnl=Decimal(0),
        updated_at=datetime.now(timezone.utc),
    )


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


class AccountApi:
    """Fetches account state and keeps a cache of positions and account info.

    Position and account updates are published on ``events``.
    """

    def __init__(self, auth: HyperLiquidAuth, config: ApiConfig | None = None) -> None:
        self.auth = auth
        self.config = config if config is not None else ApiConfig()
        self.events: queue.SimpleQueue[PositionUpdate | AccountUpdate] = queue.SimpleQueue()
        self._positions: dict[str, Position] = {}
        self._account_info: HyperLiquidAccountInfo | None = None
        self._last_update = time.monotonic()

    @property
    def _info_url(self) -> str:
        return f"{self.config.base_url}/info"

    def _info_request(self) -> dict[str, Any]:
        account_id = self.auth.account_id
        return {
            "type": CLEARINGHOUSE_STATE,
            "user": None if account_id is None else str(account_id),
        }

    async def _fetch_user_state(
        self, failure: str, include_body: bool, not_ok: str
    ) -> HyperLiquidUserState:
        response = await self.auth.post_json(self._info_url, "info", self._info_request())
        if not response.is_success:
            if include_body:
                raise NetworkError(
                    f"{failure} with status {_status_line(response)}: {response.text}"
                )
            raise NetworkError(f"{failure} with status: {_status_line(response)}")
        body = _json_body(response)
        if body["status"] != "ok":
            raise NetworkError(not_ok)
        state = body.get("response")
        if state is None:
            raise ParseError("No user state in response")
        return HyperLiquidUserState.from_dict(state)

    def _apply(self, state: HyperLiquidUserState) -> HyperLiquidAccountInfo:
        info = HyperLiquidAccountInfo(
            margin_summary=state.margin_summary,
            open_orders=state.open_orders,
            asset_positions=state.asset_positions,
        )
        self._account_info = info
        for wire in info.asset_positions:
            position = _position_from_wire(wire)
            if position is None:
                continue
            self._positions[wire.coin] = position
            self.events.put(
                PositionUpdate(
                    coin=wire.coin,
                    size=wire.szi,
                    entry_price=wire.entry_px,
                    unrealized_pnl=wire.unrealized_pnl,
                )
            )
        self.events.put(
            AccountUpdate(
                account_value=info.margin_summary.account_value,
                margin_used=info.margin_summary.total_margin_used,
                withdrawable="0",
            )
        )
        self._last_update = time.monotonic()
        return info

    async def get_account_info(self) -> HyperLiquidAccountInfo:
        """Fetch the clearinghouse state and refresh the caches."""
        state = await self._fetch_user_state(
            "Account info request failed",
            include_body=True,
            not_ok="Account info response status not ok",
        )
        info = self._apply(state)
        logger.info("Account info updated successfully")
        return info

    async def get_positions(self) -> list[Position]:
        """Positions with parseable numbers; the mark price is the entry price."""
        info = await self.get_account_info()
        return [
            position
            for position in map(_position_from_wire, info.asset_positions)
            if position is not None
        ]

    async def get_balance(self) -> Decimal:
        info = await self.get_account_info()
        try:
            return _parse_decimal(info.margin_summary.account_value)
        except ValueError as exc:
            raise ParseError(f"Failed to parse balance: {exc}") from exc

    async def get_margin_used(self) -> Decimal:
        info = await self.get_account_info()
        try:
            return _parse_decimal(info.margin_summary.total_margin_used)
        except ValueError as exc:
            raise ParseError(f"Failed to parse margin used: {exc}") from exc

    async def get_withdrawable(self) -> Decimal:
        """Withdrawable amount; the caches are left untouched."""
        state = await self._fetch_user_state(
            "Withdrawable request failed",
            include_body=False,
            not_ok="Withdrawable response status not ok",
        )
        try:
            return _parse_decimal(state.withdrawable)
        except ValueError as exc:
            raise ParseError(f"Failed to parse withdrawable: {exc}") from exc

    async def get_open_orders(self) -> list[HyperLiquidOrderRest]:
        info = await self.get_account_info()
        return info.open_orders

    async def get_fills(
        self, start_time: int | None = None, end_time: int | None = None
    ) -> list[HyperLiquidFill]:
        """Fills of the account, optionally bounded by millisecond timestamps."""
        account_id = self.auth.account_id
        request = {
            "user": None if account_id is None else str(account_id),
            "start_time": start_time,
            "end_time": end_time,
        }
        response = await self.auth.post_json(self._info_url, "info", request)
        if not response.is_success:
            raise NetworkError(f"Fills request failed with status: {_status_line(response)}")
        body = _json_body(response)
        if body["status"] != "ok":
            raise NetworkError("Fills response status not ok")
        fills = body.get("response")
        if fills is None:
            return []
        if not isinstance(fills, list):
            raise ParseError("invalid type for field `response`: expected a sequence")
        return [HyperLiquidFill.from_dict(item) for item in fills]

    def cached_position(self, symbol: str) -> Position | None:
        return self._positions.get(symbol)

    def cached_positions(self) -> list[Position]:
        return list(self._positions.values())

    def cached_account_info(self) -> HyperLiquidAccountInfo | None:
        return self._account_info

    def is_data_fresh(self, max_age_seconds: int) -> bool:
        """Whether the last update is younger than ``max_age_seconds`` whole seconds."""
        return int(time.monotonic() - self._last_update) < max_age_seconds

    def start_periodic_updates(self, interval_seconds: float) -> asyncio.Task[None]:
        """Refresh account state now and then every ``interval_seconds``."""
        return asyncio.get_running_loop().create_task(self._periodic(interval_seconds))

    async def _periodic(self, interval_seconds: float) -> None:
        while True:
            try:
                state = await self._fetch_user_state(
                    "Account info request failed",
                    include_body=False,
                    not_ok="Account info response status not ok",
                )
            except (NetworkError, ParseError) as exc:
                logger.error("Failed to fetch account info during periodic update: %s", exc)
            else:
                self._apply(state)
                logger.debug("Periodic account update completed")
            await asyncio.sleep(interval_seconds)