"""Configuration, error types, wire records and events for the exchange API."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.hyperliquid.xyz"
DEFAULT_WS_URL = "wss://api.hyperliquid.xyz/ws"

_U64_LIMIT = 2**64


def now_millis() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


@dataclass
class ApiConfig:
    """Endpoints, timeouts and retry policy for the REST and websocket APIs."""

    base_url: str = DEFAULT_BASE_URL
    ws_url: str = DEFAULT_WS_URL
    timeout_ms: int = 5000
    max_retries: int = 3
    retry_delay_ms: int = 1000


class ApiError(Exception):
    """Base class for every failure reported by the API layer."""

    prefix = "API error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class NetworkError(ApiError):
    prefix = "Network error"


class ParseError(ApiError):
    prefix = "Parse error"


class AuthenticationError(ApiError):
    prefix = "Authentication error"


class RateLimitError(ApiError):
    prefix = "Rate limit error"


class OrderRejected(ApiError):
    prefix = "Order rejected"


class InsufficientBalance(ApiError):
    prefix = "Insufficient balance"


class InvalidOrder(ApiError):
    prefix = "Invalid order"


class ApiTimeout(ApiError):
    prefix = "Timeout"


class UnknownApiError(ApiError):
    prefix = "Unknown error"


def _object(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ParseError(f"invalid type: expected an object, found {type(data).__name__}")
    return data


def _value(data: Mapping[str, Any], key: str, optional: bool) -> Any:
    value = data.get(key)
    if value is None and not optional:
        raise ParseError(f"missing field `{key}`")
    return value


def _str(data: Mapping[str, Any], key: str) -> str:
    value = _value(data, key, optional=False)
    if not isinstance(value, str):
        raise ParseError(f"invalid type for field `{key}`: expected a string")
    return value


def _opt_str(data: Mapping[str, Any], key: str) -> str | None:
    value = _value(data, key, optional=True)
    if value is not None and not isinstance(value, str):
        raise ParseError(f"invalid type for field `{key}`: expected a string")
    return value


def _u64(data: Mapping[str, Any], key: str) -> int:
    value = _value(data, key, optional=False)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < _U64_LIMIT:
        raise ParseError(f"invalid value for field `{key}`: expected an unsigned 64-bit integer")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = _value(data, key, optional=False)
    if not isinstance(value, bool):
        raise ParseError(f"invalid type for field `{key}`: expected a boolean")
    return value


def _list(data: Mapping[str, Any], key: str, parse: Callable[[Any], T]) -> list[T]:
    value = _value(data, key, optional=False)
    if not isinstance(value, list):
        raise ParseError(f"invalid type for field `{key}`: expected a sequence")
    return [parse(item) for item in value]


@dataclass
class HyperLiquidOrder:
    """An order as it is sent to the exchange endpoint."""

    a: int | None
    b: bool
    p: str
    s: str
    r: bool
    t: str
    cid: int
    oid: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "a": self.a,
            "b": self.b,
            "p": self.p,
            "s": self.s,
            "r": self.r,
            "t": self.t,
            "cid": self.cid,
            "oid": self.oid,
        }


@dataclass
class HyperLiquidOrderRest:
    """An order resting on the book."""

    oid: int
    total_sz: str
    sz: str
    px: str
    side: str
    cloid: str | None
    reduce_only: bool
    timestamp: int

    @classmethod
    def from_dict(cls, data: Any) -> HyperLiquidOrderRest:
        data = _object(data)
        return cls(
            oid=_u64(data, "oid"),
            total_sz=_str(data, "total_sz"),
            sz=_str(data, "sz"),
            px=_str(data, "px"),
            side=_str(data, "side"),
            cloid=_opt_str(data, "cloid"),
            reduce_only=_bool(data, "reduce_only"),
            timestamp=_u64(data, "timestamp"),
        )


@dataclass
class HyperLiquidOrderFilled:
    """An order that has been filled."""

    oid: int
    total_sz: str
    sz: str
    px: str
    side: str
    cloid: str | None
    reduce_only: bool
    timestamp: int

    @classmethod
    def from_dict(cls, data: Any) -> HyperLiquidOrderFilled:
        data = _object(data)
        return cls(
            oid=_u64(data, "oid"),
            total_sz=_str(data, "total_sz"),
            sz=_str(data, "sz"),
            px=_str(data, "px"),
            side=_str(data, "side"),
            cloid=_opt_str(data, "cloid"),
            reduce_only=_bool(data, "reduce_only"),
            timestamp=_u64(data, "timestamp"),
        )


@dataclass
class HyperLiquidOrderStatus:
    """Status of an order: resting, filled, or neither."""

    rest: HyperLiquidOrderRest | None = None
    filled: HyperLiquidOrderFilled | None = None

    @classmethod
    def from_dict(cls, data: Any) -> HyperLiquidOrderStatus:
        data = _object(data)
        rest = data.get("rest")
        filled = data.get("filled")
        return cls(
            rest=None if rest is None else HyperLiquidOrderRest.from_dict(rest),
            filled=None if filled is None else HyperLiquidOrderFilled.from_dict(filled),
        )


@dataclass
class HyperLiquidPosition:
    """An open position in one coin, with numbers as decimal strings."""

    coin: str
    szi: str
    entry_px: str
    position_value: str
    unrealized_pnl: str
    margin_used: str

    @classmethod
    def from_dict(cls, data: Any) -> HyperLiquidPosition:
        data = _object(data)
        return cls(
            coin=_str(data, "coin"),
            szi=_str(data, "szi"),
            entry_px=_str(data, "entry_px"),
            position_value=_str(data, "position_value"),
            unrealized_pnl=_str(data, "unrealized_pnl"),
            margin_used=_str(data, "margin_used"),
        )


@dataclass
class HyperLiquidMarginSummary:
    """Account-wide margin figures."""

    account_value: str
    total_margin_used: str
    total_ntl_pos: str
    total_raw_usd: str

    @classmethod
    def from_dict(cls, data: Any) -> HyperLiquidMarginSummary:
        data = _object(data)
        return cls(
            account_value=_str(data, "account_value"),
            total_margin_used=_str(data, "total_margin_used"),
            total_ntl_pos=_str(data, "total_ntl_pos"),
            total_raw_usd=_str(data, "total_raw_usd"),
        )


@dataclass
class HyperLiquidAccountInfo:
    """Snapshot of margin, open orders and positions of one account."""

    margin_summary: HyperLiquidMarginSummary
    open_orders: list[HyperLiquidOrderRest]
    asset_positions: list[HyperLiquidPosition]


@dataclass
class HyperLiquidFill:
    """One trade execution."""

    coin: str
    px: str
    sz: str
    side: str
    time: int
    start_position: str
    dir: str
    closed_pnl: str
    hash: str
    oid: int
    crossed: bool
    fee: str

    @classmethod
    def from_dict(cls, data: Any) -> HyperLiquidFill:
        data = _object(data)
        return cls(
            coin=_str(data, "coin"),
            px=_str(data, "px"),
            sz=_str(data, "sz"),
            side=_str(data, "side"),
            time=_u64(data, "time"),
            start_position=_str(data, "start_position"),
            dir=_str(data, "dir"),
            closed_pnl=_str(data, "closed_pnl"),
            hash=_str(data, "hash"),
            oid=_u64(data, "oid"),
            crossed=_bool(data, "crossed"),
            fee=_str(data, "fee"),
        )


@dataclass
class HyperLiquidUserState:
    """Full clearinghouse state of a user."""

    asset_positions: list[HyperLiquidPosition]
    cross_margin_summary: HyperLiquidMarginSummary
    margin_summary: HyperLiquidMarginSummary
    withdrawable: str
    open_orders: list[HyperLiquidOrderRest]
    equity: str

    @classmethod
    def from_dict(cls, data: Any) -> HyperLiquidUserState:
        data = _object(data)
        return cls(
            asset_positions=_list(data, "asset_positions", HyperLiquidPosition.from_dict),
            cross_margin_summary=HyperLiquidMarginSummary.from_dict(
                _value(data, "cross_margin_summary", optional=False)
            ),
            margin_summary=HyperLiquidMarginSummary.from_dict(
                _value(data, "margin_summary", optional=False)
            ),
            withdrawable=_str(data, "withdrawable"),
            open_orders=_list(data, "open_orders", HyperLiquidOrderRest.from_dict),
            equity=_str(data, "equity"),
        )


@dataclass(frozen=True)
class OrderUpdate:
    order_id: int
    status: str
    filled_size: str
    remaining_size: str
    price: str
    timestamp: int


@dataclass(frozen=True)
class FillEvent:
    order_id: int
    fill_size: str
    fill_price: str
    fee: str
    timestamp: int


@dataclass(frozen=True)
class PositionUpdate:
    coin: str
    size: str
    entry_price: str
    unrealized_pnl: str


@dataclass(frozen=True)
class AccountUpdate:
    account_value: str
    margin_used: str
    withdrawable: str


@dataclass(frozen=True)
class ErrorEvent:
    error: str
    timestamp: int