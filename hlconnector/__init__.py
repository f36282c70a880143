"""Asyncio exchange toolkit: request signing, account and order APIs, a trading websocket, config templates and a top-of-book cache."""

__version__ = "0.1.0"

__all__ = [
    "account_api",
    "api_config",
    "auth",
    "risk_config",
    "tob_cache",
    "trading_api",
    "types",
    "ws_trading",
]