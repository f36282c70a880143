# hlconnector

An asyncio toolkit for talking to a perpetuals exchange from Python. It is a
library only: there is no command to run.

## What is in it

- **`hlconnector.types`** – `ApiConfig` (base URL, websocket URL, timeout,
  retry count and delay), the wire records parsed from the exchange's JSON with
  `from_dict` (`HyperLiquidOrderRest`, `HyperLiquidOrderFilled`,
  `HyperLiquidOrderStatus`, `HyperLiquidPosition`, `HyperLiquidMarginSummary`,
  `HyperLiquidFill`, `HyperLiquidUserState`), `HyperLiquidOrder` with `to_dict`,
  `HyperLiquidAccountInfo`, the event records (`OrderUpdate`, `FillEvent`,
  `PositionUpdate`, `AccountUpdate`, `ErrorEvent`), `now_millis()` and the
  `ApiError` hierarchy (`NetworkError`, `ParseError`, `AuthenticationError`,
  `RateLimitError`, `OrderRejected`, `InsufficientBalance`, `InvalidOrder`,
  `ApiTimeout`, `UnknownApiError`). Malformed JSON raises `ParseError`.
- **`hlconnector.auth`** – `HyperLiquidAuth` holds the signing key, an
  optional account id and an `httpx.AsyncClient`. It builds nonce-stamped
  `SignedRequest`s, the request headers, posts signed JSON with `post_json`,
  checks credentials with `authenticate`, and can be used as an
  `async with` context manager (or closed with `aclose`).
- **`hlconnector.account_api`** – `AccountApi` fetches account info, balance,
  margin used, withdrawable funds, positions, open orders and fills. It keeps a
  cache (`cached_position`, `cached_positions`, `cached_account_info`,
  `is_data_fresh`), publishes `PositionUpdate` and `AccountUpdate` events on its
  `events` queue, and `start_periodic_updates` refreshes the cache in a
  background task.
- **`hlconnector.trading_api`** – `TradingApi` places and cancels orders
  (`NewOrder`, `Side`, `OrderType`), tracks accepted orders as
  `PendingOrder`s (`pending_orders`, `pending_order`), throttles requests with a
  `RateLimiter` (100 requests per second by default), and resubmits orders
  queued with `schedule_retry` through `process_retries` or the background
  `start_retry_processor`. Orders over `max_retries` are dropped and an
  `ErrorEvent` is put on `events`. Post-only orders are sent as limit orders
  (`map_order_type`).
- **`hlconnector.ws_trading`** – `TradingWebSocket` connects over
  `websockets` (or a connector you pass in), subscribes to user events, fills,
  orders and positions, turns incoming messages into `FillEvent`,
  `OrderUpdate` and `PositionUpdate` events on `events`, watches for heartbeat
  timeouts, and tracks `ConnectionState` and `SubscriptionState`.
  `start_reconnect_loop` reconnects up to ten times; it does not resend
  subscriptions after reconnecting.
- **`hlconnector.api_config`** – `ApiConfigTemplate` with `development`,
  `staging`, `production` and `all_templates`.
- **`hlconnector.risk_config`** – `RiskConfigTemplate` with `conservative`,
  `moderate`, `aggressive` and `all_templates`, built from `RiskLimits`,
  `PositionLimitTemplate`, `ExposureLimitTemplate` and
  `VolatilityLimitTemplate`.
- **`hlconnector.tob_cache`** – `TobCache`, a bounded, insertion-ordered
  de-duplication cache of best bid/ask snapshots.

## Installation

```
pip install hlconnector
```

To run the test suite:

```
pip install "hlconnector[test]"
pytest
```

## Configuration templates

```python
from hlconnector.api_config import ApiConfigTemplate
from hlconnector.risk_config import RiskConfigTemplate

api = ApiConfigTemplate.production()
print(api.config.timeout_ms, api.config.max_retries)   # 3000 2

risk = RiskConfigTemplate.conservative()
print(risk.risk_limits.max_daily_loss)                 # 100

for name in RiskConfigTemplate.all_templates():
    print(name)                                        # conservative, moderate, aggressive
```

## Signing requests

```python
from hlconnector.auth import HyperLiquidAuth

auth = HyperLiquidAuth("placeholder").with_account_id(42)
signed = auth.create_signed_request("info", {"type": "clearinghouseState"})
print(signed.to_dict()["action"])                      # info
print(auth.get_headers()["X-Account-Id"])              # 42
```

The signature is the lower-case hex SHA-256 digest of the action name and the
compact JSON payload, followed by the key. It is a simple keyed hash, not a
wallet signature.

## De-duplicating book snapshots

`TobCache(capacity=100)` stores snapshots by message id. `update(message_id,
tob)` returns a `TobCacheResult` whose `outcome` is a `CacheOutcome`: `ADDED`,
`DUPLICATE`, or `ADDED_WITH_EVICTION`, in which case `evicted_id` names the
oldest entry that was dropped. `len()` and `in` work as expected, and `get`
returns a stored bid/ask pair or `None`.

## Errors

Every failure raised by the clients is a subclass of `ApiError`, so a single
`except ApiError` catches network problems, unparseable responses, rejected
orders and unknown order identifiers alike.

## What it does not do

- There is no command-line program and no graphical interface.
- There is no market-data client: nothing here subscribes to order-book
  streams or feeds `TobCache`; you supply the snapshots.
- There are no trading strategies and no saving or loading of bot
  configuration; the templates exist only in memory.