import asyncio
import json
import time
import uuid
from decimal import Decimal

import httpx
import pytest

from hlconnector.auth import HyperLiquidAuth
from hlconnector.trading_api import (
    NewOrder,
    OrderType,
    PendingOrder,
    RateLimiter,
    Side,
    TradingApi,
    map_order_type,
)
from hlconnector.types import ApiConfig, InvalidOrder, OrderRejected, ParseError

BASE_URL = "https://api.example.com"


def ok(request):
    return httpx.Response(200, json={"status": "ok"})


def make_api(handler, **config):
    requests = []

    def record(request):
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    auth = HyperLiquidAuth("placeholder", account_id=7, client=client)
    api = TradingApi(auth, ApiConfig(base_url=BASE_URL, **config))
    return api, requests


def new_order(symbol="HYPE", side=Side.BUY, order_type=OrderType.LIMIT):
    return NewOrder(symbol, side, order_type, Decimal("1.5"), Decimal("2"))


def pending(symbol="HYPE", retry_count=0, client_order_id=900001):
    return PendingOrder(
        internal_id=uuid.uuid4(),
        client_order_id=client_order_id,
        symbol=symbol,
        side=Side.SELL,
        order_type=OrderType.MARKET,
        price=Decimal("3"),
        size=Decimal("4"),
        retry_count=retry_count,
    )


@pytest.mark.parametrize(
    "order_type, expected",
    [(OrderType.MARKET, "Market"), (OrderType.LIMIT, "Limit"), (OrderType.POST_ONLY, "Limit")],
)
def test_map_order_type(order_type, expected):
    assert map_order_type(order_type) == expected


@pytest.mark.asyncio
async def test_place_order_sends_signed_order_and_tracks_it():
    api, requests = make_api(ok)
    internal_id = await api.place_order(new_order(order_type=OrderType.POST_ONLY))
    tracked = api.pending_order(internal_id)
    assert tracked is not None
    assert tracked.symbol == "HYPE"
    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == f"{BASE_URL}/exchange"
    assert request.headers["X-Account-Id"] == "7"
    body = json.loads(request.content)
    assert body["action"] == "order"
    assert body["data"]["b"] is True
    assert body["data"]["p"] == "1.5"
    assert body["data"]["s"] == "2"
    assert body["data"]["t"] == "Limit"
    assert body["data"]["r"] is False
    assert body["data"]["a"] == 7
    assert body["data"]["cid"] == tracked.client_order_id
    assert body["data"]["oid"] is None


@pytest.mark.asyncio
async def test_client_order_ids_increase():
    api, _ = make_api(ok)
    first = api.pending_order(await api.place_order(new_order()))
    second = api.pending_order(await api.place_order(new_order()))
    assert second.client_order_id > first.client_order_id


@pytest.mark.asyncio
async def test_place_order_http_failure_rejects_and_forgets():
    api, _ = make_api(lambda r: httpx.Response(500, text="boom"))
    with pytest.raises(OrderRejected) as excinfo:
        await api.place_order(new_order())
    assert excinfo.value.message.startswith("Order failed with status 500")
    assert excinfo.value.message.endswith("boom")
    assert api.pending_orders() == []


@pytest.mark.asyncio
async def test_place_order_status_not_ok():
    api, _ = make_api(lambda r: httpx.Response(200, json={"status": "err"}))
    with pytest.raises(OrderRejected) as excinfo:
        await api.place_order(new_order())
    assert excinfo.value.message == "Order response status not ok"
    assert api.pending_orders() == []


@pytest.mark.asyncio
async def test_place_order_bad_json_is_parse_error():
    api, _ = make_api(lambda r: httpx.Response(200, text="not json"))
    with pytest.raises(ParseError):
        await api.place_order(new_order())
    assert api.pending_orders() == []


@pytest.mark.asyncio
async def test_cancel_unknown_order():
    api, requests = make_api(ok)
    with pytest.raises(InvalidOrder) as excinfo:
        await api.cancel_order(uuid.uuid4())
    assert excinfo.value.message == "Order not found"
    assert requests == []


@pytest.mark.asyncio
async def test_cancel_order_removes_it():
    api, requests = make_api(ok)
    internal_id = await api.place_order(new_order())
    client_order_id = api.pending_order(internal_id).client_order_id
    await api.cancel_order(internal_id)
    assert api.pending_order(internal_id) is None
    body = json.loads(requests[-1].content)
    assert body["action"] == "cancel"
    assert body["data"] == {"oid": client_order_id}


@pytest.mark.asyncio
async def test_cancel_failure_keeps_order():
    api, _ = make_api(ok)
    internal_id = await api.place_order(new_order())
    api.auth.client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"status": "err"}))
    )
    with pytest.raises(OrderRejected) as excinfo:
        await api.cancel_order(internal_id)
    assert excinfo.value.message == "Cancel response status not ok"
    assert api.pending_order(internal_id) is not None


@pytest.mark.asyncio
async def test_cancel_all_orders_filters_by_symbol():
    api, _ = make_api(ok)
    hype = await api.place_order(new_order(symbol="HYPE"))
    other = await api.place_order(new_order(symbol="BTC"))
    await api.cancel_all_orders("HYPE")
    assert api.pending_order(hype) is None
    assert api.pending_order(other) is not None
    await api.cancel_all_orders()
    assert api.pending_orders() == []


@pytest.mark.asyncio
async def test_cancel_all_orders_continues_after_failure():
    api, _ = make_api(ok)
    first = await api.place_order(new_order())
    second = await api.place_order(new_order())
    first_cid = api.pending_order(first).client_order_id

    def handler(request):
        if json.loads(request.content)["data"]["oid"] == first_cid:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"status": "ok"})

    api.auth.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    await api.cancel_all_orders()
    assert api.pending_order(first) is not None
    assert api.pending_order(second) is None


@pytest.mark.asyncio
async def test_rate_limiter_waits_when_budget_spent_and_resets():
    limiter = RateLimiter(max_requests=2, window=0.2)
    await limiter.acquire()
    await limiter.acquire()
    start = time.monotonic()
    await limiter.acquire()
    assert time.monotonic() - start >= 0.1
    assert limiter.request_count == 3
    await asyncio.sleep(0.25)
    await limiter.acquire()
    assert limiter.request_count == 1


@pytest.mark.asyncio
async def test_retry_past_max_retries_is_dropped_with_event():
    api, requests = make_api(ok, max_retries=2)
    order = pending(retry_count=2)
    api._pending[order.client_order_id] = order
    api.schedule_retry(order)
    await api.process_retries()
    assert requests == []
    assert api.pending_order(order.internal_id) is None
    assert api.retry_queue == []
    event = api.events.get_nowait()
    assert event.error == f"Max retries exceeded for order {order.internal_id}"


@pytest.mark.asyncio
async def test_successful_retry_tracks_order_with_incremented_count():
    api, requests = make_api(ok)
    order = pending()
    api.schedule_retry(order)
    await api.process_retries()
    tracked = api.pending_order(order.internal_id)
    assert tracked.retry_count == order.retry_count + 1
    assert api.retry_queue == []
    assert json.loads(requests[0].content)["data"]["t"] == "Market"


@pytest.mark.asyncio
async def test_failed_retry_is_requeued_for_later():
    api, requests = make_api(lambda r: httpx.Response(500, text="down"))
    order = pending()
    api.schedule_retry(order)
    await api.process_retries()
    assert len(api.retry_queue) == 1
    queued = api.retry_queue[0]
    assert queued.order.retry_count == order.retry_count + 1
    assert queued.retry_after > time.monotonic()
    await api.process_retries()
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_retry_not_yet_due_stays_queued():
    api, requests = make_api(ok)
    order = pending()
    api.schedule_retry(order, retry_after=time.monotonic() + 60)
    await api.process_retries()
    assert requests == []
    assert [request.order for request in api.retry_queue] == [order]


@pytest.mark.asyncio
async def test_retry_processor_runs_in_background():
    api, _ = make_api(ok)
    order = pending()
    api.schedule_retry(order)
    task = api.start_retry_processor()
    try:
        await asyncio.sleep(0.3)
    finally:
        task.cancel()
    assert api.pending_order(order.internal_id).retry_count == order.retry_count + 1