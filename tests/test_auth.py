import json
import time

import httpx
import pytest

from hlconnector.auth import AUTH_URL, HyperLiquidAuth, SignedRequest
from hlconnector.types import AuthenticationError, HyperLiquidOrder, NetworkError, ParseError


def make_auth(handler, account_id=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HyperLiquidAuth("secret", account_id=account_id, client=client)


def test_sign_message_known_vector():
    auth = HyperLiquidAuth("secret", client=httpx.AsyncClient())
    assert (
        auth.sign_message("")
        == "2bb80d537b1da3e38bd30361aa855686bde0eacd7162fef6a25fe97bf527a25b"
    )


def test_sign_message_depends_on_key_and_is_deterministic():
    first = HyperLiquidAuth("secret", client=httpx.AsyncClient())
    second = HyperLiquidAuth("placeholder", client=httpx.AsyncClient())
    assert first.sign_message("hello") == first.sign_message("hello")
    assert first.sign_message("hello") != second.sign_message("hello")
    assert len(first.sign_message("hello")) == 64


def test_create_signed_request_uses_compact_json():
    auth = HyperLiquidAuth("secret", client=httpx.AsyncClient())
    data = {"type": "clearinghouseState", "user": None}
    before = int(time.time() * 1000)
    signed = auth.create_signed_request("info", data)
    after = int(time.time() * 1000)
    assert signed.action == "info"
    assert signed.data == data
    assert signed.signature == auth.sign_message(
        'info{"type":"clearinghouseState","user":null}'
    )
    assert before - 1 <= signed.nonce <= after + 1


def test_create_signed_request_accepts_objects_with_to_dict():
    auth = HyperLiquidAuth("secret", client=httpx.AsyncClient())
    order = HyperLiquidOrder(a=None, b=True, p="1", s="2", r=False, t="Limit", cid=1)
    signed = auth.create_signed_request("order", order)
    assert signed.data == order.to_dict()


def test_create_signed_request_rejects_unserializable():
    auth = HyperLiquidAuth("secret", client=httpx.AsyncClient())
    with pytest.raises(ParseError):
        auth.create_signed_request("info", {"bad": object()})


def test_signed_request_to_dict():
    signed = SignedRequest(action="cancel", nonce=5, signature="ab", data={"oid": 1})
    assert signed.to_dict() == {
        "action": "cancel",
        "nonce": 5,
        "signature": "ab",
        "data": {"oid": 1},
    }


def test_headers_without_and_with_account():
    auth = HyperLiquidAuth("secret", client=httpx.AsyncClient())
    assert auth.get_headers() == {"Content-Type": "application/json"}
    assert not auth.is_authenticated()
    assert auth.with_account_id(77) is auth
    assert auth.get_headers()["X-Account-Id"] == "77"
    assert auth.is_authenticated()


@pytest.mark.asyncio
async def test_authenticate_ok_sends_signed_info_request():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "ok", "response": None})

    auth = make_auth(handler, account_id=12)
    result = await auth.authenticate()
    await auth.aclose()
    assert result is None
    assert auth.is_authenticated() is True
    assert len(seen) == 1
    assert str(seen[0].url) == AUTH_URL
    assert seen[0].headers["X-Account-Id"] == "12"
    body = json.loads(seen[0].content)
    assert body["action"] == "info"
    assert body["data"]["action"] == "info"
    assert isinstance(body["data"]["nonce"], int)
    expected_message = "info" + json.dumps(body["data"], separators=(",", ":"))
    assert body["signature"] == auth.sign_message(expected_message)


@pytest.mark.asyncio
async def test_authenticate_http_failure():
    auth = make_auth(lambda request: httpx.Response(403, text="no"))
    with pytest.raises(AuthenticationError, match="403"):
        await auth.authenticate()


@pytest.mark.asyncio
async def test_authenticate_status_not_ok():
    auth = make_auth(lambda request: httpx.Response(200, json={"status": "err"}))
    with pytest.raises(AuthenticationError, match="status not ok"):
        await auth.authenticate()


@pytest.mark.asyncio
async def test_authenticate_bad_json():
    auth = make_auth(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(ParseError):
        await auth.authenticate()


@pytest.mark.asyncio
async def test_post_json_transport_error_is_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    auth = make_auth(handler)
    with pytest.raises(NetworkError, match="refused"):
        await auth.post_json("http://localhost/info", "info", {"type": "x"})