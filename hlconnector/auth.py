"""Request signing and authenticated HTTP access."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any

import httpx

from .types import AuthenticationError, NetworkError, ParseError, now_millis

AUTH_URL = "https://api.hyperliquid.xyz/info"
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass
class SignedRequest:
    """A payload together with its action, nonce and signature."""

    action: str
    nonce: int
    signature: str
    data: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "nonce": self.nonce,
            "signature": self.signature,
            "data": self.data,
        }


def _payload(data: Any) -> Any:
    to_dict = getattr(data, "to_dict", None)
    return to_dict() if callable(to_dict) else data


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()


class HyperLiquidAuth:
    """Holds the signing key, the optional account id and the HTTP client."""

    def __init__(
        self,
        private_key: str,
        account_id: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.private_key = private_key
        self.account_id = account_id
        self.client = client if client is not None else httpx.AsyncClient(
            timeout=DEFAULT_HTTP_TIMEOUT
        )

    def __repr__(self) -> str:
        return f"HyperLiquidAuth(account_id={self.account_id!r})"

    async def __aenter__(self) -> HyperLiquidAuth:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def with_account_id(self, account_id: int) -> HyperLiquidAuth:
        """Set the account id and return this object for chaining."""
        self.account_id = account_id
        return self

    def get_nonce(self) -> int:
        """Current time in milliseconds, used as the request nonce."""
        return now_millis()

    def sign_message(self, message: str) -> str:
        """Hex SHA-256 digest of the message followed by the private key."""
        digest = hashlib.sha256()
        digest.update(message.encode("utf-8"))
        digest.update(self.private_key.encode("utf-8"))
        return digest.hexdigest()

    def create_signed_request(self, action: str, data: Any) -> SignedRequest:
        """Sign the compact JSON form of ``data`` prefixed with ``action``."""
        try:
            serialized = json.dumps(_payload(data), separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise ParseError(str(exc)) from exc
        return SignedRequest(
            action=action,
            nonce=self.get_nonce(),
            signature=self.sign_message(action + serialized),
            data=json.loads(serialized),
        )

    def get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.account_id is not None:
            headers["X-Account-Id"] = str(self.account_id)
        return headers

    async def post_json(self, url: str, action: str, data: Any) -> httpx.Response:
        """POST a signed request; transport failures become NetworkError."""
        signed = self.create_signed_request(action, data)
        try:
            return await self.client.post(url, headers=self.get_headers(), json=signed.to_dict())
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc)) from exc

    async def authenticate(self) -> None:
        """Check the credentials against the info endpoint."""
        request = {"action": "info", "nonce": self.get_nonce()}
        response = await self.post_json(AUTH_URL, "info", request)
        if not response.is_success:
            raise AuthenticationError(
                f"Authentication failed with status: {_status_line(response)}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise ParseError(str(exc)) from exc
        if not isinstance(body, dict) or not isinstance(body.get("status"), str):
            raise ParseError("missing field `status`")
        if body["status"] != "ok":
            raise AuthenticationError("Authentication response status not ok")

    def is_authenticated(self) -> bool:
        return self.account_id is not None

    async def aclose(self) -> None:
        await self.client.aclose()