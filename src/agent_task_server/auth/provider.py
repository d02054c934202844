"""Async client for a Supabase-compatible identity provider.

Only the four calls the gate and the login routes need are implemented:
resolve a token to a user, check the `is_admin` RPC, exchange a password
for a session and revoke a session.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Non-2xx answer from the provider. Transport failures stay httpx errors."""

    def __init__(self, message: str, *, status_code: int, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class IdentityProvider(Protocol):
    async def get_user(self, token: str) -> dict[str, Any]: ...

    async def is_admin(self, token: str, user_id: str) -> bool: ...

    async def password_login(self, email: str, password: str) -> dict[str, Any]: ...

    async def logout(self, token: str) -> None: ...


class SupabaseIdentityProvider:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        anon_key: str = "",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.anon_key = anon_key
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_s,
            transport=self._transport,
        )

    def _session_headers(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "apikey": self.service_key}

    async def get_user(self, token: str) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.get("/auth/v1/user", headers=self._session_headers(token))
        if response.status_code != 200:
            raise IdentityProviderError(
                "Invalid token",
                status_code=response.status_code,
                payload=_json_or_text(response),
            )
        try:
            user = response.json()
        except ValueError as exc:
            raise IdentityProviderError(
                "Invalid token", status_code=response.status_code, payload=response.text
            ) from exc
        if not isinstance(user, dict) or not user.get("id"):
            raise IdentityProviderError("User not found", status_code=response.status_code, payload=user)
        return user

    async def is_admin(self, token: str, user_id: str) -> bool:
        async with self._client() as client:
            response = await client.post(
                "/rest/v1/rpc/is_admin",
                headers=self._session_headers(token),
                json={"check_user_id": user_id},
            )
        if not response.is_success:
            raise IdentityProviderError(
                "Admin check failed",
                status_code=response.status_code,
                payload=_json_or_text(response),
            )
        try:
            return response.json() is True
        except ValueError as exc:
            raise IdentityProviderError(
                "Admin check failed", status_code=response.status_code, payload=response.text
            ) from exc

    async def password_login(self, email: str, password: str) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.post(
                "/auth/v1/token",
                params={"grant_type": "password"},
                headers={"apikey": self.anon_key or self.service_key},
                json={"email": email, "password": password},
            )
        payload = _json_or_text(response)
        if not response.is_success:
            message = "Login failed"
            if isinstance(payload, dict):
                message = payload.get("error_description") or payload.get("msg") or message
            raise IdentityProviderError(message, status_code=response.status_code, payload=payload)
        if not isinstance(payload, dict):
            raise IdentityProviderError("Login failed", status_code=response.status_code, payload=payload)
        return payload

    async def logout(self, token: str) -> None:
        async with self._client() as client:
            response = await client.post("/auth/v1/logout", headers=self._session_headers(token))
        if not response.is_success:
            logger.info("identity event=logout_rejected status_code=%s", response.status_code)


def _json_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
