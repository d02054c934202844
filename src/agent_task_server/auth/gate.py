"""Bearer-token gate in front of every task-mutating and listing route."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from agent_task_server.auth.provider import IdentityProvider, IdentityProviderError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthDecision:
    valid: bool
    is_admin: bool
    user: dict[str, Any] | None = None
    error: str | None = None


class AuthGate:
    """Turns a bearer token into an allow/deny decision.

    With no provider the gate allows everything. That mode is only reachable
    when the operator sets `allow_unauthenticated`; `create_app` refuses to
    build an app otherwise.
    """

    def __init__(self, provider: IdentityProvider | None) -> None:
        self.provider = provider

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    async def verify(self, token: str | None) -> AuthDecision:
        # The bypass applies to anonymous callers too.
        if self.provider is None:
            logger.warning("auth event=bypass reason=identity_provider_not_configured")
            return AuthDecision(valid=True, is_admin=True)

        if not token:
            return AuthDecision(valid=False, is_admin=False, error="No token provided")

        try:
            user = await self.provider.get_user(token)
        except IdentityProviderError as exc:
            return AuthDecision(valid=False, is_admin=False, error=exc.message)
        except httpx.HTTPError as exc:
            logger.error("auth event=verify_error stage=user error=%s", exc)
            return AuthDecision(valid=False, is_admin=False, error=str(exc) or exc.__class__.__name__)

        # The token is genuine from here on; only the privilege check can fail.
        try:
            is_admin = await self.provider.is_admin(token, user["id"])
        except IdentityProviderError as exc:
            logger.error("auth event=admin_check_failed user_id=%s payload=%s", user["id"], exc.payload)
            return AuthDecision(valid=True, is_admin=False, user=user, error=exc.message)
        except httpx.HTTPError as exc:
            # A transport failure anywhere in verification rejects the token. Only a
            # provider answer refusing the admin predicate keeps it valid.
            logger.error("auth event=verify_error stage=admin_check error=%s", exc)
            return AuthDecision(valid=False, is_admin=False, error=str(exc) or exc.__class__.__name__)

        return AuthDecision(valid=True, is_admin=is_admin, user=user)


def extract_bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):] or None
    return None
