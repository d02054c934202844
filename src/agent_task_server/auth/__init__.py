from agent_task_server.auth.gate import AuthDecision, AuthGate, extract_bearer_token
from agent_task_server.auth.provider import (
    IdentityProvider,
    IdentityProviderError,
    SupabaseIdentityProvider,
)

__all__ = [
    "AuthDecision",
    "AuthGate",
    "IdentityProvider",
    "IdentityProviderError",
    "SupabaseIdentityProvider",
    "extract_bearer_token",
]
