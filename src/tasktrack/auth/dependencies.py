"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers and at the
include_router level. `get_current_identity` wraps the AuthenticationGate;
`requires_role(...)` stacks a role check on top of it.

FastAPI caches a dependency per request, so a route that depends on
get_current_identity under a router that also depends on it still runs
the gate only once.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Optional

import structlog
from fastapi import Depends, Header

from tasktrack.auth.gate import AuthenticationGate
from tasktrack.auth.identity import Identity, Role
from tasktrack.auth.jwt import TokenService
from tasktrack.auth.policy import require_role
from tasktrack.config import settings
from tasktrack.stores.base import UserStore
from tasktrack.stores.sql import get_user_store


@lru_cache
def get_token_service() -> TokenService:
    """Process-wide token service built from the frozen settings."""
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_in=timedelta(days=settings.token_expire_days),
    )


def get_auth_gate(
    tokens: TokenService = Depends(get_token_service),
    users: UserStore = Depends(get_user_store),
) -> AuthenticationGate:
    return AuthenticationGate(tokens, users)


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    gate: AuthenticationGate = Depends(get_auth_gate),
) -> Identity:
    """Resolve the caller's identity (required — 401 otherwise)."""
    identity = await gate.authenticate(authorization)
    structlog.contextvars.bind_contextvars(
        user_id=str(identity.user_id), role=identity.role.value
    )
    return identity


def requires_role(*roles: Role):
    """Dependency factory: authenticate, then require one of `roles`."""

    async def dependency(
        identity: Identity = Depends(get_current_identity),
    ) -> Identity:
        require_role(identity, roles)
        return identity

    return dependency
