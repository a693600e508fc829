"""Authentication gate — bearer token → verified Identity.

Learn: The gate is the first thing every protected route runs. It:
1. Extracts the token from `Authorization: Bearer <token>`
2. Verifies signature + expiry via TokenService
3. Confirms the account still exists (a deleted user's token is dead)
4. Returns the Identity for downstream checks

Every failure is `Unauthenticated`. Expired and malformed tokens get the
same client message; the real reason only goes to the log. A store error
during the user lookup is NOT an auth failure — it propagates as
StoreFailure and becomes a 500.
"""

from typing import Optional

import structlog

from tasktrack.auth.identity import Identity
from tasktrack.auth.jwt import TokenError, TokenService
from tasktrack.errors import Unauthenticated
from tasktrack.stores.base import UserStore

logger = structlog.get_logger()

NO_TOKEN_MESSAGE = "Not authorized, no token supplied"
INVALID_TOKEN_MESSAGE = "Not authorized, token invalid"


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from a `Bearer <token>` header value, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class AuthenticationGate:
    def __init__(self, tokens: TokenService, users: UserStore):
        self.tokens = tokens
        self.users = users

    async def authenticate(self, authorization: Optional[str]) -> Identity:
        token = extract_bearer_token(authorization)
        if token is None:
            raise Unauthenticated(NO_TOKEN_MESSAGE)

        try:
            claims = self.tokens.verify(token)
        except TokenError as e:
            logger.info(
                "auth.token_rejected", kind=type(e).__name__, reason=str(e)
            )
            raise Unauthenticated(INVALID_TOKEN_MESSAGE) from e

        # Single round-trip, no retry.
        user = await self.users.find_user_by_id(claims.user_id)
        if user is None:
            logger.info("auth.user_missing", user_id=str(claims.user_id))
            raise Unauthenticated(INVALID_TOKEN_MESSAGE)

        return Identity(user_id=claims.user_id, role=claims.role)
