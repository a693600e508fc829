"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. A token
carries the user id (`sub`), the role, and issued-at/expiry timestamps,
signed with a symmetric secret (HS256 by default). There is no server-side
revocation list: a token is valid exactly while its signature checks out
and `exp` is in the future.

Expired and malformed tokens raise different exceptions so callers can
log the difference. The HTTP layer collapses both into one 401 message.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

import jwt

from tasktrack.auth.identity import Role


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenInvalid(TokenError):
    """Bad signature, wrong algorithm, or malformed claims."""


class TokenExpired(TokenError):
    """The token's `exp` claim is in the past."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    role: Role
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies identity tokens.

    The signing secret is handed over once at construction and kept in a
    private attribute; the service has no way to change it afterwards.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_in: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._expires_in = expires_in

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def expires_in(self) -> timedelta:
        return self._expires_in

    def issue(self, user_id: Union[uuid.UUID, str], role: Union[Role, str]) -> str:
        """Create a signed token for the given user and role."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": Role(role).value,
            "iat": now,
            "exp": now + self._expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify signature and expiry, then decode the claims.

        Raises TokenExpired or TokenInvalid on failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "role", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenInvalid(f"Invalid token: {e}")

        try:
            return TokenClaims(
                user_id=uuid.UUID(payload["sub"]),
                role=Role(payload["role"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (ValueError, TypeError, AttributeError) as e:
            raise TokenInvalid(f"Invalid token: malformed claims ({e})")
