"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor comes from TASKTRACK_BCRYPT_ROUNDS (12 by default,
~100ms per hash on modern hardware; tests drop it to 4).
"""

import secrets
from functools import lru_cache
from typing import Optional

import bcrypt

from tasktrack.config import settings


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash. Never raises."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache
def dummy_hash() -> str:
    """A hash of a random password, checked when the account doesn't exist.

    Login runs one bcrypt comparison whether or not the email is known, so
    response time doesn't reveal which emails are registered.
    """
    return hash_password(secrets.token_urlsafe(32))
