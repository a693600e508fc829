"""Roles and the request-scoped identity.

Learn: Role is a closed enum, so an unknown role string fails when the
Role is constructed (token decode, DB read) rather than slipping through
as a string that happens not to equal "admin".
"""

import uuid
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller for the lifetime of one request."""

    user_id: uuid.UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
