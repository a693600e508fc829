"""Authorization policy — role checks and task ownership.

Learn: Both checks are pure functions over an Identity and data that has
already been fetched. Nothing here does I/O, so a denial is final:
retrying would produce the same answer.

Ownership must be evaluated against the owner id stored on the task,
never against anything the caller put in the request body.
"""

import uuid
from collections.abc import Iterable

from tasktrack.auth.identity import Identity, Role
from tasktrack.errors import Forbidden


def require_role(identity: Identity, allowed_roles: Iterable[Role]) -> None:
    """Raise Forbidden unless the identity holds one of the allowed roles."""
    allowed = set(allowed_roles)
    if identity.role not in allowed:
        raise Forbidden(
            f"User role '{identity.role.value}' is not authorized to access this route"
        )


def can_access(identity: Identity, owner_id: uuid.UUID) -> bool:
    """Admins can access everything; everyone else only what they own."""
    return identity.role is Role.ADMIN or identity.user_id == owner_id


def ensure_can_access(identity: Identity, owner_id: uuid.UUID, action: str) -> None:
    if not can_access(identity, owner_id):
        raise Forbidden(f"Not authorized to {action} this task")
