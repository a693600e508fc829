"""Store adapter contracts for users and tasks.

Learn: The auth layer and the task service only talk to these Protocols.
Production wires in the SQLAlchemy adapters from stores/sql.py; unit
tests wire in in-memory fakes. Adapters raise StoreFailure for I/O
errors and never retry.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

from tasktrack.auth.identity import Role
from tasktrack.db.models import Task, User
from tasktrack.schemas.task import TaskStats


@dataclass(frozen=True)
class TaskFilter:
    """Equality filter over tasks. None means "don't filter on this"."""

    owner_id: Optional[uuid.UUID] = None
    status: Optional[str] = None
    priority: Optional[str] = None

    def matches(self, task: Task) -> bool:
        return (
            (self.owner_id is None or task.owner_id == self.owner_id)
            and (self.status is None or task.status == self.status)
            and (self.priority is None or task.priority == self.priority)
        )


class TaskSort(str, Enum):
    NEWEST = "-created_at"
    OLDEST = "created_at"
    DUE_SOON = "due_date"
    DUE_LATE = "-due_date"


class UserStore(Protocol):
    async def find_user_by_id(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def find_user_by_email(self, email: str) -> Optional[User]: ...

    def verify_password(self, plain: str, password_hash: str) -> bool: ...

    async def create_user(
        self, name: str, email: str, password_hash: str, role: Role = Role.USER
    ) -> User: ...

    async def list_users(self) -> list[User]: ...


class TaskStore(Protocol):
    async def find_by_id(self, task_id: uuid.UUID) -> Optional[Task]: ...

    async def find(
        self, task_filter: TaskFilter, sort: TaskSort, skip: int, limit: int
    ) -> list[Task]: ...

    async def count(self, task_filter: TaskFilter) -> int: ...

    async def create(self, fields: dict[str, Any]) -> Task: ...

    async def update_by_id(
        self, task_id: uuid.UUID, fields: dict[str, Any]
    ) -> Optional[Task]: ...

    async def delete_by_id(self, task_id: uuid.UUID) -> None: ...

    async def aggregate(self, task_filter: TaskFilter) -> TaskStats: ...
