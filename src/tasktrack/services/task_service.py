"""Task service — ownership-scoped task CRUD, listing, and stats.

Learn: This is the CORE of the platform. Every method takes the caller's
Identity explicitly and follows one linear pipeline:

  list / stats:         scope filter to caller (non-admin) → caller filters → query
  create:               owner := caller, whatever the body says
  get / update / delete: fetch → NotFound if missing → ownership → act

Existence is checked before ownership, so a missing task looks the same
to everyone ("Task not found") and ownership is only judged against the
owner id already stored on the task.
"""

import math
import uuid
from typing import Optional, Union

import structlog

from tasktrack.auth.identity import Identity
from tasktrack.auth.policy import ensure_can_access
from tasktrack.db.models import Task
from tasktrack.errors import NotFound, ValidationFailed
from tasktrack.schemas.task import TaskCreate, TaskPage, TaskRead, TaskStats, TaskUpdate
from tasktrack.stores.base import TaskFilter, TaskSort, TaskStore

logger = structlog.get_logger()

TASK_NOT_FOUND = "Task not found"

# Largest row offset handed to a store; fits a signed 64-bit integer.
MAX_OFFSET = 2**62


# ═══════════════════════════════════════════════════════════
# Scoping helpers
# ═══════════════════════════════════════════════════════════


def scoped_filter(
    identity: Identity,
    status: Optional[str] = None,
    priority: Optional[str] = None,
) -> TaskFilter:
    """Build the query filter for `identity`.

    The owner constraint is decided from the identity alone; the
    caller-supplied filters can only narrow it further.
    """
    owner_id = None if identity.is_admin else identity.user_id
    return TaskFilter(owner_id=owner_id, status=status, priority=priority)


def clamp_pagination(page: int, limit: int, max_limit: int) -> tuple[int, int]:
    """Clamp to 1 <= limit <= max_limit and 1 <= page <= MAX_OFFSET // limit.

    Never rejects. A page past the end of the data is simply empty.
    """
    limit = min(max(limit, 1), max_limit)
    page = min(max(page, 1), max(MAX_OFFSET // limit, 1))
    return page, limit


def _parse_task_id(task_id: Union[uuid.UUID, str]) -> Optional[uuid.UUID]:
    if isinstance(task_id, uuid.UUID):
        return task_id
    try:
        return uuid.UUID(str(task_id))
    except ValueError:
        return None


# ═══════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════


class TaskService:
    """Business logic for task access. One method per operation."""

    def __init__(self, tasks: TaskStore, max_page_size: int = 100):
        self.tasks = tasks
        self.max_page_size = max_page_size

    # ─── Create ──────────────────────────────────────────

    async def create_task(self, identity: Identity, body: TaskCreate) -> Task:
        fields = body.model_dump()
        fields["owner_id"] = identity.user_id
        task = await self.tasks.create(fields)
        logger.info("tasks.created", task_id=str(task.id), owner_id=str(task.owner_id))
        return task

    # ─── Read ────────────────────────────────────────────

    async def list_tasks(
        self,
        identity: Identity,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort: TaskSort = TaskSort.NEWEST,
    ) -> TaskPage:
        task_filter = scoped_filter(identity, status=status, priority=priority)
        page, limit = clamp_pagination(page, limit, self.max_page_size)

        tasks = await self.tasks.find(
            task_filter, sort, skip=(page - 1) * limit, limit=limit
        )
        total = await self.tasks.count(task_filter)

        return TaskPage(
            tasks=[TaskRead.model_validate(t) for t in tasks],
            count=len(tasks),
            total=total,
            page=page,
            pages=math.ceil(total / limit),
        )

    async def get_task(
        self, identity: Identity, task_id: Union[uuid.UUID, str]
    ) -> Task:
        task = await self._load(task_id)
        ensure_can_access(identity, task.owner_id, "access")
        return task

    async def task_stats(self, identity: Identity) -> TaskStats:
        return await self.tasks.aggregate(scoped_filter(identity))

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self,
        identity: Identity,
        task_id: Union[uuid.UUID, str],
        changes: TaskUpdate,
    ) -> Task:
        """Apply the fields present in `changes`. Ownership gates the whole update."""
        task = await self._load(task_id)
        ensure_can_access(identity, task.owner_id, "update")

        fields = changes.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationFailed("No updatable fields supplied")

        updated = await self.tasks.update_by_id(task.id, fields)
        if updated is None:
            # Deleted between the fetch and the update.
            raise NotFound(TASK_NOT_FOUND)
        logger.info(
            "tasks.updated",
            task_id=str(task.id),
            fields=sorted(fields),
            actor_id=str(identity.user_id),
        )
        return updated

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(
        self, identity: Identity, task_id: Union[uuid.UUID, str]
    ) -> None:
        task = await self._load(task_id)
        ensure_can_access(identity, task.owner_id, "delete")
        await self.tasks.delete_by_id(task.id)
        logger.info(
            "tasks.deleted", task_id=str(task.id), actor_id=str(identity.user_id)
        )

    async def _load(self, task_id: Union[uuid.UUID, str]) -> Task:
        parsed = _parse_task_id(task_id)
        task = await self.tasks.find_by_id(parsed) if parsed else None
        if task is None:
            raise NotFound(TASK_NOT_FOUND)
        return task
