"""Task API routes.

Learn: These routes are the HTTP interface to TaskService. The router is
mounted with the authentication dependency, and each handler also takes
the Identity explicitly so it can hand it to the service. Routes just
translate HTTP to service calls; errors raised by the service are mapped
to status codes by the app's exception handlers.

Key patterns:
- GET /tasks/stats is declared before /tasks/{task_id} so "stats" is
  never parsed as an id
- page/limit are plain ints; the service clamps them instead of
  rejecting out-of-range values
- task_id is a plain string; anything that isn't a known task id,
  including malformed ones, is the same 404
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from tasktrack.auth.dependencies import get_current_identity
from tasktrack.auth.identity import Identity
from tasktrack.config import settings
from tasktrack.schemas.task import (
    PRIORITY_PATTERN,
    STATUS_PATTERN,
    TaskCreate,
    TaskPage,
    TaskRead,
    TaskStats,
    TaskUpdate,
)
from tasktrack.services.task_service import TaskService
from tasktrack.stores.base import TaskSort, TaskStore
from tasktrack.stores.sql import get_task_store

router = APIRouter(prefix="/tasks")


def _task_svc(tasks: TaskStore = Depends(get_task_store)) -> TaskService:
    return TaskService(tasks, max_page_size=settings.max_page_size)


@router.get("/stats", response_model=TaskStats)
async def task_stats(
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """Task counts by status and priority, scoped to the caller."""
    return await svc.task_stats(identity)


@router.get("", response_model=TaskPage)
async def list_tasks(
    status: Optional[str] = Query(None, pattern=STATUS_PATTERN),
    priority: Optional[str] = Query(None, pattern=PRIORITY_PATTERN),
    page: int = Query(1, description="1-based page number (clamped)"),
    limit: int = Query(settings.default_page_size, description="Page size (clamped)"),
    sort: TaskSort = Query(TaskSort.NEWEST),
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """List tasks. Non-admins only ever see their own."""
    return await svc.list_tasks(
        identity,
        status=status,
        priority=priority,
        page=page,
        limit=limit,
        sort=sort,
    )


@router.post("", response_model=TaskRead, status_code=201)
async def create_task(
    body: TaskCreate,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """Create a task owned by the caller."""
    return await svc.create_task(identity, body)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: str,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """Get a single task by ID."""
    return await svc.get_task(identity, task_id)


@router.put("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    body: TaskUpdate,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """Update the supplied fields of a task."""
    return await svc.update_task(identity, task_id, body)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    identity: Identity = Depends(get_current_identity),
    svc: TaskService = Depends(_task_svc),
):
    """Delete a task."""
    await svc.delete_task(identity, task_id)
    return {"deleted": True}
