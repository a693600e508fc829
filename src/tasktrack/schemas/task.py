"""Pydantic schemas for tasks.

Learn: Separate schemas for create/update/read keeps the API clean.
- TaskCreate: what you POST to create a task (no owner field — the owner
  is always the caller; unknown keys like `owner_id` are ignored)
- TaskUpdate: what you PUT to modify a task (all optional)
- TaskRead: what the API returns (includes the computed `overdue` and
  the owner's id, name and email)
- TaskPage / TaskStats: list and aggregate responses
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from tasktrack.schemas.user import UserBrief

TASK_STATUSES = ("pending", "in-progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high")

STATUS_PATTERN = r"^(pending|in-progress|completed)$"
PRIORITY_PATTERN = r"^(low|medium|high)$"


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    status: str = Field(default="pending", pattern=STATUS_PATTERN)
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    due_date: Optional[datetime] = None

    model_config = {"str_strip_whitespace": True, "extra": "ignore"}


class TaskUpdate(BaseModel):
    """Partial update — only fields present in the body are applied.

    `due_date` may be set to null to clear it; the other fields may not.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)
    due_date: Optional[datetime] = None

    model_config = {"str_strip_whitespace": True, "extra": "ignore"}

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for name in ("title", "description", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class TaskRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    status: str
    priority: str
    due_date: Optional[datetime]
    owner_id: uuid.UUID
    owner: UserBrief
    overdue: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskPage(BaseModel):
    """One page of a (scoped) task listing."""

    tasks: list[TaskRead]
    count: int  # tasks on this page
    total: int  # tasks matching the filter
    page: int
    pages: int


class TaskStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    low: int = 0
    medium: int = 0
    high: int = 0
