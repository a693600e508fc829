"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Two tables: users and tasks. One user owns many tasks via tasks.owner_id.

Key concepts:
- UUID primary keys via the portable `Uuid` type (native on PostgreSQL,
  CHAR(32) on SQLite for tests)
- Python-side defaults for ids and timestamps, so the values are known
  right after flush without a round-trip
- `Task.overdue` is derived on read and never stored
- `Task.owner` is loaded explicitly by the store; async sessions cannot
  lazy-load relationships
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class User(Base):
    """An account. Role is 'user' unless created through the admin CLI.

    Learn: password_hash lives here but no response schema exposes it.
    Email is stored lowercased; the unique constraint is the last line
    of defence against duplicate registration races.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False, default="user")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Task(Base):
    """A unit of work owned by exactly one user.

    Key columns:
    - status: pending, in-progress, completed
    - priority: low, medium, high
    - owner_id: set from the authenticated caller on create, never updated
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_owner_status", "owner_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    # Loaded by the task store with selectinload(); never lazy in async
    owner: Mapped[User] = relationship()

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def overdue(self) -> bool:
        if self.due_date is None or self.status == "completed":
            return False
        return as_utc(self.due_date) < utcnow()
