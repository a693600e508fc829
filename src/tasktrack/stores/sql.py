"""SQLAlchemy implementations of the user and task stores.

Learn: Every database call is wrapped so that a SQLAlchemyError leaves
the adapter as StoreFailure (chained to the original). Callers never see
driver exceptions, and a broken database is never mistaken for a missing
row or a failed login.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tasktrack.auth.identity import Role
from tasktrack.auth.password import verify_password
from tasktrack.db.engine import get_db
from tasktrack.db.models import Task, User
from tasktrack.errors import Conflict, StoreFailure
from tasktrack.schemas.task import TaskStats
from tasktrack.stores.base import TaskFilter, TaskSort


@asynccontextmanager
async def _store_errors(operation: str):
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreFailure(f"{operation} failed: {type(e).__name__}") from e


# ═══════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════


class SqlUserStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        async with _store_errors("user lookup"):
            return await self.db.get(User, user_id)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        async with _store_errors("user lookup"):
            result = await self.db.execute(
                select(User).where(User.email == email.strip().lower())
            )
            return result.scalars().first()

    def verify_password(self, plain: str, password_hash: str) -> bool:
        return verify_password(plain, password_hash)

    async def create_user(
        self, name: str, email: str, password_hash: str, role: Role = Role.USER
    ) -> User:
        user = User(
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
            role=Role(role).value,
        )
        try:
            self.db.add(user)
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            await self.db.rollback()
            raise Conflict("User already exists with this email")
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure(f"user create failed: {type(e).__name__}") from e
        return user

    async def list_users(self) -> list[User]:
        async with _store_errors("user listing"):
            result = await self.db.execute(
                select(User).order_by(User.created_at.desc())
            )
            return list(result.scalars().all())


# ═══════════════════════════════════════════════════════════
# Tasks
# ═══════════════════════════════════════════════════════════


_ORDERING = {
    TaskSort.NEWEST: (Task.created_at.desc(),),
    TaskSort.OLDEST: (Task.created_at.asc(),),
    TaskSort.DUE_SOON: (Task.due_date.is_(None), Task.due_date.asc()),
    TaskSort.DUE_LATE: (Task.due_date.is_(None), Task.due_date.desc()),
}


# Task responses embed the owner
_WITH_OWNER = [selectinload(Task.owner)]


def _apply_filter(query, task_filter: TaskFilter):
    """Add WHERE clauses for the non-None fields of the filter."""
    if task_filter.owner_id is not None:
        query = query.where(Task.owner_id == task_filter.owner_id)
    if task_filter.status is not None:
        query = query.where(Task.status == task_filter.status)
    if task_filter.priority is not None:
        query = query.where(Task.priority == task_filter.priority)
    return query


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class SqlTaskStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, task_id: uuid.UUID) -> Optional[Task]:
        async with _store_errors("task lookup"):
            return await self.db.get(Task, task_id, options=_WITH_OWNER)

    async def find(
        self,
        task_filter: TaskFilter,
        sort: TaskSort = TaskSort.NEWEST,
        skip: int = 0,
        limit: int = 10,
    ) -> list[Task]:
        query = (
            _apply_filter(select(Task).options(*_WITH_OWNER), task_filter)
            .order_by(*_ORDERING[sort], Task.id)
            .offset(skip)
            .limit(limit)
        )
        async with _store_errors("task listing"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def count(self, task_filter: TaskFilter) -> int:
        query = _apply_filter(select(func.count(Task.id)), task_filter)
        async with _store_errors("task count"):
            result = await self.db.execute(query)
            return result.scalar_one()

    async def create(self, fields: dict[str, Any]) -> Task:
        task = Task(**fields)
        async with _store_errors("task create"):
            self.db.add(task)
            await self.db.commit()
            await self.db.refresh(task, ["owner"])
        return task

    async def update_by_id(
        self, task_id: uuid.UUID, fields: dict[str, Any]
    ) -> Optional[Task]:
        async with _store_errors("task update"):
            task = await self.db.get(Task, task_id, options=_WITH_OWNER)
            if task is None:
                return None
            for name, value in fields.items():
                setattr(task, name, value)
            await self.db.commit()
            return task

    async def delete_by_id(self, task_id: uuid.UUID) -> None:
        async with _store_errors("task delete"):
            await self.db.execute(delete(Task).where(Task.id == task_id))
            await self.db.commit()

    async def aggregate(self, task_filter: TaskFilter) -> TaskStats:
        """Count tasks by status and priority in one query.

        Learn: SUM over zero rows is NULL, hence the COALESCE — an empty
        scope yields all-zero counters, not a missing aggregate.
        """
        query = _apply_filter(
            select(
                func.count(Task.id).label("total"),
                _count_where(Task.status == "pending").label("pending"),
                _count_where(Task.status == "in-progress").label("in_progress"),
                _count_where(Task.status == "completed").label("completed"),
                _count_where(Task.priority == "low").label("low"),
                _count_where(Task.priority == "medium").label("medium"),
                _count_where(Task.priority == "high").label("high"),
            ),
            task_filter,
        )
        async with _store_errors("task aggregate"):
            result = await self.db.execute(query)
            row = result.one()
        return TaskStats(**{key: int(value or 0) for key, value in row._mapping.items()})


# ─── FastAPI providers ──────────────────────────────────


def get_user_store(db: AsyncSession = Depends(get_db)) -> SqlUserStore:
    return SqlUserStore(db)


def get_task_store(db: AsyncSession = Depends(get_db)) -> SqlTaskStore:
    return SqlTaskStore(db)
