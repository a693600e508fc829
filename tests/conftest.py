"""Test fixtures — isolated in-memory databases and real-auth HTTP clients.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Env vars are set BEFORE tasktrack is imported — the settings object
   refuses to load without a JWT secret.
2. Each test gets its own in-memory SQLite database (aiosqlite +
   StaticPool, so every session shares the one connection) with the
   schema created from the models.
3. get_db is overridden to hand out sessions on that database. Auth is
   NOT overridden: the gate, policy and ownership checks are what we're
   testing, so every request carries a real token.

Unit tests use the in-memory fakes below instead of a database.
"""

import os

os.environ.setdefault("TASKTRACK_JWT_SECRET", "test-secret-that-is-at-least-32-chars-long")
os.environ.setdefault("TASKTRACK_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TASKTRACK_BCRYPT_ROUNDS", "4")

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tasktrack.auth.dependencies import get_token_service
from tasktrack.auth.identity import Identity, Role
from tasktrack.auth.password import hash_password
from tasktrack.db.engine import get_db
from tasktrack.db.models import Base, Task, User
from tasktrack.main import app
from tasktrack.schemas.task import TaskStats
from tasktrack.stores.base import TaskFilter, TaskSort
from tasktrack.stores.sql import SqlUserStore


# ═══════════════════════════════════════════════════════════
# Database + HTTP
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def session_factory():
    """Fresh in-memory schema per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Session for seeding and inspecting data directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client running the full app with only get_db overridden."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ═══════════════════════════════════════════════════════════
# Accounts
# ═══════════════════════════════════════════════════════════


async def _register(client: AsyncClient, name: str) -> dict:
    email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": "password_123"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    return {
        "user": body["user"],
        "token": body["token"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


@pytest_asyncio.fixture()
async def alice(client):
    return await _register(client, "Alice")


@pytest_asyncio.fixture()
async def bob(client):
    return await _register(client, "Bob")


@pytest_asyncio.fixture()
async def admin(client, db_session):
    """Admins can't be registered over HTTP — seed one through the store."""
    user = await SqlUserStore(db_session).create_user(
        name="Admin",
        email=f"admin-{uuid.uuid4().hex[:8]}@example.com",
        password_hash=hash_password("admin_password_123"),
        role=Role.ADMIN,
    )
    token = get_token_service().issue(user.id, Role.ADMIN)
    return {
        "user": {"id": str(user.id), "email": user.email, "role": user.role},
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


# ═══════════════════════════════════════════════════════════
# In-memory fakes for unit tests
# ═══════════════════════════════════════════════════════════


def make_task(owner_id: uuid.UUID, **fields: Any) -> Task:
    now = datetime.now(timezone.utc)
    values = {
        "id": uuid.uuid4(),
        "title": "Task",
        "description": "Description",
        "status": "pending",
        "priority": "medium",
        "due_date": None,
        "owner_id": owner_id,
        "owner": User(id=owner_id, name="Owner", email=f"{owner_id.hex[:8]}@example.com",
                      password_hash="x", role=Role.USER.value),
        "created_at": now,
        "updated_at": now,
    }
    values.update(fields)
    return Task(**values)


class InMemoryTaskStore:
    """TaskStore fake that records every call it receives."""

    def __init__(self, tasks: Optional[list[Task]] = None):
        self.tasks: dict[uuid.UUID, Task] = {t.id: t for t in tasks or []}
        self.calls: list[tuple[str, Any]] = []

    def add(self, task: Task) -> Task:
        self.tasks[task.id] = task
        return task

    async def find_by_id(self, task_id):
        self.calls.append(("find_by_id", task_id))
        return self.tasks.get(task_id)

    async def find(self, task_filter: TaskFilter, sort=TaskSort.NEWEST, skip=0, limit=10):
        self.calls.append(("find", task_filter))
        matching = [t for t in self.tasks.values() if task_filter.matches(t)]
        matching.sort(key=lambda t: t.created_at, reverse=sort is TaskSort.NEWEST)
        return matching[skip : skip + limit]

    async def count(self, task_filter: TaskFilter) -> int:
        self.calls.append(("count", task_filter))
        return sum(1 for t in self.tasks.values() if task_filter.matches(t))

    async def create(self, fields):
        self.calls.append(("create", fields))
        return self.add(make_task(**fields))

    async def update_by_id(self, task_id, fields):
        self.calls.append(("update_by_id", task_id))
        task = self.tasks.get(task_id)
        if task is None:
            return None
        for name, value in fields.items():
            setattr(task, name, value)
        return task

    async def delete_by_id(self, task_id):
        self.calls.append(("delete_by_id", task_id))
        self.tasks.pop(task_id, None)

    async def aggregate(self, task_filter: TaskFilter) -> TaskStats:
        self.calls.append(("aggregate", task_filter))
        stats = TaskStats()
        for t in self.tasks.values():
            if not task_filter.matches(t):
                continue
            stats.total += 1
            status_key = t.status.replace("-", "_")
            setattr(stats, status_key, getattr(stats, status_key) + 1)
            setattr(stats, t.priority, getattr(stats, t.priority) + 1)
        return stats


class InMemoryUserStore:
    """UserStore fake keyed by id, recording lookups."""

    def __init__(self, users: Optional[list[User]] = None):
        self.users: dict[uuid.UUID, User] = {u.id: u for u in users or []}
        self.calls: list[tuple[str, Any]] = []

    async def find_user_by_id(self, user_id):
        self.calls.append(("find_user_by_id", user_id))
        return self.users.get(user_id)

    async def find_user_by_email(self, email):
        self.calls.append(("find_user_by_email", email))
        return next((u for u in self.users.values() if u.email == email), None)

    def verify_password(self, plain, password_hash):
        self.calls.append(("verify_password", password_hash))
        return False

    async def create_user(self, name, email, password_hash, role=Role.USER):
        user = User(id=uuid.uuid4(), name=name, email=email,
                    password_hash=password_hash, role=Role(role).value)
        self.users[user.id] = user
        return user

    async def list_users(self):
        self.calls.append(("list_users", None))
        return list(self.users.values())


@pytest.fixture
def task_store():
    return InMemoryTaskStore()


@pytest.fixture
def task_factory():
    return make_task


@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def owner():
    return Identity(user_id=uuid.uuid4(), role=Role.USER)


@pytest.fixture
def other_user():
    return Identity(user_id=uuid.uuid4(), role=Role.USER)


@pytest.fixture
def admin_identity():
    return Identity(user_id=uuid.uuid4(), role=Role.ADMIN)
