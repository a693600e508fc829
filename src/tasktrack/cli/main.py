"""TaskTrack CLI — run the server and manage accounts from the shell.

Usage:
    tasktrack serve --reload                      # Run the API with uvicorn
    tasktrack init-db                             # Create tables (dev / SQLite)
    tasktrack create-admin --email a@x.io --name Admin
    tasktrack issue-token --email a@x.io          # Mint a bearer token
    tasktrack users                               # List accounts

Admin accounts can only be created here; the HTTP API never grants
the admin role.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from contextlib import asynccontextmanager

import click
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tasktrack import __version__
from tasktrack.auth.dependencies import get_token_service
from tasktrack.auth.identity import Role
from tasktrack.auth.password import hash_password
from tasktrack.config import settings
from tasktrack.db.engine import make_engine
from tasktrack.db.models import Base
from tasktrack.errors import Conflict, StoreFailure
from tasktrack.schemas.user import normalize_email
from tasktrack.stores.sql import SqlUserStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


@asynccontextmanager
async def _session(database_url: str):
    """One engine + session for the lifetime of a command."""
    engine = make_engine(database_url)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with factory() as session:
            yield session
    finally:
        await engine.dispose()


def _fail(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


database_url_option = click.option(
    "--database-url",
    default=lambda: settings.database_url,
    show_default="TASKTRACK_DATABASE_URL",
    help="SQLAlchemy async database URL",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="tasktrack")
def main():
    """TaskTrack — task tracking API server and account administration."""


@main.command()
@click.option("--host", default=lambda: settings.host, show_default="TASKTRACK_HOST")
@click.option("--port", default=lambda: settings.port, type=int, show_default="TASKTRACK_PORT")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str, port: int, reload: bool):
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run("tasktrack.main:app", host=host, port=port, reload=reload)


@main.command("init-db")
@database_url_option
def init_db(database_url: str):
    """Create all tables. Production databases should use alembic instead."""
    _run(_init_db_impl(database_url))
    click.secho("Tables created.", fg="green")


async def _init_db_impl(database_url: str):
    engine = make_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


@main.command("create-admin")
@click.option("--email", required=True)
@click.option("--name", required=True)
@click.password_option()
@database_url_option
def create_admin(email: str, name: str, password: str, database_url: str):
    """Create an administrator account."""
    try:
        email = normalize_email(email)
    except ValueError as e:
        _fail(str(e))
    if len(password) < 8:
        _fail("Password must be at least 8 characters")

    try:
        user = _run(_create_admin_impl(database_url, email, name, password))
    except (Conflict, StoreFailure) as e:
        _fail(e.message)
    click.secho(f"Admin {user.email} created ({user.id})", fg="green")


async def _create_admin_impl(database_url: str, email: str, name: str, password: str):
    async with _session(database_url) as db:
        users = SqlUserStore(db)
        if await users.find_user_by_email(email):
            raise Conflict("User already exists with this email")
        return await users.create_user(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=Role.ADMIN,
        )


@main.command("issue-token")
@click.option("--email", required=True)
@database_url_option
def issue_token(email: str, database_url: str):
    """Print a bearer token for an existing account."""
    try:
        user = _run(_find_user_impl(database_url, email))
    except StoreFailure as e:
        _fail(e.message)
    if user is None:
        _fail(f"No user with email {email}")

    click.echo(get_token_service().issue(user.id, user.role))


async def _find_user_impl(database_url: str, email: str):
    async with _session(database_url) as db:
        return await SqlUserStore(db).find_user_by_email(email)


@main.command()
@database_url_option
def users(database_url: str):
    """List all accounts."""
    try:
        rows = _run(_users_impl(database_url))
    except StoreFailure as e:
        _fail(e.message)

    if not rows:
        click.echo("No users found.")
        return

    click.secho(f"Users ({len(rows)}):", bold=True)
    click.echo()
    for u in rows:
        role_str = click.style(u.role, fg="magenta" if u.role == Role.ADMIN.value else "white")
        click.echo(f"  {str(u.id)[:8]}  {u.email:30s}  {u.name:20s}  {role_str}")


async def _users_impl(database_url: str):
    async with _session(database_url) as db:
        return await SqlUserStore(db).list_users()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
