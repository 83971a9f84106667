"""Bug tracker CLI — run the server and administer the database.

Usage:
    bugtracker serve                           # Run the API with uvicorn
    bugtracker init-db                         # Create tables from the models
    bugtracker create-user alice a@x.io -p ... # Create an account
    bugtracker create-user root r@x.io --admin # Create an admin account

Configuration comes from BUGTRACKER_* environment variables, exactly as
for the server.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys

import click

from bugtracker import __version__
from bugtracker.config import get_settings
from bugtracker.db.engine import Database
from bugtracker.errors import TrackerError
from bugtracker.services.user_service import UserService

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Offloads to a thread when a loop is already running (CliRunner
    inside async tests).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="bugtracker")
def main():
    """Bug tracker — projects, issues and comments behind a JSON API."""


# ---------------------------------------------------------------------------
# bugtracker serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", help="Bind address (default: BUGTRACKER_HOST)")
@click.option("--port", type=int, help="Port (default: BUGTRACKER_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "bugtracker.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# bugtracker init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create all tables that do not exist yet."""
    _run(_init_db_impl())
    click.secho("Database initialised.", fg="green")


async def _init_db_impl():
    db = Database(get_settings().database_url)
    try:
        await db.create_all()
    finally:
        await db.dispose()


# ---------------------------------------------------------------------------
# bugtracker create-user
# ---------------------------------------------------------------------------


@main.command("create-user")
@click.argument("username")
@click.argument("email")
@click.option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--admin", is_flag=True, help="Give the account the admin role")
def create_user(username: str, email: str, password: str, admin: bool):
    """Create an account. --admin is the only way to obtain the admin role."""
    if len(password) < 6:
        click.secho("Error: password must be at least 6 characters", fg="red", err=True)
        sys.exit(1)
    try:
        user_id, role = _run(_create_user_impl(username, email, password, admin))
    except TrackerError as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Created {role} {username} ({user_id})", fg="green")


async def _create_user_impl(username: str, email: str, password: str, admin: bool):
    settings = get_settings()
    db = Database(settings.database_url)
    try:
        async with db.session_factory() as session:
            user = await UserService(session, settings.bcrypt_rounds).create_user(
                username, email, password, role="admin" if admin else "user"
            )
            return str(user.id), user.role
    finally:
        await db.dispose()


if __name__ == "__main__":
    main()
