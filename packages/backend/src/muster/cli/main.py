"""Muster CLI — run the server and manage accounts from a shell.

Usage:
    muster serve                                  # Run the API with uvicorn
    muster init-db                                # Create tables (dev/test; use alembic in prod)
    muster create-admin --name Ada --email ada@example.com
    muster promote someone@example.com            # Registered → admin
    muster demote someone@example.com             # Admin → registered

Every command reads MUSTER_* env vars; --database-url overrides the
database for one invocation.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Awaitable, Callable, Optional, TypeVar

import click

from muster.config import Settings
from muster.db.engine import build_engine, build_session_factory
from muster.db.models import Base
from muster.errors import MusterError
from muster.services.account_service import AccountService
from muster.services.email_service import EmailDispatcher, build_mailer

T = TypeVar("T")

database_url_option = click.option(
    "--database-url",
    envvar="MUSTER_DATABASE_URL",
    default=None,
    help="Database URL (defaults to MUSTER_DATABASE_URL).",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _settings(database_url: Optional[str]) -> Settings:
    return Settings(database_url=database_url) if database_url else Settings()


async def _with_accounts(
    settings: Settings, action: Callable[[AccountService], Awaitable[T]]
) -> T:
    engine = build_engine(settings)
    try:
        async with build_session_factory(engine)() as db:
            email = EmailDispatcher(build_mailer(settings), settings.app_url)
            return await action(AccountService(db, email))
    finally:
        await engine.dispose()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


async def _member_by_email(svc: AccountService, email: str):
    member = await svc.get_member_by_email(email)
    if member is None:
        raise MusterError(f"no member with email {email}")
    return member


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
def cli():
    """Muster — identity and credential service."""


@cli.command()
@click.option("--host", default=None, help="Bind host (defaults to MUSTER_HOST).")
@click.option("--port", default=None, type=int, help="Bind port (defaults to MUSTER_PORT).")
@click.option("--reload", is_flag=True, help="Restart on code changes.")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "muster.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
@database_url_option
def init_db(database_url: Optional[str]):
    """Create all tables that do not exist yet."""

    async def create_all(settings: Settings) -> None:
        engine = build_engine(settings)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()

    _run(create_all(_settings(database_url)))
    click.secho("Database tables created.", fg="green")


@cli.command("create-admin")
@click.option("--name", required=True)
@click.option("--email", required=True)
@click.password_option()
@database_url_option
def create_admin(name: str, email: str, password: str, database_url: Optional[str]):
    """Enlist a member and promote them to admin in one step."""

    async def action(svc: AccountService):
        member = await svc.enlist(name, email, password, password)
        return await svc.promote(member.id)

    try:
        member = _run(_with_accounts(_settings(database_url), action))
    except MusterError as e:
        _fail(e.detail)
    click.secho(f"Admin {member.email} created ({member.id}).", fg="green")


@cli.command()
@click.argument("email")
@database_url_option
def promote(email: str, database_url: Optional[str]):
    """Give an existing registered member the admin role."""

    async def action(svc: AccountService):
        member = await _member_by_email(svc, email)
        return await svc.promote(member.id)

    try:
        member = _run(_with_accounts(_settings(database_url), action))
    except MusterError as e:
        _fail(e.detail)
    click.echo(f"{member.email} is now {member.role.value}.")


@cli.command()
@click.argument("email")
@database_url_option
def demote(email: str, database_url: Optional[str]):
    """Return an admin to the registered role."""

    async def action(svc: AccountService):
        member = await _member_by_email(svc, email)
        return await svc.demote(member.id)

    try:
        member = _run(_with_accounts(_settings(database_url), action))
    except MusterError as e:
        _fail(e.detail)
    click.echo(f"{member.email} is now {member.role.value}.")


if __name__ == "__main__":
    cli()
