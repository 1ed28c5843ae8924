"""Async SQLAlchemy engine and session factory.

SQLAlchemy 2.0 async mode — one engine per app (built from Settings in
create_app), AsyncSession per request through the get_db dependency.
"""

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from muster.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the engine. Pool sizing only applies to server databases."""
    options = {"echo": settings.debug}
    if settings.database_url.startswith("postgresql"):
        # Connection pool: min 5, max 20 connections.
        options.update(pool_size=5, max_overflow=15)
    return create_async_engine(settings.database_url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db(request: Request) -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
