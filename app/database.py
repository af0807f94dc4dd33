# python
"""Database engine and session utilities.

Builds the asynchronous engine and session factory used by the repositories.
Nothing is created at import time: the application lifespan calls
``build_engine`` / ``build_session_factory`` and keeps the results on
``app.state``, and request handlers receive them through dependencies.
"""
import os
from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import Settings


def resolve_database_url(config: Settings) -> str:
    """Pick the database URL, preferring the test URL when TESTING is set."""
    if os.getenv("TESTING") == "true":
        db_url = os.getenv("TEST_DATABASE_URL") or config.test_database_url or config.database_url
    else:
        db_url = config.database_url

    db_url = (db_url or "").strip()
    if not db_url:
        raise RuntimeError(
            "DATABASE_URL is not configured. Set it in the environment or .env file "
            "(e.g., DATABASE_URL=postgresql+asyncpg://<user>:<pass>@<host>/<db>)."
        )
    return db_url


def build_engine(config: Settings, url: str | None = None) -> AsyncEngine:
    db_url = url or resolve_database_url(config)
    options: dict[str, Any] = {"echo": config.debug}
    if db_url.startswith("postgresql"):
        options.update(pool_size=config.db_pool_size, max_overflow=config.db_max_overflow)
    return create_async_engine(db_url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory created by the application lifespan."""
    return request.app.state.session_factory
