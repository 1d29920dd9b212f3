"""Async SQLAlchemy engine and session management."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from voice_ledger.core.config import DatabaseSettings
from voice_ledger.infrastructure.database.base import Base


def build_engine(database: DatabaseSettings, debug: bool = False) -> AsyncEngine:
    engine_kwargs: dict[str, Any] = {
        "echo": database.echo or debug,
        "future": True,
    }
    if database.pool_size is not None:
        engine_kwargs["pool_size"] = database.pool_size
    if database.max_overflow is not None:
        engine_kwargs["max_overflow"] = database.max_overflow
    if database.url.startswith("sqlite"):
        # Concurrent writers wait for the database lock instead of failing at once.
        engine_kwargs["connect_args"] = {"timeout": database.busy_timeout_seconds}

    return create_async_engine(database.url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Session that commits on success and rolls back on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine) -> None:
    """Create database tables in development mode (migrations preferred)."""
    # Deferred import so every model registers on Base.metadata.
    from voice_ledger.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
