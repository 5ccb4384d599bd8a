"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from taskline.tracking import enable_sqlite_transactions, init_tracking_storage

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Return a SQLite URL in the test's temporary directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'taskline_test.db'}"


async def _setup_sqlite(database_url: str) -> AsyncEngine:
    """Create a SQLite engine with savepoint-safe transactions and all tables."""
    engine = create_async_engine(database_url)
    enable_sqlite_transactions(engine)
    try:
        await init_tracking_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def session_factory(
    database_url: str,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a fresh async session factory backed by SQLite."""
    engine = await _setup_sqlite(database_url)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def sync_session_factory(
    database_url: str,
) -> typ.Iterator[async_sessionmaker[AsyncSession]]:
    """Session factory for sync tests that drive coroutines with asyncio.run.

    ``NullPool`` opens a connection per checkout, so no connection outlives
    the event loop that created it.
    """
    engine = create_async_engine(database_url, poolclass=NullPool)
    enable_sqlite_transactions(engine)
    asyncio.run(init_tracking_storage(engine))
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        asyncio.run(engine.dispose())
