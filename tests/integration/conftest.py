"""Pytest fixtures for integration tests.

Provides async database fixtures for testing query functions and the
DocumentStore against an in-memory SQLite database. Production runs on
PostgreSQL through asyncpg; the models avoid server-only features so that
the same metadata creates cleanly on SQLite.
"""

from __future__ import annotations

import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from docgen.database.models.base import Base
from docgen.database.models.project import Project
from docgen.database.store import DocumentStore


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine for testing.

    Yields:
        Configured AsyncEngine instance using in-memory SQLite.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a new async database session for each test.

    The session is rolled back after the test completes.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def store(session_factory: async_sessionmaker[AsyncSession]) -> DocumentStore:
    """DocumentStore over the test session factory."""
    return DocumentStore(session_factory)


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest_asyncio.fixture
async def project(store: DocumentStore, user_id: uuid.UUID) -> Project:
    """A freshly created pending project."""
    return await store.create_project(user_id, "Todo App", "A todo list")
