"""Database connection management for DocGen.

Factory functions for creating SQLAlchemy async engines and session
factories from the application's DatabaseConfig. PostgreSQL is reached
through asyncpg; the test suite swaps in aiosqlite by passing a different
URL.

Example usage:
    >>> from docgen.config import DatabaseConfig
    >>> from docgen.database.connection import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(DatabaseConfig())
    >>> SessionFactory = get_session_factory(engine)
"""

from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docgen.config import DatabaseConfig


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Pool sizing only applies to server databases; SQLite URLs use the
    dialect's default pool.

    Args:
        config: Database configuration containing URL, pool settings,
                and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    if make_url(config.url).get_backend_name() == "sqlite":
        return create_async_engine(config.url, echo=config.echo)

    return create_async_engine(
        config.url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        echo=config.echo,
    )


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    Sessions use expire_on_commit=False so returned rows stay readable after
    the unit of work commits.

    Args:
        engine: AsyncEngine to bind sessions to.

    Returns:
        Configured async_sessionmaker that produces AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
