"""Database layer for DocGen.

This module handles database connections and session management, defines
the SQLAlchemy models, and provides the DocumentStore used by the
orchestrator.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    DocumentStore: Unit-of-work persistence for projects, documents and jobs.
    Base: SQLAlchemy declarative base for all models.
"""

from docgen.database.connection import get_engine, get_session_factory
from docgen.database.models import (
    RETRY_ALLOWED,
    START_ALLOWED,
    Base,
    Document,
    DocumentKind,
    GenerationJob,
    GenerationStep,
    JobStatus,
    Project,
    ProjectStatus,
    TimestampMixin,
)
from docgen.database.store import DocumentStore

__all__ = [
    "get_engine",
    "get_session_factory",
    "DocumentStore",
    "Base",
    "TimestampMixin",
    "Project",
    "ProjectStatus",
    "START_ALLOWED",
    "RETRY_ALLOWED",
    "Document",
    "DocumentKind",
    "GenerationJob",
    "GenerationStep",
    "JobStatus",
]
