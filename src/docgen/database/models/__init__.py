"""SQLAlchemy ORM models for DocGen.

This module defines the database schema: projects, generated documents and
generation jobs. All models use SQLAlchemy 2.0 declarative style with
Mapped[] type annotations.
"""

from docgen.database.models.base import Base, TimestampMixin
from docgen.database.models.document import Document, DocumentKind
from docgen.database.models.job import GenerationJob, GenerationStep, JobStatus
from docgen.database.models.project import (
    RETRY_ALLOWED,
    START_ALLOWED,
    Project,
    ProjectStatus,
)

__all__ = [
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
