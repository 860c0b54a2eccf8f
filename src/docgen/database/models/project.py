"""Project model for DocGen.

Defines the Project table and ProjectStatus enum. A project is the unit a
user asks documentation for; its status doubles as the per-project lock
that keeps at most one generation job processing at a time.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from docgen.database.models.base import Base, TimestampMixin


class ProjectStatus(enum.Enum):
    """Lifecycle status for a project.

    States:
        pending: Created, or waiting for the next generation run.
        processing: A generation job holds the project.
        completed: The pipeline ran through repository scaffolding.
        failed: The last run stopped on a stage failure.
        cancelled: The last run was cancelled.
    """

    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class Project(TimestampMixin, Base):
    """A documentation project.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        user_id: Owning user; user management lives outside DocGen.
        name: Human-readable project name, also the repository name source.
        description: Optional project description.
        initial_prompt: Prompt of the most recent generation request.
        status: Current lifecycle status.
        status_reason: Failure or cancellation reason, verbatim.
        progress: Pipeline progress percentage (0-100).
        repository_url: URL of the scaffolded repository once created.
    """

    __tablename__ = "projects"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    initial_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status"),
        default=ProjectStatus.pending,
        nullable=False,
    )
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repository_url: Mapped[str | None] = mapped_column(Text, nullable=True)


# Statuses from which a new generation may claim the project
START_ALLOWED: frozenset[ProjectStatus] = frozenset(
    {ProjectStatus.pending, ProjectStatus.failed, ProjectStatus.cancelled}
)
# A retry may also re-open a completed project
RETRY_ALLOWED: frozenset[ProjectStatus] = START_ALLOWED | {ProjectStatus.completed}
