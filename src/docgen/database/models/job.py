"""Generation job model for DocGen.

Defines the generation_jobs table together with the GenerationStep and
JobStatus enums. A job tracks one pipeline execution: which stage it is on
and whether it is pending, processing, or in a terminal state.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from docgen.database.models.base import Base, TimestampMixin

_STEP_LABELS = {
    "dev_plan": "DevPlan",
    "architecture": "Architecture",
    "blueprint": "Blueprint",
    "readme": "Readme",
    "directory_tree": "DirectoryTree",
    "communication_schema": "CommunicationSchema",
    "agent_files": "AgentFiles",
    "github_scaffold": "GitHubScaffold",
}


class GenerationStep(enum.Enum):
    """The eight pipeline stages, in execution order.

    Member order is the pipeline order; progress only moves forward along it.
    """

    dev_plan = "dev_plan"
    architecture = "architecture"
    blueprint = "blueprint"
    readme = "readme"
    directory_tree = "directory_tree"
    communication_schema = "communication_schema"
    agent_files = "agent_files"
    github_scaffold = "github_scaffold"

    @property
    def label(self) -> str:
        """Display name used in failure reasons, e.g. ``Architecture``."""
        return _STEP_LABELS[self.value]

    @property
    def index(self) -> int:
        """Zero-based position in the pipeline."""
        return list(GenerationStep).index(self)

    @classmethod
    def from_label(cls, value: str) -> GenerationStep:
        """Resolve a step from its value or display label, case-insensitively."""
        needle = value.strip().lower()
        for step in cls:
            if needle in (step.value, step.label.lower()):
                return step
        raise ValueError(f"Unknown generation step: {value}")


class JobStatus(enum.Enum):
    """Lifecycle status of a generation job.

    States:
        pending: Created, not yet running.
        processing: Stages are executing.
        completed: Requested stages finished.
        failed: A stage failed; ``error`` holds the reason.
        cancelled: Cancelled before finishing.
    """

    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.completed, JobStatus.failed, JobStatus.cancelled)


class GenerationJob(TimestampMixin, Base):
    """One execution of the generation pipeline for a project.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        project_id: Project being generated; deleting it retires the job.
        user_id: Owner of the project at job creation.
        step: Current (or last attempted) stage.
        status: Current lifecycle status.
        error: Failure or cancellation reason.
        prompt: User prompt that seeded the pipeline.
        started_at: When the job first entered processing.
        completed_at: When the job last reached a terminal state.
    """

    __tablename__ = "generation_jobs"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    step: Mapped[GenerationStep] = mapped_column(
        Enum(GenerationStep, name="generation_step"),
        default=GenerationStep.dev_plan,
        nullable=False,
    )
    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, name="job_status"),
        default=JobStatus.pending,
        nullable=False,
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
