"""Generation job query functions for DocGen.

Status changes are not validated here; callers go through
``docgen.orchestrator.state_machine.JobStateMachine`` which enforces the
allowed transitions and writes them with ``update_job_status``.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docgen.database.models.job import GenerationJob, GenerationStep, JobStatus

logger = structlog.get_logger(__name__)


async def create_job(
    session: AsyncSession,
    project_id: UUID,
    user_id: UUID,
    prompt: str,
    step: GenerationStep = GenerationStep.dev_plan,
) -> GenerationJob:
    """Create a pending generation job.

    Args:
        session: Active async database session.
        project_id: Project the job generates documentation for.
        user_id: Owner of the project.
        prompt: Seed prompt for the pipeline.
        step: Stage the job starts at.

    Returns:
        The newly created GenerationJob.
    """
    job = GenerationJob(
        project_id=project_id,
        user_id=user_id,
        prompt=prompt,
        step=step,
        status=JobStatus.pending,
    )
    session.add(job)
    await session.flush()

    logger.info(
        "job_created",
        job_id=str(job.id),
        project_id=str(project_id),
        step=step.value,
    )
    return job


async def get_job(
    session: AsyncSession,
    job_id: UUID,
) -> GenerationJob | None:
    """Retrieve a job by ID, or None if it does not exist."""
    stmt = select(GenerationJob).where(GenerationJob.id == job_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_jobs(
    session: AsyncSession,
    project_id: UUID | None = None,
    status_filter: JobStatus | None = None,
) -> list[GenerationJob]:
    """List jobs, newest first, optionally filtered by project and status."""
    stmt = select(GenerationJob)
    if project_id is not None:
        stmt = stmt.where(GenerationJob.project_id == project_id)
    if status_filter is not None:
        stmt = stmt.where(GenerationJob.status == status_filter)
    stmt = stmt.order_by(GenerationJob.created_at.desc())

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_job_status(
    session: AsyncSession,
    job_id: UUID,
    from_status: JobStatus,
    values: dict[str, Any],
) -> bool:
    """Conditionally update a job that is still in ``from_status``.

    A single ``UPDATE ... WHERE status = from_status`` so that two writers
    racing from the same snapshot cannot both apply a transition.

    Returns:
        True if the row was updated.
    """
    stmt = (
        update(GenerationJob)
        .where(GenerationJob.id == job_id)
        .where(GenerationJob.status == from_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1
