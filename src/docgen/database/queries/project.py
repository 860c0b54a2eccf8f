"""Project query functions for DocGen.

Async functions over the projects table using the SQLAlchemy 2.0 select()
and update() API. Functions never begin or commit transactions; the caller
owns the unit of work.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docgen.database.models.project import Project, ProjectStatus

logger = structlog.get_logger(__name__)


async def create_project(
    session: AsyncSession,
    user_id: UUID,
    name: str,
    description: str | None = None,
) -> Project:
    """Create a new project in the pending state.

    Args:
        session: Active async database session.
        user_id: Owning user.
        name: Human-readable project name.
        description: Optional description.

    Returns:
        The newly created Project instance.
    """
    project = Project(
        user_id=user_id,
        name=name,
        description=description,
        status=ProjectStatus.pending,
        progress=0,
    )
    session.add(project)
    await session.flush()

    logger.info(
        "project_created",
        project_id=str(project.id),
        name=name,
        status=project.status.value,
    )
    return project


async def get_project(
    session: AsyncSession,
    project_id: UUID,
) -> Project | None:
    """Retrieve a project by ID, or None if it does not exist."""
    stmt = select(Project).where(Project.id == project_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_projects(
    session: AsyncSession,
    user_id: UUID | None = None,
    status_filter: ProjectStatus | None = None,
) -> list[Project]:
    """List projects, newest first, optionally filtered by owner and status."""
    stmt = select(Project)
    if user_id is not None:
        stmt = stmt.where(Project.user_id == user_id)
    if status_filter is not None:
        stmt = stmt.where(Project.status == status_filter)
    stmt = stmt.order_by(Project.created_at.desc())

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_project(
    session: AsyncSession,
    project_id: UUID,
    **kwargs: Any,
) -> Project | None:
    """Update arbitrary project columns.

    Args:
        session: Active async database session.
        project_id: UUID of the project to update.
        **kwargs: Column names and their new values.

    Returns:
        The updated Project, or None if it does not exist.
    """
    project = await get_project(session, project_id)
    if project is None:
        return None

    for key, value in kwargs.items():
        setattr(project, key, value)
    await session.flush()

    logger.debug(
        "project_updated",
        project_id=str(project_id),
        fields=sorted(kwargs),
    )
    return project


async def claim_project(
    session: AsyncSession,
    project_id: UUID,
    allowed_from: Iterable[ProjectStatus],
) -> bool:
    """Atomically move a project into processing.

    Issues a single conditional UPDATE so that two concurrent claims cannot
    both succeed: only the one that observes a status in ``allowed_from``
    changes the row.

    Args:
        session: Active async database session.
        project_id: Project to claim.
        allowed_from: Statuses from which a claim is permitted.

    Returns:
        True if this call moved the project into processing.
    """
    stmt = (
        update(Project)
        .where(Project.id == project_id)
        .where(Project.status.in_(list(allowed_from)))
        .values(
            status=ProjectStatus.processing,
            status_reason=None,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    claimed = result.rowcount == 1

    logger.debug(
        "project_claim",
        project_id=str(project_id),
        claimed=claimed,
    )
    return claimed


async def delete_project(
    session: AsyncSession,
    project_id: UUID,
) -> bool:
    """Delete a project; documents and jobs go with it."""
    stmt = delete(Project).where(Project.id == project_id)
    result = await session.execute(stmt)
    deleted = result.rowcount > 0

    if deleted:
        logger.info("project_deleted", project_id=str(project_id))
    return deleted
