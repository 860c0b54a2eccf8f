"""Document store for DocGen.

``DocumentStore`` is the persistence contract the orchestrator consumes.
Each method runs in its own short unit of work: it opens a session from
the factory, calls the query functions, and commits. Any SQLAlchemy
failure is re-raised as ``PersistenceError`` so stage failures stay inside
the generation error taxonomy.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docgen.database.models.document import Document, DocumentKind
from docgen.database.models.job import GenerationJob, GenerationStep, JobStatus
from docgen.database.models.project import START_ALLOWED, Project, ProjectStatus
from docgen.database.queries import document as document_queries
from docgen.database.queries import job as job_queries
from docgen.database.queries import project as project_queries
from docgen.errors import JobNotFoundError, PersistenceError, ProjectNotFoundError
from docgen.orchestrator.state_machine import JobState, JobStateMachine

logger = structlog.get_logger(__name__)


class DocumentStore:
    """Async persistence for projects, documents and generation jobs.

    Args:
        session_factory: Factory producing AsyncSession instances.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._state_machine = JobStateMachine()
        self.logger = logger.bind(component="DocumentStore")

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session, commit on success, and wrap database failures."""
        try:
            async with self._session_factory() as session:
                yield session
                await session.commit()
        except SQLAlchemyError as e:
            self.logger.error("store_operation_failed", operation=operation, error=str(e))
            raise PersistenceError(f"{operation} failed: {e}") from e

    # -- documents -----------------------------------------------------------

    async def save_document(self, project_id: UUID, kind: DocumentKind, content: str) -> Document:
        async with self._session("save_document") as session:
            return await document_queries.upsert_document(session, project_id, kind, content)

    async def get_document(self, project_id: UUID, kind: DocumentKind) -> str | None:
        """Return the content of a persisted document, or None."""
        async with self._session("get_document") as session:
            document = await document_queries.get_document(session, project_id, kind)
            return document.content if document is not None else None

    async def list_documents(self, project_id: UUID) -> list[Document]:
        async with self._session("list_documents") as session:
            return await document_queries.list_documents(session, project_id)

    # -- projects ------------------------------------------------------------

    async def create_project(
        self,
        user_id: UUID,
        name: str,
        description: str | None = None,
    ) -> Project:
        async with self._session("create_project") as session:
            return await project_queries.create_project(session, user_id, name, description)

    async def get_project(self, project_id: UUID) -> Project | None:
        async with self._session("get_project") as session:
            return await project_queries.get_project(session, project_id)

    async def list_projects(
        self,
        user_id: UUID | None = None,
        status_filter: ProjectStatus | None = None,
    ) -> list[Project]:
        async with self._session("list_projects") as session:
            return await project_queries.list_projects(session, user_id, status_filter)

    async def _require_project(self, session: AsyncSession, project_id: UUID) -> Project:
        project = await project_queries.get_project(session, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def get_project_owner(self, project_id: UUID) -> UUID:
        """Return the owning user id.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        async with self._session("get_project_owner") as session:
            project = await self._require_project(session, project_id)
            return project.user_id

    async def get_project_name(self, project_id: UUID) -> str:
        async with self._session("get_project_name") as session:
            project = await self._require_project(session, project_id)
            return project.name

    async def update_project_status(
        self,
        project_id: UUID,
        status: ProjectStatus,
        reason: str | None = None,
    ) -> None:
        async with self._session("update_project_status") as session:
            await self._require_project(session, project_id)
            await project_queries.update_project(
                session, project_id, status=status, status_reason=reason
            )
        self.logger.info(
            "project_status_updated",
            project_id=str(project_id),
            status=status.value,
            reason=reason,
        )

    async def update_project_progress(self, project_id: UUID, progress: int) -> None:
        async with self._session("update_project_progress") as session:
            await project_queries.update_project(
                session, project_id, progress=max(0, min(100, progress))
            )

    async def set_project_prompt(self, project_id: UUID, prompt: str) -> None:
        async with self._session("set_project_prompt") as session:
            await project_queries.update_project(session, project_id, initial_prompt=prompt)

    async def set_repository_url(self, project_id: UUID, url: str) -> None:
        async with self._session("set_repository_url") as session:
            await project_queries.update_project(session, project_id, repository_url=url)

    async def claim_project(
        self,
        project_id: UUID,
        allowed_from: Iterable[ProjectStatus] = START_ALLOWED,
    ) -> bool:
        """Compare-and-swap the project into processing.

        Returns:
            True if this call won the claim, False if the project was in a
            status outside ``allowed_from`` (typically already processing).
        """
        async with self._session("claim_project") as session:
            return await project_queries.claim_project(session, project_id, allowed_from)

    # -- jobs ----------------------------------------------------------------

    async def create_job(
        self,
        project_id: UUID,
        user_id: UUID,
        prompt: str,
    ) -> GenerationJob:
        async with self._session("create_job") as session:
            return await job_queries.create_job(session, project_id, user_id, prompt)

    async def get_job(self, job_id: UUID) -> GenerationJob:
        """Return a job.

        Raises:
            JobNotFoundError: If the job does not exist.
        """
        async with self._session("get_job") as session:
            job = await job_queries.get_job(session, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_jobs(
        self,
        project_id: UUID | None = None,
        status_filter: JobStatus | None = None,
    ) -> list[GenerationJob]:
        async with self._session("list_jobs") as session:
            return await job_queries.list_jobs(session, project_id, status_filter)

    async def transition_job(
        self,
        job_id: UUID,
        target: JobState,
        step: GenerationStep | None = None,
        expected: JobStatus | None = None,
    ) -> GenerationJob:
        """Apply a validated job state transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
            JobNotFoundError: If the job does not exist.
        """
        async with self._session("transition_job") as session:
            return await self._state_machine.transition(
                job_id, target, session, step=step, expected=expected
            )

    async def set_job_step(self, job_id: UUID, step: GenerationStep) -> None:
        async with self._session("set_job_step") as session:
            job = await job_queries.get_job(session, job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            job.step = step
            await session.flush()
