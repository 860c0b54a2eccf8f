"""Integration tests for the database query functions."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from docgen.database.models.document import DocumentKind
from docgen.database.models.job import GenerationStep, JobStatus
from docgen.database.models.project import RETRY_ALLOWED, START_ALLOWED, ProjectStatus
from docgen.database.queries.document import get_document, list_documents, upsert_document
from docgen.database.queries.job import create_job, get_job, list_jobs
from docgen.database.queries.project import (
    claim_project,
    create_project,
    delete_project,
    get_project,
    list_projects,
    update_project,
)


@pytest.mark.integration
class TestProjectQueries:
    """Tests for project queries."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, db_session: AsyncSession) -> None:
        owner = uuid.uuid4()
        project = await create_project(db_session, owner, "Todo App", "A todo list")

        loaded = await get_project(db_session, project.id)

        assert loaded is not None
        assert loaded.user_id == owner
        assert loaded.status == ProjectStatus.pending
        assert loaded.progress == 0
        assert loaded.repository_url is None

    @pytest.mark.asyncio
    async def test_get_missing(self, db_session: AsyncSession) -> None:
        assert await get_project(db_session, uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_list_filters(self, db_session: AsyncSession) -> None:
        alice, bob = uuid.uuid4(), uuid.uuid4()
        first = await create_project(db_session, alice, "One")
        await create_project(db_session, alice, "Two")
        await create_project(db_session, bob, "Three")
        await update_project(db_session, first.id, status=ProjectStatus.failed)

        assert len(await list_projects(db_session)) == 3
        assert {p.name for p in await list_projects(db_session, user_id=alice)} == {"One", "Two"}
        failed = await list_projects(db_session, status_filter=ProjectStatus.failed)
        assert [p.name for p in failed] == ["One"]

    @pytest.mark.asyncio
    async def test_update_missing(self, db_session: AsyncSession) -> None:
        assert await update_project(db_session, uuid.uuid4(), progress=50) is None

    @pytest.mark.asyncio
    async def test_claim_from_pending(self, db_session: AsyncSession) -> None:
        project = await create_project(db_session, uuid.uuid4(), "Todo App")

        assert await claim_project(db_session, project.id, START_ALLOWED) is True
        # A second claim sees processing and loses
        assert await claim_project(db_session, project.id, START_ALLOWED) is False

        db_session.expire_all()
        loaded = await get_project(db_session, project.id)
        assert loaded.status == ProjectStatus.processing

    @pytest.mark.asyncio
    async def test_claim_clears_reason(self, db_session: AsyncSession) -> None:
        project = await create_project(db_session, uuid.uuid4(), "Todo App")
        await update_project(
            db_session, project.id, status=ProjectStatus.failed, status_reason="DevPlan stage failed: x"
        )

        assert await claim_project(db_session, project.id, START_ALLOWED) is True

        db_session.expire_all()
        loaded = await get_project(db_session, project.id)
        assert loaded.status_reason is None

    @pytest.mark.asyncio
    async def test_completed_project_needs_retry_claim(self, db_session: AsyncSession) -> None:
        project = await create_project(db_session, uuid.uuid4(), "Todo App")
        await update_project(db_session, project.id, status=ProjectStatus.completed)

        assert await claim_project(db_session, project.id, START_ALLOWED) is False
        assert await claim_project(db_session, project.id, RETRY_ALLOWED) is True

    @pytest.mark.asyncio
    async def test_claim_missing_project(self, db_session: AsyncSession) -> None:
        assert await claim_project(db_session, uuid.uuid4(), START_ALLOWED) is False

    @pytest.mark.asyncio
    async def test_delete(self, db_session: AsyncSession) -> None:
        project = await create_project(db_session, uuid.uuid4(), "Todo App")

        assert await delete_project(db_session, project.id) is True
        assert await delete_project(db_session, project.id) is False


@pytest.mark.integration
class TestDocumentQueries:
    """Tests for document queries."""

    @pytest.mark.asyncio
    async def test_upsert_inserts_then_overwrites(self, db_session: AsyncSession) -> None:
        project = await create_project(db_session, uuid.uuid4(), "Todo App")

        first = await upsert_document(db_session, project.id, DocumentKind.dev_plan, "v1")
        second = await upsert_document(db_session, project.id, DocumentKind.dev_plan, "v2")

        assert first.id == second.id
        assert second.version == 2
        stored = await get_document(db_session, project.id, DocumentKind.dev_plan)
        assert stored.content == "v2"

    @pytest.mark.asyncio
    async def test_documents_are_scoped_by_project(self, db_session: AsyncSession) -> None:
        one = await create_project(db_session, uuid.uuid4(), "One")
        two = await create_project(db_session, uuid.uuid4(), "Two")
        await upsert_document(db_session, one.id, DocumentKind.readme, "# One")

        assert await get_document(db_session, two.id, DocumentKind.readme) is None

    @pytest.mark.asyncio
    async def test_list_in_pipeline_order(self, db_session: AsyncSession) -> None:
        project = await create_project(db_session, uuid.uuid4(), "Todo App")
        for kind in (DocumentKind.readme, DocumentKind.dev_plan, DocumentKind.architecture):
            await upsert_document(db_session, project.id, kind, kind.value)

        documents = await list_documents(db_session, project.id)

        assert [d.kind for d in documents] == [
            DocumentKind.dev_plan,
            DocumentKind.architecture,
            DocumentKind.readme,
        ]


@pytest.mark.integration
class TestJobQueries:
    """Tests for generation job queries."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, db_session: AsyncSession) -> None:
        owner = uuid.uuid4()
        project = await create_project(db_session, owner, "Todo App")

        job = await create_job(db_session, project.id, owner, "A todo app")
        loaded = await get_job(db_session, job.id)

        assert loaded.status == JobStatus.pending
        assert loaded.step == GenerationStep.dev_plan
        assert loaded.prompt == "A todo app"
        assert loaded.error is None

    @pytest.mark.asyncio
    async def test_list_filters(self, db_session: AsyncSession) -> None:
        owner = uuid.uuid4()
        one = await create_project(db_session, owner, "One")
        two = await create_project(db_session, owner, "Two")
        job = await create_job(db_session, one.id, owner, "first")
        await create_job(db_session, two.id, owner, "second")
        job.status = JobStatus.failed
        await db_session.flush()

        assert len(await list_jobs(db_session)) == 2
        assert [j.prompt for j in await list_jobs(db_session, project_id=one.id)] == ["first"]
        failed = await list_jobs(db_session, status_filter=JobStatus.failed)
        assert [j.id for j in failed] == [job.id]
