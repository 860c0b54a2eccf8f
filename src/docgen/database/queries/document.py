"""Document query functions for DocGen."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docgen.database.models.document import Document, DocumentKind

logger = structlog.get_logger(__name__)


async def get_document(
    session: AsyncSession,
    project_id: UUID,
    kind: DocumentKind,
) -> Document | None:
    """Return the document of a given kind for a project, if any."""
    stmt = select(Document).where(
        Document.project_id == project_id,
        Document.kind == kind,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def upsert_document(
    session: AsyncSession,
    project_id: UUID,
    kind: DocumentKind,
    content: str,
) -> Document:
    """Insert or overwrite the document for (project_id, kind).

    Overwrites bump the version so repeated stage runs stay traceable.

    Args:
        session: Active async database session.
        project_id: Owning project.
        kind: Document kind.
        content: Full document text.

    Returns:
        The stored Document.
    """
    document = await get_document(session, project_id, kind)
    if document is None:
        document = Document(
            project_id=project_id,
            kind=kind,
            content=content,
            version=1,
        )
        session.add(document)
    else:
        document.content = content
        document.version = document.version + 1
    await session.flush()

    logger.debug(
        "document_saved",
        project_id=str(project_id),
        kind=kind.value,
        version=document.version,
        length=len(content),
    )
    return document


async def list_documents(
    session: AsyncSession,
    project_id: UUID,
) -> list[Document]:
    """List a project's documents in pipeline order."""
    stmt = select(Document).where(Document.project_id == project_id)
    result = await session.execute(stmt)
    order = list(DocumentKind)
    return sorted(result.scalars().all(), key=lambda doc: order.index(doc.kind))
