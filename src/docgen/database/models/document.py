"""Document model for DocGen.

Each text stage of the pipeline persists exactly one document per project.
The pair (project_id, kind) is unique, which makes saving an idempotent
upsert and lets a retried stage read the outputs of earlier stages.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from docgen.database.models.base import Base, TimestampMixin


class DocumentKind(enum.Enum):
    """Kinds of persisted stage outputs."""

    dev_plan = "dev_plan"
    architecture = "architecture"
    blueprint = "blueprint"
    readme = "readme"
    directory_tree = "directory_tree"
    communication_schema = "communication_schema"


class Document(TimestampMixin, Base):
    """A generated document.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        project_id: Owning project; deleted with it.
        kind: Which stage produced the document.
        content: Raw stage output text.
        version: Incremented on every overwrite, starting at 1.
    """

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("project_id", "kind", name="uq_documents_project_kind"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[DocumentKind] = mapped_column(
        Enum(DocumentKind, name="document_kind"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
