"""Initial schema for DocGen.

Creates the projects, documents and generation_jobs tables with their
status enums. Documents are unique per (project_id, kind); documents and
jobs are removed together with their project.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PROJECT_STATUSES = ("pending", "processing", "completed", "failed", "cancelled")
JOB_STATUSES = ("pending", "processing", "completed", "failed", "cancelled")
DOCUMENT_KINDS = (
    "dev_plan",
    "architecture",
    "blueprint",
    "readme",
    "directory_tree",
    "communication_schema",
)
GENERATION_STEPS = DOCUMENT_KINDS + ("agent_files", "github_scaffold")


def upgrade() -> None:
    bind = op.get_bind()
    sa.Enum(*PROJECT_STATUSES, name="project_status").create(bind, checkfirst=True)
    sa.Enum(*JOB_STATUSES, name="job_status").create(bind, checkfirst=True)
    sa.Enum(*DOCUMENT_KINDS, name="document_kind").create(bind, checkfirst=True)
    sa.Enum(*GENERATION_STEPS, name="generation_step").create(bind, checkfirst=True)

    # Projects table
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("initial_prompt", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*PROJECT_STATUSES, name="project_status", create_type=False),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("repository_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_projects_progress"),
    )
    op.create_index("ix_projects_user_id", "projects", ["user_id"])

    # Documents table
    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "kind",
            sa.Enum(*DOCUMENT_KINDS, name="document_kind", create_type=False),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("project_id", "kind", name="uq_documents_project_kind"),
    )
    op.create_index("ix_documents_project_id", "documents", ["project_id"])

    # Generation jobs table
    op.create_table(
        "generation_jobs",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "step",
            sa.Enum(*GENERATION_STEPS, name="generation_step", create_type=False),
            nullable=False,
            server_default="dev_plan",
        ),
        sa.Column(
            "status",
            sa.Enum(*JOB_STATUSES, name="job_status", create_type=False),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_generation_jobs_project_id", "generation_jobs", ["project_id"])
    op.create_index("ix_generation_jobs_status", "generation_jobs", ["status"])


def downgrade() -> None:
    op.drop_index("ix_generation_jobs_status", table_name="generation_jobs")
    op.drop_index("ix_generation_jobs_project_id", table_name="generation_jobs")
    op.drop_table("generation_jobs")

    op.drop_index("ix_documents_project_id", table_name="documents")
    op.drop_table("documents")

    op.drop_index("ix_projects_user_id", table_name="projects")
    op.drop_table("projects")

    bind = op.get_bind()
    sa.Enum(name="generation_step").drop(bind, checkfirst=True)
    sa.Enum(name="document_kind").drop(bind, checkfirst=True)
    sa.Enum(name="job_status").drop(bind, checkfirst=True)
    sa.Enum(name="project_status").drop(bind, checkfirst=True)
