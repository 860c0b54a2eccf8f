"""Database query functions for DocGen.

This module provides async query functions for all database entities:
- Project CRUD operations and the atomic processing claim
- Document upsert and retrieval
- Generation job creation and lookup
"""

from docgen.database.queries.document import (
    get_document,
    list_documents,
    upsert_document,
)
from docgen.database.queries.job import (
    create_job,
    get_job,
    list_jobs,
    update_job_status,
)
from docgen.database.queries.project import (
    claim_project,
    create_project,
    delete_project,
    get_project,
    list_projects,
    update_project,
)

__all__ = [
    # Project queries
    "create_project",
    "get_project",
    "list_projects",
    "update_project",
    "claim_project",
    "delete_project",
    # Document queries
    "get_document",
    "upsert_document",
    "list_documents",
    # Job queries
    "create_job",
    "get_job",
    "list_jobs",
    "update_job_status",
]
