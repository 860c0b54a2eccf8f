"""Error taxonomy for DocGen.

Stage failures derive from GenerationError; the orchestrator records them
verbatim as the failure reason of the job and project. Caller errors
(unknown ids, concurrent starts) derive directly from DocgenError and are
raised to the caller without touching job state.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID


class DocgenError(Exception):
    """Base exception for all DocGen errors."""

    pass


class GenerationError(DocgenError):
    """A pipeline stage could not produce its output."""

    pass


class ProviderError(GenerationError):
    """Upstream text-generation call failed.

    Attributes:
        provider: Name of the provider that failed
        status_code: HTTP status code, when the failure came from a response
    """

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class ParseError(GenerationError):
    """Communication schema text is not structurally a schema.

    Raised for missing JSON, malformed JSON, missing required fields and
    wrong field types.

    Attributes:
        locations: Dotted field locations that failed to parse
    """

    def __init__(self, message: str, locations: Sequence[str] = ()):
        self.locations = list(locations)
        super().__init__(message)


class SchemaValidationError(GenerationError):
    """Communication schema is well-formed but violates a semantic rule.

    Raised for an empty directory_structure, a criticality outside [0, 10],
    or a directory key that would leave the repository tree.

    Attributes:
        violations: Human-readable description of each violation
    """

    def __init__(self, message: str, violations: Sequence[str] = ()):
        self.violations = list(violations)
        super().__init__(message)


class PersistenceError(GenerationError):
    """The document/project store is unavailable or rejected a write."""

    pass


class RemoteServiceError(GenerationError):
    """Repository host call failed (auth, rate limit, name collision, transport).

    Attributes:
        status_code: HTTP status code, when the failure came from a response
        retry_after_seconds: Host-advertised wait before retrying, if any
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retry_after_seconds: float | None = None,
    ):
        self.status_code = status_code
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)


class PartialScaffoldError(RemoteServiceError):
    """A commit failed part way through writing a directory structure.

    Commits issued before the failure remain in the repository.

    Attributes:
        committed: Paths committed before the failure, in order
        failed_path: Path whose commit failed
    """

    def __init__(self, cause: RemoteServiceError, committed: Sequence[str], failed_path: str):
        self.committed = list(committed)
        self.failed_path = failed_path
        super().__init__(
            f"commit of {failed_path} failed after {len(self.committed)} file(s): {cause}",
            status_code=cause.status_code,
            retry_after_seconds=cause.retry_after_seconds,
        )


class StageTimeoutError(GenerationError):
    """A stage exceeded the configured per-stage timeout."""

    def __init__(self, step_label: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{step_label} did not finish within {timeout_seconds:g}s")


class MissingDocumentError(GenerationError):
    """A stage input document has not been persisted for the project."""

    def __init__(self, project_id: UUID, kind: str):
        self.project_id = project_id
        self.kind = kind
        super().__init__(f"document {kind} is missing for project {project_id}")


class ProjectNotFoundError(DocgenError):
    """The referenced project does not exist."""

    def __init__(self, project_id: UUID):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class JobNotFoundError(DocgenError):
    """The referenced generation job does not exist."""

    def __init__(self, job_id: UUID):
        self.job_id = job_id
        super().__init__(f"Generation job {job_id} not found")


class GenerationInProgressError(DocgenError):
    """Another job already holds the project in processing state."""

    def __init__(self, project_id: UUID):
        self.project_id = project_id
        super().__init__(f"Project {project_id} already has a generation in progress")
