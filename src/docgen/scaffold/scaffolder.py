"""Repository scaffolding for generated agent files.

The scaffolder turns the rendered agent files into commits on a freshly
created repository. Files are committed one at a time, strictly in input
order, grouped into batches of ``batch_size``. A token bucket spaces
consecutive commits by the configured interval. There is no retry: the
first failing commit stops the run and reports what was already written.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Protocol

import structlog
from pydantic import BaseModel, Field

from docgen.config import ScaffoldConfig
from docgen.errors import PartialScaffoldError, RemoteServiceError
from docgen.scaffold.github import RepositoryHandle
from docgen.scaffold.rate_limiter import TokenBucket
from docgen.schema import AgentFile

logger = structlog.get_logger(__name__)


class RepositoryHost(Protocol):
    """The repository host calls the scaffolder depends on."""

    async def create_repository(
        self,
        name: str,
        description: str,
        private: bool = True,
        auto_init: bool = False,
    ) -> RepositoryHandle: ...

    async def create_file(self, repo: RepositoryHandle, path: str, content: str, message: str) -> str: ...


class ScaffoldReport(BaseModel):
    """Result of writing a directory structure.

    Attributes:
        repository: ``owner/name`` of the target repository
        html_url: Browser URL of the repository
        committed: Paths committed, in commit order
        batches: Number of batches processed
        elapsed_seconds: Wall time spent committing
    """

    repository: str = Field(..., description="Repository full name")
    html_url: str = Field(..., description="Repository URL")
    committed: list[str] = Field(default_factory=list, description="Committed paths")
    batches: int = Field(default=0, ge=0, description="Batches processed")
    elapsed_seconds: float = Field(default=0.0, ge=0.0)


def commit_message(path: str) -> str:
    return f"Add {path}"


def chunked(files: Sequence[AgentFile], size: int) -> list[Sequence[AgentFile]]:
    """Split files into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [files[i:i + size] for i in range(0, len(files), size)]


class RepositoryScaffolder:
    """Creates repositories and commits agent files into them.

    Args:
        client: Repository host client (normally a GitHubClient).
        config: Batch size, commit interval and repository options.
        limiter: Token bucket to pace commits. Built from
            ``commit_interval_ms`` when omitted; no pacing when the
            interval is 0.
    """

    def __init__(
        self,
        client: RepositoryHost,
        config: ScaffoldConfig | None = None,
        limiter: TokenBucket | None = None,
    ) -> None:
        self.client = client
        self.config = config or ScaffoldConfig()
        if limiter is None and self.config.commit_interval_ms > 0:
            limiter = TokenBucket.from_interval(self.config.commit_interval_ms / 1000.0)
        self.limiter = limiter
        self.logger = logger.bind(component="RepositoryScaffolder")

    async def create_repository(self, name: str, description: str) -> RepositoryHandle:
        """Create the target repository using the configured visibility."""
        self.logger.info("creating_repository", name=name, private=self.config.private)
        return await self.client.create_repository(
            name,
            description,
            private=self.config.private,
            auto_init=self.config.auto_init,
        )

    async def create_directory_structure(
        self,
        repo: RepositoryHandle,
        files: Sequence[AgentFile],
    ) -> ScaffoldReport:
        """Commit each file to the repository, in order.

        Args:
            repo: Target repository.
            files: Files to commit; order is preserved.

        Returns:
            ScaffoldReport listing every committed path.

        Raises:
            PartialScaffoldError: On the first failed commit. Carries the
                paths committed before it and the failing path; nothing
                after the failing file is attempted.
        """
        started = time.monotonic()
        committed: list[str] = []
        batches = chunked(files, self.config.batch_size)

        self.logger.info(
            "scaffold_started",
            repository=repo.full_name,
            files=len(files),
            batches=len(batches),
        )

        for batch_number, batch in enumerate(batches, start=1):
            for file in batch:
                if self.limiter is not None:
                    await self.limiter.acquire()
                try:
                    await self.client.create_file(repo, file.path, file.content, commit_message(file.path))
                except RemoteServiceError as e:
                    self.logger.error(
                        "scaffold_commit_failed",
                        repository=repo.full_name,
                        path=file.path,
                        committed=len(committed),
                        error=str(e),
                    )
                    raise PartialScaffoldError(e, committed, file.path) from e
                committed.append(file.path)

            self.logger.debug(
                "scaffold_batch_committed",
                repository=repo.full_name,
                batch=batch_number,
                size=len(batch),
            )

        report = ScaffoldReport(
            repository=repo.full_name,
            html_url=repo.html_url,
            committed=committed,
            batches=len(batches),
            elapsed_seconds=time.monotonic() - started,
        )
        self.logger.info(
            "scaffold_completed",
            repository=repo.full_name,
            committed=len(committed),
            elapsed_seconds=round(report.elapsed_seconds, 3),
        )
        return report
