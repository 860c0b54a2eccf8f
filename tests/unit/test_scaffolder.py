"""Unit tests for the repository scaffolder."""

from __future__ import annotations

import time

import pytest

from docgen.config import ScaffoldConfig
from docgen.errors import PartialScaffoldError, RemoteServiceError
from docgen.scaffold.github import RepositoryHandle
from docgen.scaffold.rate_limiter import TokenBucket
from docgen.scaffold.scaffolder import RepositoryScaffolder, chunked, commit_message
from docgen.schema import AgentFile


class FakeHost:
    """In-memory repository host recording every call."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.repositories: list[dict] = []
        self.commits: list[tuple[str, str, str]] = []
        self.attempts: list[str] = []

    async def create_repository(self, name, description, private=True, auto_init=False):
        self.repositories.append(
            {"name": name, "description": description, "private": private, "auto_init": auto_init}
        )
        return RepositoryHandle(
            owner="acme",
            name=name,
            full_name=f"acme/{name}",
            html_url=f"https://github.com/acme/{name}",
        )

    async def create_file(self, repo, path, content, message):
        self.attempts.append(path)
        if path == self.fail_on:
            raise RemoteServiceError("HTTP 502", status_code=502)
        self.commits.append((path, content, message))
        return f"sha-{len(self.commits)}"


def _files(count: int) -> list[AgentFile]:
    return [AgentFile(path=f"dir{i:02d}/README.md", content=f"# dir{i:02d}") for i in range(count)]


@pytest.fixture
def repo() -> RepositoryHandle:
    return RepositoryHandle(
        owner="acme",
        name="todo-app",
        full_name="acme/todo-app",
        html_url="https://github.com/acme/todo-app",
    )


class TestHelpers:
    """Tests for chunked and commit_message."""

    def test_chunked(self) -> None:
        batches = chunked(_files(23), 10)
        assert [len(b) for b in batches] == [10, 10, 3]

    def test_chunked_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            chunked(_files(1), 0)

    def test_commit_message(self) -> None:
        assert commit_message("src/AGENT.md") == "Add src/AGENT.md"


class TestRepositoryScaffolder:
    """Tests for RepositoryScaffolder."""

    @pytest.mark.asyncio
    async def test_create_repository_uses_config(self) -> None:
        host = FakeHost()
        scaffolder = RepositoryScaffolder(host, ScaffoldConfig(private=False, auto_init=True))

        handle = await scaffolder.create_repository("todo-app", "A todo app")

        assert handle.full_name == "acme/todo-app"
        assert host.repositories == [
            {"name": "todo-app", "description": "A todo app", "private": False, "auto_init": True}
        ]

    @pytest.mark.asyncio
    async def test_commits_every_file_in_order(self, repo: RepositoryHandle) -> None:
        host = FakeHost()
        files = _files(23)
        scaffolder = RepositoryScaffolder(host, ScaffoldConfig(batch_size=10, commit_interval_ms=0))

        report = await scaffolder.create_directory_structure(repo, files)

        assert [c[0] for c in host.commits] == [f.path for f in files]
        assert host.commits[0] == ("dir00/README.md", "# dir00", "Add dir00/README.md")
        assert report.committed == [f.path for f in files]
        assert report.batches == 3
        assert report.repository == "acme/todo-app"

    @pytest.mark.asyncio
    async def test_failure_stops_and_reports_committed(self, repo: RepositoryHandle) -> None:
        files = _files(20)
        host = FakeHost(fail_on=files[14].path)
        scaffolder = RepositoryScaffolder(host, ScaffoldConfig(batch_size=10, commit_interval_ms=0))

        with pytest.raises(PartialScaffoldError) as exc_info:
            await scaffolder.create_directory_structure(repo, files)

        err = exc_info.value
        assert err.committed == [f.path for f in files[:14]]
        assert err.failed_path == files[14].path
        assert err.status_code == 502
        assert isinstance(err, RemoteServiceError)
        # Nothing after the failing file is attempted
        assert host.attempts == [f.path for f in files[:15]]

    @pytest.mark.asyncio
    async def test_empty_file_list(self, repo: RepositoryHandle) -> None:
        host = FakeHost()
        scaffolder = RepositoryScaffolder(host, ScaffoldConfig(commit_interval_ms=0))

        report = await scaffolder.create_directory_structure(repo, [])

        assert report.committed == []
        assert report.batches == 0
        assert host.commits == []

    @pytest.mark.asyncio
    async def test_commits_are_paced(self, repo: RepositoryHandle) -> None:
        host = FakeHost()
        scaffolder = RepositoryScaffolder(host, ScaffoldConfig(commit_interval_ms=50))

        start = time.monotonic()
        await scaffolder.create_directory_structure(repo, _files(4))
        elapsed = time.monotonic() - start

        # First commit is immediate, then three 50ms intervals
        assert elapsed >= 0.14
        assert len(host.commits) == 4

    def test_zero_interval_disables_limiter(self) -> None:
        scaffolder = RepositoryScaffolder(FakeHost(), ScaffoldConfig(commit_interval_ms=0))
        assert scaffolder.limiter is None

    def test_explicit_limiter(self) -> None:
        bucket = TokenBucket(rate=5.0)
        scaffolder = RepositoryScaffolder(FakeHost(), ScaffoldConfig(), limiter=bucket)
        assert scaffolder.limiter is bucket
