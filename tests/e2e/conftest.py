"""Pytest fixtures for E2E tests.

Provides fixtures for end-to-end runs of the generation pipeline: an
in-memory database, stub text-generation providers, an in-memory
repository host and an Orchestrator wired to all of them.

The stubs never touch the network. Each records the calls it receives and
can be told to fail, stall or run a hook when a prompt contains a marker,
which is how tests steer individual stages.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from docgen.config import PipelineConfig, ScaffoldConfig
from docgen.database.models.base import Base
from docgen.database.models.project import Project
from docgen.database.store import DocumentStore
from docgen.errors import RemoteServiceError
from docgen.orchestrator import Orchestrator
from docgen.scaffold.github import RepositoryHandle

# Opening line of the communication schema prompt
SCHEMA_MARKER = "Generate a comprehensive communication schema JSON"


class StubProvider:
    """Scripted CompletionProvider.

    Attributes:
        name: Prefix of the canned outputs.
        schema_text: Returned for communication schema prompts.
        failures: Marker to exception raised when the marker is in the prompt.
        delays: Marker to seconds slept before answering.
        hooks: Marker to coroutine function awaited before answering.
        calls: (system_prompt, user_prompt) of every call, in order.
    """

    def __init__(self, name: str, schema_text: str | None = None) -> None:
        self.name = name
        self.schema_text = schema_text
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.hooks: dict[str, Callable[[], Awaitable[Any]]] = {}
        self.calls: list[tuple[str | None, str]] = []

    async def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        return await self._respond(system_prompt, user_prompt)

    async def generate(self, prompt: str) -> str:
        return await self._respond(None, prompt)

    async def _respond(self, system_prompt: str | None, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        text = f"{system_prompt or ''}\n{user_prompt}"

        for marker, hook in self.hooks.items():
            if marker in text:
                await hook()
        for marker, seconds in self.delays.items():
            if marker in text:
                await asyncio.sleep(seconds)
        for marker, error in self.failures.items():
            if marker in text:
                raise error

        if self.schema_text is not None and SCHEMA_MARKER in user_prompt:
            return self.schema_text
        return f"{self.name} output {len(self.calls)}"


class FakeRepositoryHost:
    """In-memory repository host.

    Attributes:
        repositories: Names of created repositories.
        commits: (repository, path, content) of every successful commit.
        fail_on: Path whose commit raises RemoteServiceError.
    """

    def __init__(self) -> None:
        self.repositories: list[str] = []
        self.commits: list[tuple[str, str, str]] = []
        self.fail_on: str | None = None

    async def create_repository(
        self,
        name: str,
        description: str,
        private: bool = True,
        auto_init: bool = False,
    ) -> RepositoryHandle:
        if name in self.repositories:
            raise RemoteServiceError(f"Repository {name} could not be created", status_code=422)
        self.repositories.append(name)
        return RepositoryHandle(
            owner="acme",
            name=name,
            full_name=f"acme/{name}",
            html_url=f"https://github.com/acme/{name}",
        )

    async def create_file(self, repo: RepositoryHandle, path: str, content: str, message: str) -> str:
        if path == self.fail_on:
            raise RemoteServiceError("HTTP 502: bad gateway", status_code=502)
        self.commits.append((repo.name, path, content))
        return f"sha{len(self.commits)}"

    def paths(self, repository: str) -> list[str]:
        return [path for repo, path, _ in self.commits if repo == repository]


@pytest_asyncio.fixture
async def e2e_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine for E2E testing."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def e2e_session_factory(
    e2e_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        bind=e2e_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def store(e2e_session_factory: async_sessionmaker[AsyncSession]) -> DocumentStore:
    return DocumentStore(e2e_session_factory)


@pytest.fixture
def schema_text(sample_schema_dict: dict[str, Any]) -> str:
    return f"```json\n{json.dumps(sample_schema_dict, indent=2)}\n```"


@pytest.fixture
def openai_stub() -> StubProvider:
    return StubProvider("openai")


@pytest.fixture
def claude_stub(schema_text: str) -> StubProvider:
    return StubProvider("claude", schema_text=schema_text)


@pytest.fixture
def github() -> FakeRepositoryHost:
    return FakeRepositoryHost()


@pytest.fixture
def make_orchestrator(
    store: DocumentStore,
    openai_stub: StubProvider,
    claude_stub: StubProvider,
    github: FakeRepositoryHost,
) -> Callable[..., Orchestrator]:
    """Factory for orchestrators sharing the stubs, with pipeline overrides."""

    def _make(**pipeline: Any) -> Orchestrator:
        return Orchestrator(
            store,
            openai_stub,
            claude_stub,
            github,
            config=PipelineConfig(**{"stage_timeout_seconds": 5.0, **pipeline}),
            scaffold_config=ScaffoldConfig(batch_size=2, commit_interval_ms=0),
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., Orchestrator]) -> Orchestrator:
    return make_orchestrator()


@pytest_asyncio.fixture
async def project(store: DocumentStore) -> Project:
    return await store.create_project(uuid.uuid4(), "Todo App", "A todo list")
