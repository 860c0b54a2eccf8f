"""Generation pipeline orchestrator for DocGen.

The Orchestrator drives one project through the eight pipeline stages:

    DevPlan -> Architecture -> Blueprint -> Readme -> DirectoryTree
        -> CommunicationSchema -> AgentFiles -> GitHubScaffold

Stages run strictly one after another. Text stages render a prompt from
the user's request and earlier documents, call their statically bound
provider and persist the output. The AgentFiles stage parses the
communication schema and renders per-directory documentation, and the
GitHubScaffold stage commits that documentation to a new repository.

At most one job per project is processing at a time. The guard is an
atomic compare-and-swap of the project status, so two concurrent starts
cannot both win. A failing stage halts the chain and records the reason
on both the job and the project; documents and commits that already
happened stay.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from docgen.config import PipelineConfig, ScaffoldConfig
from docgen.database.models.document import DocumentKind
from docgen.database.models.job import GenerationJob, GenerationStep, JobStatus
from docgen.database.models.project import RETRY_ALLOWED, START_ALLOWED, ProjectStatus
from docgen.errors import (
    GenerationError,
    GenerationInProgressError,
    MissingDocumentError,
    StageTimeoutError,
)
from docgen.logging import bind_job_context, clear_job_context
from docgen.orchestrator.rendering import render_agent_files
from docgen.orchestrator.state_machine import InvalidTransitionError, JobState
from docgen.orchestrator.steps import (
    CLAUDE,
    OPENAI,
    RetryScope,
    StageDefinition,
    get_stage,
    progress_after,
    steps_from,
)
from docgen.prompts import PromptBuilder
from docgen.providers import CompletionProvider
from docgen.scaffold.scaffolder import RepositoryHost, RepositoryScaffolder
from docgen.schema import AgentFile, CommunicationSchema, parse_and_validate

if TYPE_CHECKING:
    from docgen.database.store import DocumentStore

logger = structlog.get_logger(__name__)

DEFAULT_CANCEL_REASON = "Generation cancelled by user"


@dataclass
class _PipelineArtifacts:
    """Outputs produced so far by one run, so later stages skip the store."""

    outputs: dict[DocumentKind, str] = field(default_factory=dict)
    schema: CommunicationSchema | None = None
    agent_files: list[AgentFile] | None = None


@dataclass
class _RunHandle:
    """Cancellation signal for a job running in this process."""

    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    reason: str = DEFAULT_CANCEL_REASON


def repository_name(project_name: str, project_id: UUID) -> str:
    """Derive a repository name from a project name.

    Runs of characters outside ``[A-Za-z0-9._-]`` collapse to one hyphen.
    Falls back to ``docgen-<id prefix>`` if nothing usable remains.
    """
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", project_name).strip("-.").lower()
    return slug or f"docgen-{project_id.hex[:8]}"


class Orchestrator:
    """Runs generation jobs against the document store, providers and host.

    Service handles are fixed at construction and shared by every job the
    orchestrator runs; none of them is mutated per job.

    Args:
        store: Document store for projects, documents and jobs.
        openai: Provider bound to the OpenAI stages.
        claude: Provider bound to the Claude stages.
        github: Repository host used by the default scaffolder.
        scaffolder: Scaffolder to use instead of one built around ``github``.
        prompts: Prompt builder; defaults to the packaged templates.
        config: Pipeline settings (stage timeout, default retry scope).
        scaffold_config: Settings for the default scaffolder.
    """

    def __init__(
        self,
        store: DocumentStore,
        openai: CompletionProvider,
        claude: CompletionProvider,
        github: RepositoryHost | None = None,
        *,
        scaffolder: RepositoryScaffolder | None = None,
        prompts: PromptBuilder | None = None,
        config: PipelineConfig | None = None,
        scaffold_config: ScaffoldConfig | None = None,
    ) -> None:
        if scaffolder is None:
            if github is None:
                raise ValueError("either github or scaffolder is required")
            scaffolder = RepositoryScaffolder(github, scaffold_config)

        self.store = store
        self.scaffolder = scaffolder
        self.prompts = prompts or PromptBuilder()
        self.config = config or PipelineConfig()
        self._providers: dict[str, CompletionProvider] = {OPENAI: openai, CLAUDE: claude}
        self._runs: dict[UUID, _RunHandle] = {}
        self.logger = logger.bind(component="Orchestrator")

    # -- public operations ---------------------------------------------------

    async def create_job(self, project_id: UUID, prompt: str) -> GenerationJob:
        """Claim a project and create a pending job for it.

        Args:
            project_id: Project to generate documentation for.
            prompt: The user's request; seeds the DevPlan stage.

        Returns:
            The pending GenerationJob.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            GenerationInProgressError: If another job holds the project.
            PersistenceError: If the store is unavailable.
        """
        user_id = await self.store.get_project_owner(project_id)

        if not await self.store.claim_project(project_id, START_ALLOWED):
            self.logger.warning("generation_rejected_in_progress", project_id=str(project_id))
            raise GenerationInProgressError(project_id)

        try:
            await self.store.set_project_prompt(project_id, prompt)
            await self.store.update_project_progress(project_id, 0)
            job = await self.store.create_job(project_id, user_id, prompt)
        except GenerationError as e:
            # Release the claim so the project can be started again
            await self.store.update_project_status(
                project_id, ProjectStatus.failed, f"Could not create generation job: {e}"
            )
            raise

        self.logger.info("generation_job_created", job_id=str(job.id), project_id=str(project_id))
        return job

    async def run_job(self, job_id: UUID) -> GenerationJob:
        """Run a pending job through every stage.

        A job that is no longer pending (for example cancelled while
        queued) is returned untouched.

        Returns:
            The job in its terminal state.
        """
        handle = self._runs.setdefault(job_id, _RunHandle())
        try:
            job = await self.store.transition_job(
                job_id,
                JobState.processing(),
                step=GenerationStep.dev_plan,
                expected=JobStatus.pending,
            )
        except InvalidTransitionError as e:
            self._runs.pop(job_id, None)
            self.logger.info("job_not_runnable", job_id=str(job_id), status=e.current.value)
            return await self.store.get_job(job_id)
        except BaseException:
            self._runs.pop(job_id, None)
            raise

        return await self._execute(job, steps_from(GenerationStep.dev_plan), handle)

    async def start_generation(self, project_id: UUID, prompt: str) -> GenerationJob:
        """Create a job for the project and run it to a terminal state.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            GenerationInProgressError: If another job holds the project.
        """
        job = await self.create_job(project_id, prompt)
        return await self.run_job(job.id)

    async def retry_step(
        self,
        job_id: UUID,
        step: GenerationStep,
        scope: RetryScope | str | None = None,
    ) -> GenerationJob:
        """Re-enter processing for a terminal job at the given step.

        Inputs the step needs are loaded from persisted documents.

        Args:
            job_id: A completed, failed or cancelled job.
            step: Step to resume at.
            scope: ``single`` runs only ``step``; ``downstream`` runs
                ``step`` and everything after it. Defaults to the
                configured retry scope.

        Returns:
            The job in its terminal state.

        Raises:
            JobNotFoundError: If the job does not exist.
            InvalidTransitionError: If the job is pending or processing.
            GenerationInProgressError: If another job holds the project.
        """
        resolved = RetryScope(scope or self.config.retry_scope)
        job = await self.store.get_job(job_id)
        if not job.status.is_terminal:
            raise InvalidTransitionError(job.status, JobStatus.processing, str(job_id))

        if not await self.store.claim_project(job.project_id, RETRY_ALLOWED):
            self.logger.warning("retry_rejected_in_progress", project_id=str(job.project_id))
            raise GenerationInProgressError(job.project_id)

        handle = self._runs.setdefault(job_id, _RunHandle())
        try:
            job = await self.store.transition_job(job_id, JobState.processing(), step=step)
        except Exception:
            self._runs.pop(job_id, None)
            await self.store.update_project_status(
                job.project_id, ProjectStatus.failed, f"Retry of {step.label} could not start"
            )
            raise

        self.logger.info(
            "generation_retry",
            job_id=str(job_id),
            step=step.value,
            scope=resolved.value,
        )
        steps = [step] if resolved is RetryScope.single else steps_from(step)
        return await self._execute(job, steps, handle)

    async def cancel(self, job_id: UUID, reason: str = DEFAULT_CANCEL_REASON) -> GenerationJob:
        """Cancel a pending or processing job.

        A job running in this process stops at the next stage boundary; the
        provider call in flight is allowed to finish. A processing job with
        no runner here is marked cancelled directly, and its runner stops at
        its next stage boundary. The write is conditional on the status read
        first, so a job that starts running meanwhile is signalled instead.

        Returns:
            The job; still processing when the runner will stop it shortly.

        Raises:
            JobNotFoundError: If the job does not exist.
            InvalidTransitionError: If the job is already terminal.
        """
        job = await self.store.get_job(job_id)
        if self._request_cancellation(job, reason):
            return job

        try:
            job = await self.store.transition_job(
                job_id, JobState.cancelled(reason), expected=job.status
            )
        except InvalidTransitionError:
            # Status moved since it was read; a runner may have picked the job up
            job = await self.store.get_job(job_id)
            if self._request_cancellation(job, reason):
                return job
            raise

        await self.store.update_project_status(job.project_id, ProjectStatus.cancelled, reason)
        self.logger.info("job_cancelled", job_id=str(job_id), step=job.step.value)
        return job

    def _request_cancellation(self, job: GenerationJob, reason: str) -> bool:
        handle = self._runs.get(job.id)
        if job.status != JobStatus.processing or handle is None:
            return False
        handle.reason = reason
        handle.cancel_event.set()
        self.logger.info("cancellation_requested", job_id=str(job.id), step=job.step.value)
        return True

    # -- pipeline ------------------------------------------------------------

    async def _execute(
        self,
        job: GenerationJob,
        steps: list[GenerationStep],
        handle: _RunHandle,
    ) -> GenerationJob:
        bind_job_context(str(job.id), str(job.project_id))
        artifacts = _PipelineArtifacts()
        current = steps[0]

        try:
            for step in steps:
                current = step
                if handle.cancel_event.is_set():
                    return await self._finish_cancelled(job, step, handle.reason)
                stored = await self.store.get_job(job.id)
                if stored.status.is_terminal:
                    self.logger.info(
                        "generation_stopped_externally",
                        job_id=str(job.id),
                        before_step=step.value,
                        status=stored.status.value,
                    )
                    return stored

                await self.store.set_job_step(job.id, step)
                self.logger.info("stage_started", job_id=str(job.id), step=step.value)
                await self._run_with_timeout(job, step, artifacts)
                await self.store.update_project_progress(job.project_id, progress_after(step))
                self.logger.info("stage_completed", job_id=str(job.id), step=step.value)

            return await self._finish_completed(job, steps[-1])

        except GenerationError as e:
            return await self._finish_failed(job, current, e)
        except Exception as e:
            await self._finish_failed(job, current, e)
            raise
        finally:
            self._runs.pop(job.id, None)
            clear_job_context()

    async def _run_with_timeout(
        self,
        job: GenerationJob,
        step: GenerationStep,
        artifacts: _PipelineArtifacts,
    ) -> None:
        timeout = self.config.stage_timeout_seconds
        try:
            await asyncio.wait_for(self._run_stage(job, step, artifacts), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise StageTimeoutError(step.label, timeout) from e

    async def _run_stage(
        self,
        job: GenerationJob,
        step: GenerationStep,
        artifacts: _PipelineArtifacts,
    ) -> None:
        stage = get_stage(step)

        if stage.is_text_stage:
            output = await self._run_text_stage(job, stage, artifacts)
            artifacts.outputs[stage.document_kind] = output
        elif step is GenerationStep.agent_files:
            await self._render_agent_files(job, artifacts)
        elif step is GenerationStep.github_scaffold:
            await self._scaffold_repository(job, artifacts)

    async def _run_text_stage(
        self,
        job: GenerationJob,
        stage: StageDefinition,
        artifacts: _PipelineArtifacts,
    ) -> str:
        documents: dict[str, str] = {}
        for kind in stage.inputs:
            documents[kind.value] = await self._input_document(job.project_id, kind, artifacts)

        prompt = self.prompts.build(stage.template, job.prompt, documents)
        provider = self._providers[stage.provider]

        if stage.system_prompt is None:
            output = await provider.generate(prompt)
        else:
            output = await provider.chat_completion(stage.system_prompt, prompt)

        await self.store.save_document(job.project_id, stage.document_kind, output)
        self.logger.debug(
            "stage_output_saved",
            step=stage.step.value,
            provider=stage.provider,
            length=len(output),
        )
        return output

    async def _input_document(
        self,
        project_id: UUID,
        kind: DocumentKind,
        artifacts: _PipelineArtifacts,
    ) -> str:
        if kind in artifacts.outputs:
            return artifacts.outputs[kind]

        content = await self.store.get_document(project_id, kind)
        if content is None:
            raise MissingDocumentError(project_id, kind.value)
        artifacts.outputs[kind] = content
        return content

    async def _render_agent_files(self, job: GenerationJob, artifacts: _PipelineArtifacts) -> None:
        schema_text = await self._input_document(
            job.project_id, DocumentKind.communication_schema, artifacts
        )
        artifacts.schema = parse_and_validate(schema_text)
        artifacts.agent_files = render_agent_files(artifacts.schema)
        self.logger.info(
            "agent_files_rendered",
            directories=len(artifacts.agent_files) // 2,
            files=len(artifacts.agent_files),
        )

    async def _scaffold_repository(self, job: GenerationJob, artifacts: _PipelineArtifacts) -> None:
        if artifacts.agent_files is None or artifacts.schema is None:
            await self._render_agent_files(job, artifacts)

        project_name = await self.store.get_project_name(job.project_id)
        repo = await self.scaffolder.create_repository(
            repository_name(project_name, job.project_id),
            artifacts.schema.description,
        )
        await self.store.set_repository_url(job.project_id, repo.html_url)
        await self.scaffolder.create_directory_structure(repo, artifacts.agent_files)

    # -- terminal states -----------------------------------------------------

    async def _finish(self, job: GenerationJob, target: JobState) -> GenerationJob | None:
        """Move a running job to a terminal state.

        Returns None, without touching the project, if the job left
        processing in the meantime (cancelled from elsewhere).
        """
        try:
            return await self.store.transition_job(job.id, target, expected=JobStatus.processing)
        except InvalidTransitionError as e:
            self.logger.warning(
                "terminal_transition_skipped",
                job_id=str(job.id),
                target=target.status.value,
                current=e.current.value,
            )
            return None

    async def _finish_completed(self, job: GenerationJob, last_step: GenerationStep) -> GenerationJob:
        finished = await self._finish(job, JobState.completed())
        if finished is None:
            return await self.store.get_job(job.id)
        job = finished
        if last_step is GenerationStep.github_scaffold:
            await self.store.update_project_status(job.project_id, ProjectStatus.completed)
        else:
            await self.store.update_project_status(job.project_id, ProjectStatus.pending)
        self.logger.info("generation_completed", job_id=str(job.id), last_step=last_step.value)
        return job

    async def _finish_failed(
        self,
        job: GenerationJob,
        step: GenerationStep,
        error: Exception,
    ) -> GenerationJob:
        reason = f"{step.label} stage failed: {error}"
        self.logger.error(
            "stage_failed",
            job_id=str(job.id),
            step=step.value,
            error_type=type(error).__name__,
            error=str(error),
        )
        finished = await self._finish(job, JobState.failed(reason))
        if finished is None:
            return await self.store.get_job(job.id)
        job = finished
        await self.store.update_project_status(job.project_id, ProjectStatus.failed, reason)
        return job

    async def _finish_cancelled(self, job: GenerationJob, step: GenerationStep, reason: str) -> GenerationJob:
        self.logger.info("generation_cancelled", job_id=str(job.id), before_step=step.value)
        finished = await self._finish(job, JobState.cancelled(reason))
        if finished is None:
            return await self.store.get_job(job.id)
        job = finished
        await self.store.update_project_status(job.project_id, ProjectStatus.cancelled, reason)
        return job
