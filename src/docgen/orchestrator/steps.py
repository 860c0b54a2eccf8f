"""Stage table for the generation pipeline.

Each of the eight steps is bound statically to what it produces, which
provider call it makes and which earlier documents it reads. The binding
is fixed; callers cannot route a stage to a different provider.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from docgen.database.models.document import DocumentKind
from docgen.database.models.job import GenerationStep

OPENAI = "openai"
CLAUDE = "claude"


class RetryScope(str, enum.Enum):
    """How much of the pipeline a retry re-runs.

    single: Only the requested step.
    downstream: The requested step and every step after it.
    """

    single = "single"
    downstream = "downstream"


@dataclass(frozen=True)
class StageDefinition:
    """Static binding of one pipeline step.

    Attributes:
        step: The pipeline step.
        document_kind: Document the step persists; None for non-text stages.
        template: Prompt template name; None for non-text stages.
        provider: ``"openai"`` or ``"claude"``; None for non-text stages.
        inputs: Earlier documents the prompt is rendered with.
        system_prompt: System prompt for ``chat_completion``. None means the
            stage calls ``generate`` with the rendered prompt alone.
    """

    step: GenerationStep
    document_kind: DocumentKind | None = None
    template: str | None = None
    provider: str | None = None
    inputs: tuple[DocumentKind, ...] = ()
    system_prompt: str | None = None

    @property
    def is_text_stage(self) -> bool:
        return self.document_kind is not None


STAGES: dict[GenerationStep, StageDefinition] = {
    GenerationStep.dev_plan: StageDefinition(
        step=GenerationStep.dev_plan,
        document_kind=DocumentKind.dev_plan,
        template="dev_plan.j2",
        provider=OPENAI,
        system_prompt=(
            "You are an expert software architect. Create comprehensive development plans."
        ),
    ),
    GenerationStep.architecture: StageDefinition(
        step=GenerationStep.architecture,
        document_kind=DocumentKind.architecture,
        template="architecture.j2",
        provider=OPENAI,
        inputs=(DocumentKind.dev_plan,),
        system_prompt="You are a senior solutions architect.",
    ),
    GenerationStep.blueprint: StageDefinition(
        step=GenerationStep.blueprint,
        document_kind=DocumentKind.blueprint,
        template="blueprint.j2",
        provider=OPENAI,
        inputs=(DocumentKind.dev_plan, DocumentKind.architecture),
        system_prompt="You are an expert at creating structured project blueprints.",
    ),
    GenerationStep.readme: StageDefinition(
        step=GenerationStep.readme,
        document_kind=DocumentKind.readme,
        template="readme.j2",
        provider=CLAUDE,
        inputs=(DocumentKind.dev_plan, DocumentKind.architecture, DocumentKind.blueprint),
    ),
    GenerationStep.directory_tree: StageDefinition(
        step=GenerationStep.directory_tree,
        document_kind=DocumentKind.directory_tree,
        template="directory_tree.j2",
        provider=OPENAI,
        inputs=(DocumentKind.blueprint,),
        system_prompt="You are an expert at laying out source repositories.",
    ),
    GenerationStep.communication_schema: StageDefinition(
        step=GenerationStep.communication_schema,
        document_kind=DocumentKind.communication_schema,
        template="communication_schema.j2",
        provider=CLAUDE,
        inputs=(
            DocumentKind.dev_plan,
            DocumentKind.architecture,
            DocumentKind.blueprint,
            DocumentKind.directory_tree,
        ),
    ),
    GenerationStep.agent_files: StageDefinition(step=GenerationStep.agent_files),
    GenerationStep.github_scaffold: StageDefinition(step=GenerationStep.github_scaffold),
}


def get_stage(step: GenerationStep) -> StageDefinition:
    return STAGES[step]


def steps_from(step: GenerationStep) -> list[GenerationStep]:
    """Return ``step`` and every step after it, in pipeline order."""
    ordered = list(GenerationStep)
    return ordered[ordered.index(step):]


def progress_after(step: GenerationStep) -> int:
    """Progress percentage once ``step`` has finished."""
    return round((step.index + 1) * 100 / len(GenerationStep))
