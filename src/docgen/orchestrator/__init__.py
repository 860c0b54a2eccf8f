"""Orchestrator subsystem for DocGen.

This module implements the generation pipeline: the stage table, the job
state machine, agent file rendering, the orchestrator itself and the
queue-backed background worker.
"""

from __future__ import annotations

from docgen.orchestrator.orchestrator import Orchestrator, repository_name
from docgen.orchestrator.rendering import (
    build_relationships,
    generate_agent_files,
    generate_directory_docs,
    normalize_directory_path,
    render_agent_files,
)
from docgen.orchestrator.state_machine import (
    VALID_TRANSITIONS,
    InvalidTransitionError,
    JobState,
    JobStateMachine,
    validate_transition,
)
from docgen.orchestrator.steps import (
    STAGES,
    RetryScope,
    StageDefinition,
    get_stage,
    progress_after,
    steps_from,
)
from docgen.orchestrator.worker import GenerationWorker

__all__ = [
    # Orchestrator
    "Orchestrator",
    "repository_name",
    "GenerationWorker",
    # Stages
    "STAGES",
    "StageDefinition",
    "RetryScope",
    "get_stage",
    "steps_from",
    "progress_after",
    # State machine
    "VALID_TRANSITIONS",
    "InvalidTransitionError",
    "JobState",
    "JobStateMachine",
    "validate_transition",
    # Rendering
    "generate_agent_files",
    "render_agent_files",
    "generate_directory_docs",
    "build_relationships",
    "normalize_directory_path",
]
