"""Generation job state machine for the DocGen orchestrator.

This module implements the job lifecycle: pending, processing, and the
terminal states completed, failed and cancelled. Terminal jobs only leave
their state through an explicit retry, which re-enters processing for a
chosen step.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from docgen.database.models.job import GenerationJob, GenerationStep, JobStatus
from docgen.database.queries.job import get_job, update_job_status
from docgen.errors import DocgenError, JobNotFoundError

logger = structlog.get_logger(__name__)


class InvalidTransitionError(DocgenError):
    """Raised when an invalid state transition is attempted.

    Attributes:
        current: The current job status.
        target: The attempted target status.
        job_id: The ID of the job that failed to transition.
    """

    def __init__(self, current: JobStatus, target: JobStatus, job_id: str | None = None):
        self.current = current
        self.target = target
        self.job_id = job_id
        msg = f"Invalid transition from {current.value} to {target.value}"
        if job_id:
            msg += f" for job {job_id}"
        super().__init__(msg)


# Authoritative state machine definition
VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.pending: {JobStatus.processing, JobStatus.cancelled},
    JobStatus.processing: {JobStatus.completed, JobStatus.failed, JobStatus.cancelled},
    JobStatus.completed: {JobStatus.processing},
    JobStatus.failed: {JobStatus.processing},
    JobStatus.cancelled: {JobStatus.processing},
}

_REASON_STATUSES = frozenset({JobStatus.failed, JobStatus.cancelled})


def validate_transition(current: JobStatus, target: JobStatus) -> bool:
    """Return True if VALID_TRANSITIONS allows moving from current to target."""
    return target in VALID_TRANSITIONS.get(current, set())


@dataclass(frozen=True)
class JobState:
    """Tagged job state: a status plus the reason carried by failed/cancelled.

    Attributes:
        status: Lifecycle status.
        reason: Failure or cancellation reason; None for other statuses.
    """

    status: JobStatus
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.status in _REASON_STATUSES and not self.reason:
            raise ValueError(f"{self.status.value} state requires a reason")
        if self.status not in _REASON_STATUSES and self.reason is not None:
            raise ValueError(f"{self.status.value} state does not carry a reason")

    @classmethod
    def pending(cls) -> JobState:
        return cls(JobStatus.pending)

    @classmethod
    def processing(cls) -> JobState:
        return cls(JobStatus.processing)

    @classmethod
    def completed(cls) -> JobState:
        return cls(JobStatus.completed)

    @classmethod
    def failed(cls, reason: str) -> JobState:
        return cls(JobStatus.failed, reason)

    @classmethod
    def cancelled(cls, reason: str) -> JobState:
        return cls(JobStatus.cancelled, reason)

    @classmethod
    def of(cls, job: GenerationJob) -> JobState:
        """Build the state of a persisted job."""
        if job.status in _REASON_STATUSES:
            return cls(job.status, job.error or job.status.value)
        return cls(job.status)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class JobStateMachine:
    """Manages job state transitions with validation and side effects.

    This class handles:
    - Validation of state transitions
    - Updating the job row (status, step, error) with a conditional UPDATE
    - Setting timestamps (started_at, completed_at)
    - Logging all transitions
    """

    def __init__(self) -> None:
        self.logger = logger.bind(component="JobStateMachine")

    async def transition(
        self,
        job_id: UUID,
        target: JobState,
        session: AsyncSession,
        step: GenerationStep | None = None,
        expected: JobStatus | None = None,
    ) -> GenerationJob:
        """Transition a job to a new state.

        Args:
            job_id: UUID of the job to transition.
            target: Target state; its reason becomes the job's error.
            session: Database session for the unit of work.
            step: Step to record together with the transition, if any.
            expected: If given, the job must currently be in this status.

        Returns:
            The updated GenerationJob.

        Raises:
            InvalidTransitionError: If the transition is not valid, or the
                job is not in the expected status.
            JobNotFoundError: If the job does not exist.
        """
        job = await get_job(session, job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        current_status = job.status
        if expected is not None and current_status != expected:
            raise InvalidTransitionError(current_status, target.status, str(job_id))
        if not validate_transition(current_status, target.status):
            raise InvalidTransitionError(current_status, target.status, str(job_id))

        now = datetime.now(timezone.utc)
        values: dict[str, Any] = {"status": target.status, "error": target.reason}
        if step is not None:
            values["step"] = step

        if target.status == JobStatus.processing:
            if job.started_at is None:
                values["started_at"] = now
            values["completed_at"] = None

        if target.is_terminal:
            values["completed_at"] = now

        # Conditional on the status read above; a concurrent writer wins the race
        if not await update_job_status(session, job_id, current_status, values):
            await session.refresh(job, ["status"])
            self.logger.warning(
                "job_transition_lost",
                job_id=str(job_id),
                from_status=current_status.value,
                to_status=target.status.value,
                current=job.status.value,
            )
            raise InvalidTransitionError(job.status, target.status, str(job_id))

        for key, value in values.items():
            set_committed_value(job, key, value)

        self.logger.info(
            "job_transition",
            job_id=str(job_id),
            from_status=current_status.value,
            to_status=target.status.value,
            step=job.step.value,
            reason=target.reason,
        )

        # Commit is handled by caller
        await session.flush()

        return job
