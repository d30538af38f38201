"""
Job Executor - runs the provisioning saga for one job.

Runs the registered steps strictly in order (Saga pattern):
1. QUEUED -> RUNNING, started_at set
2. Each step: execute, then persist steps_completed/progress and merge its refs
3. On step failure: compensate completed steps in reverse order, then FAILED
4. On success: the final step completes the job (fallback: the executor does)

Compensation is best effort: a failing compensation is logged and the
remaining ones still run. A job record that vanishes mid-run turns later
writes into logged no-ops; execution carries on.
"""

import asyncio
from collections.abc import Sequence
from types import MappingProxyType
from typing import Any
from uuid import UUID

from src.dirbuilder.core.logging import bind_job_context, get_logger
from src.dirbuilder.models import ACTIVE_JOB_STATUSES, JobStatus
from src.dirbuilder.models.base import utc_now
from src.dirbuilder.provisioning.errors import describe_error
from src.dirbuilder.provisioning.registry import StepRegistry
from src.dirbuilder.provisioning.steps.base import (
    ProvisioningStep,
    StepContext,
    StepFailed,
    StepResult,
    StepSucceeded,
)
from src.dirbuilder.provisioning.store import JobStore

logger = get_logger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 1000


def compute_progress(steps_completed: int, steps_total: int) -> int:
    """Percent of steps completed, rounded half up, clamped to 0..100."""
    if steps_total <= 0:
        raise ValueError("steps_total must be positive")
    steps_completed = max(0, min(steps_completed, steps_total))
    # Integer form of floor(completed / total * 100 + 0.5)
    return (200 * steps_completed + steps_total) // (2 * steps_total)


class JobExecutor:
    """Executes the saga for a job id against the job store."""

    def __init__(
        self,
        store: JobStore,
        registry: StepRegistry,
        *,
        step_timeout: float | None = None,
    ):
        self._store = store
        self._registry = registry
        self._step_timeout = step_timeout

    @property
    def registry(self) -> StepRegistry:
        return self._registry

    async def run(self, job_id: UUID) -> None:
        """Run every step for the job. Step failures never raise from here."""
        job = await self._store.transition(
            job_id,
            {JobStatus.QUEUED},
            status=JobStatus.RUNNING,
            started_at=utc_now(),
        )
        if job is None:
            logger.warning("Job not startable (missing or no longer queued)", job_id=str(job_id))
            return

        tenant_id = job.tenant_id
        bind_job_context(job_id, tenant_id)
        steps_total = len(self._registry)
        refs: dict[str, Any] = dict(job.external_refs)
        completed: list[tuple[int, ProvisioningStep]] = []
        logger.info("Provisioning started", job_type=job.type, steps_total=steps_total)

        for position, step in enumerate(self._registry, start=1):
            if await self._cancel_requested(job_id):
                logger.info("Cancellation observed, stopping", completed_steps=len(completed))
                await self._run_compensations(job_id, tenant_id, completed, refs)
                return

            await self._store.transition(job_id, {JobStatus.RUNNING}, current_step=step.name)
            ctx = StepContext(
                job_id=job_id,
                tenant_id=tenant_id,
                position=position,
                steps_total=steps_total,
                external_refs=MappingProxyType(dict(refs)),
                store=self._store,
            )

            logger.info("Executing step", step=step.name, position=position)
            result = await self._invoke(step, ctx)

            if isinstance(result, StepFailed):
                logger.error("Step failed", step=step.name, reason=result.reason)
                await self._run_compensations(job_id, tenant_id, completed, refs)
                await self.mark_failed(job_id, result.reason)
                return

            refs.update(result.data)
            completed.append((position, step))
            await self._store.record_step(
                job_id,
                steps_completed=position,
                current_step=step.name,
                progress=compute_progress(position, steps_total),
                refs=result.data,
            )
            logger.info("Step completed", step=step.name, steps_completed=position)

        # Registries whose last step does not complete the job themselves
        await self._store.transition(
            job_id,
            {JobStatus.RUNNING},
            status=JobStatus.COMPLETED,
            progress=100,
            steps_completed=steps_total,
            completed_at=utc_now(),
        )
        logger.info("Provisioning complete")

    async def mark_failed(self, job_id: UUID, error_message: str) -> bool:
        """Write the FAILED terminal state unless the job is already terminal."""
        job = await self._store.transition(
            job_id,
            ACTIVE_JOB_STATUSES,
            status=JobStatus.FAILED,
            error_message=(error_message or "Unknown error")[:MAX_ERROR_MESSAGE_LENGTH],
            completed_at=utc_now(),
        )
        if job is not None:
            logger.info("Job marked failed", job_id=str(job_id), error_message=job.error_message)
        return job is not None

    async def _invoke(self, step: ProvisioningStep, ctx: StepContext) -> StepResult:
        """Run one step under the step deadline; exceptions become StepFailed."""
        deadline = asyncio.timeout(self._step_timeout)
        try:
            async with deadline:
                result = await step.execute(ctx)
        except TimeoutError as exc:
            if deadline.expired():
                return StepFailed(f"Step {step.name} timed out after {self._step_timeout:g}s")
            return StepFailed(describe_error(exc))
        except Exception as exc:
            logger.exception("Step raised", step=step.name)
            return StepFailed(describe_error(exc))

        return result if result is not None else StepSucceeded()

    async def _cancel_requested(self, job_id: UUID) -> bool:
        # A vanished record is not a cancellation; the run continues
        job = await self._store.get(job_id)
        return job is not None and job.status == JobStatus.CANCELLED.value

    async def _run_compensations(
        self,
        job_id: UUID,
        tenant_id: str,
        completed: Sequence[tuple[int, ProvisioningStep]],
        refs: dict[str, Any],
    ) -> None:
        """Run compensating actions in reverse order (Saga pattern)."""
        for position, step in reversed(completed):
            if step.compensate is None:
                continue
            ctx = StepContext(
                job_id=job_id,
                tenant_id=tenant_id,
                position=position,
                steps_total=len(self._registry),
                external_refs=MappingProxyType(dict(refs)),
                store=self._store,
            )
            try:
                logger.info("Compensating step", step=step.name)
                await step.compensate(ctx)
            except Exception as comp_error:
                # Log but don't fail - best effort cleanup
                logger.warning(
                    "Compensation failed",
                    step=step.name,
                    error=describe_error(comp_error),
                )
