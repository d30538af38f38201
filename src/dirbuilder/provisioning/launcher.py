"""
Job Launcher - creates job records and starts their sagas in the background.

create_job() only inserts the QUEUED record and schedules the executor as an
asyncio task; the caller gets the job id back without waiting for any step.
Failures inside the task are written to the job record by the task's own
guard, never raised to the caller.
"""

import asyncio
from uuid import UUID

from src.dirbuilder.core.logging import get_logger
from src.dirbuilder.models import JobStatus, JobType, ProvisioningJob
from src.dirbuilder.provisioning.errors import (
    ActiveJobExistsError,
    LauncherClosedError,
    describe_error,
)
from src.dirbuilder.provisioning.executor import JobExecutor
from src.dirbuilder.provisioning.store import JobStore

logger = get_logger(__name__)

SHUTDOWN_INTERRUPTED_MESSAGE = "Provisioning interrupted by shutdown"


class JobLauncher:
    """Fire-and-forget launcher with in-flight tracking for graceful shutdown."""

    def __init__(
        self,
        store: JobStore,
        executor: JobExecutor,
        *,
        single_active_job: bool = True,
    ):
        self._store = store
        self._executor = executor
        self._single_active_job = single_active_job
        self._tasks: set[asyncio.Task[None]] = set()
        # Tenants between the active-job check and the insert
        self._launching: set[str] = set()
        self._closed = False

    @property
    def in_flight_count(self) -> int:
        """Number of sagas currently executing."""
        return len(self._tasks)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def create_job(self, tenant_id: str, job_type: JobType | str) -> UUID:
        """
        Create a QUEUED job and start executing it in the background.

        Args:
            tenant_id: Tenant to provision
            job_type: CREATE, UPDATE, DELETE or REPUBLISH (informational)

        Returns:
            job_id: Id to poll the Status Reporter with

        Raises:
            ValueError: If job_type is not a JobType
            ActiveJobExistsError: If the tenant already has a QUEUED/RUNNING job
                and single-active-job enforcement is on
            LauncherClosedError: If the launcher is shutting down
        """
        if self._closed:
            raise LauncherClosedError()
        job_type = JobType(job_type)

        if self._single_active_job:
            if tenant_id in self._launching:
                raise ActiveJobExistsError(tenant_id, None)
            self._launching.add(tenant_id)
        try:
            if self._single_active_job:
                active = await self._store.find_active(tenant_id)
                if active is not None:
                    raise ActiveJobExistsError(tenant_id, active.id)

            job = await self._store.create(
                ProvisioningJob(
                    tenant_id=tenant_id,
                    type=job_type.value,
                    status=JobStatus.QUEUED.value,
                    progress=0,
                    current_step=JobStatus.QUEUED.value,
                    steps_total=len(self._executor.registry),
                    steps_completed=0,
                    external_refs={},
                    compensation_data={},
                )
            )
        finally:
            self._launching.discard(tenant_id)

        task = asyncio.create_task(self._run_guarded(job.id), name=f"provisioning-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(
            "Provisioning job queued",
            job_id=str(job.id),
            tenant_id=tenant_id,
            job_type=job_type.value,
        )
        return job.id

    async def _run_guarded(self, job_id: UUID) -> None:
        """Task body: run the saga and record any escaping error as FAILED."""
        try:
            await self._executor.run(job_id)
        except asyncio.CancelledError:
            logger.warning("Provisioning task cancelled", job_id=str(job_id))
            await self._record_failure(job_id, SHUTDOWN_INTERRUPTED_MESSAGE)
            raise
        except Exception as exc:
            logger.exception("Provisioning job crashed", job_id=str(job_id))
            await self._record_failure(job_id, describe_error(exc))

    async def _record_failure(self, job_id: UUID, message: str) -> None:
        try:
            await self._executor.mark_failed(job_id, message)
        except Exception:
            # Nothing left to report to; the task must not die with an unretrieved error
            logger.exception("Could not record job failure", job_id=str(job_id))

    async def wait_idle(self) -> None:
        """Wait until every in-flight saga has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float) -> bool:
        """
        Stop accepting jobs and drain in-flight sagas.

        Args:
            timeout: Maximum time to wait in seconds before cancelling

        Returns:
            True if all sagas finished within timeout, False if some were cancelled
        """
        self._closed = True
        pending = set(self._tasks)
        if not pending:
            logger.info("No in-flight provisioning jobs")
            return True

        logger.info(f"Waiting for {len(pending)} in-flight provisioning jobs to complete")
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if not still_running:
            logger.info("All provisioning jobs drained successfully")
            return True

        logger.warning(
            f"Shutdown timeout after {timeout}s - cancelling {len(still_running)} jobs"
        )
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
        return False
