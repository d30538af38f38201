"""
Job record store - durable storage for provisioning job records.

Owns no saga logic. Every mutation is a single read-modify-write against
the record's current state:

- update(): plain partial merge (never touches status)
- transition(): conditional merge, applied only from the given statuses
- record_step(): progress write, applied only while RUNNING and only if
  steps_completed grows
- merge_external_refs(): additive merge into external_refs

A job id that no longer resolves is a logged no-op, never an error. Jobs
can vanish out-of-band (tenant deletion cascades) while a saga is running.
"""

import copy
from abc import ABC, abstractmethod
from collections.abc import Callable, Collection, Mapping
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from src.dirbuilder.core.logging import get_logger
from src.dirbuilder.models import ACTIVE_JOB_STATUSES, JobStatus, ProvisioningJob
from src.dirbuilder.repositories import ProvisioningJobRepository

logger = get_logger(__name__)

# Maps merged key-by-key instead of replaced
ADDITIVE_FIELDS = frozenset({"external_refs", "compensation_data"})
# Timestamps written once, never overwritten
SET_ONCE_FIELDS = frozenset({"started_at", "completed_at"})
_IMMUTABLE_FIELDS = frozenset({"id", "tenant_id", "created_at"})

JobMutation = Callable[[ProvisioningJob], bool]


def apply_job_changes(job: ProvisioningJob, changes: Mapping[str, Any]) -> None:
    """Merge a partial update into a job record in place.

    Raises:
        ValueError: If a field is unknown or immutable.
    """
    for name, value in changes.items():
        if name not in ProvisioningJob.model_fields or name in _IMMUTABLE_FIELDS:
            raise ValueError(f"Field '{name}' cannot be updated on a provisioning job")
        if name in ADDITIVE_FIELDS:
            setattr(job, name, {**(getattr(job, name) or {}), **dict(value)})
        elif name in SET_ONCE_FIELDS:
            if getattr(job, name) is None:
                setattr(job, name, value)
        elif isinstance(value, Enum):
            setattr(job, name, value.value)
        else:
            setattr(job, name, value)


class JobStore(ABC):
    """Storage contract for provisioning job records.

    Subclasses implement the primitives (create, get, list, delete and
    _mutate); the merge operations are built on _mutate here so every
    backend shares the same guards.
    """

    @abstractmethod
    async def create(self, job: ProvisioningJob) -> ProvisioningJob:
        """Insert a new job record."""

    @abstractmethod
    async def get(self, job_id: UUID) -> ProvisioningJob | None:
        """Fetch a job record, or None if it does not exist."""

    @abstractmethod
    async def list_for_tenant(self, tenant_id: str) -> list[ProvisioningJob]:
        """List a tenant's job records, newest first."""

    @abstractmethod
    async def find_active(self, tenant_id: str) -> ProvisioningJob | None:
        """Return a QUEUED or RUNNING job for the tenant, if any."""

    @abstractmethod
    async def delete(self, job_id: UUID) -> bool:
        """Delete a job record. External cleanup only; the saga never deletes."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check the backing storage is reachable."""

    @abstractmethod
    async def _mutate(self, job_id: UUID, mutation: JobMutation) -> ProvisioningJob | None:
        """Atomically apply a mutation to the current record.

        The mutation returns False to abandon the change. Returns the
        updated record, or None when the record is missing or the
        mutation was abandoned.
        """

    async def update(self, job_id: UUID, **fields: Any) -> ProvisioningJob | None:
        """Merge a partial update. Status changes must go through transition()."""
        if "status" in fields:
            raise ValueError("Use transition() to change a job's status")

        def mutation(job: ProvisioningJob) -> bool:
            apply_job_changes(job, fields)
            return True

        return await self._mutate(job_id, mutation)

    async def transition(
        self,
        job_id: UUID,
        from_statuses: Collection[JobStatus],
        **fields: Any,
    ) -> ProvisioningJob | None:
        """Apply an update only if the job's current status is in from_statuses.

        Returns the updated job, or None if the job is missing or its status
        did not match (e.g. already terminal).
        """
        allowed = {JobStatus(s).value for s in from_statuses}

        def mutation(job: ProvisioningJob) -> bool:
            if job.status not in allowed:
                return False
            apply_job_changes(job, fields)
            return True

        return await self._mutate(job_id, mutation)

    async def record_step(
        self,
        job_id: UUID,
        *,
        steps_completed: int,
        current_step: str,
        progress: int,
        refs: Mapping[str, Any] | None = None,
    ) -> bool:
        """Persist a successful step: counters, progress and any emitted refs.

        Applied only while the job is RUNNING and only when steps_completed
        grows, so counters and progress never regress.
        """

        def mutation(job: ProvisioningJob) -> bool:
            if job.status != JobStatus.RUNNING.value or steps_completed <= job.steps_completed:
                return False
            changes: dict[str, Any] = {
                "steps_completed": steps_completed,
                "current_step": current_step,
                "progress": max(progress, job.progress),
            }
            if refs:
                changes["external_refs"] = refs
            apply_job_changes(job, changes)
            return True

        return await self._mutate(job_id, mutation) is not None

    async def merge_external_refs(self, job_id: UUID, refs: Mapping[str, Any]) -> bool:
        """Additively merge refs into the job's external_refs."""
        return await self.update(job_id, external_refs=refs) is not None

    def _log_missing(self, job_id: UUID) -> None:
        logger.warning("Job record not found, skipping write", job_id=str(job_id))


def _snapshot(job: ProvisioningJob) -> ProvisioningJob:
    """Detached deep copy, so callers never share state with the store."""
    return ProvisioningJob(**copy.deepcopy(job.model_dump()))


class MemoryJobStore(JobStore):
    """Process-local job store for tests and single-process development.

    Mutations contain no await points, so each one is atomic with respect
    to other tasks on the event loop.
    """

    def __init__(self) -> None:
        self._jobs: dict[UUID, ProvisioningJob] = {}

    async def create(self, job: ProvisioningJob) -> ProvisioningJob:
        if job.id in self._jobs:
            raise ValueError(f"Job {job.id} already exists")
        self._jobs[job.id] = _snapshot(job)
        return _snapshot(job)

    async def get(self, job_id: UUID) -> ProvisioningJob | None:
        job = self._jobs.get(job_id)
        return _snapshot(job) if job is not None else None

    async def list_for_tenant(self, tenant_id: str) -> list[ProvisioningJob]:
        # Dict order is insertion order, so reversed() is newest first
        return [_snapshot(j) for j in reversed(self._jobs.values()) if j.tenant_id == tenant_id]

    async def find_active(self, tenant_id: str) -> ProvisioningJob | None:
        active = {s.value for s in ACTIVE_JOB_STATUSES}
        for job in reversed(self._jobs.values()):
            if job.tenant_id == tenant_id and job.status in active:
                return _snapshot(job)
        return None

    async def delete(self, job_id: UUID) -> bool:
        return self._jobs.pop(job_id, None) is not None

    async def ping(self) -> bool:
        return True

    async def _mutate(self, job_id: UUID, mutation: JobMutation) -> ProvisioningJob | None:
        current = self._jobs.get(job_id)
        if current is None:
            self._log_missing(job_id)
            return None
        candidate = _snapshot(current)
        if not mutation(candidate):
            return None
        self._jobs[job_id] = candidate
        return _snapshot(candidate)


class SqlJobStore(JobStore):
    """Job store backed by the provisioning_jobs table.

    Uses one short session per operation: the executor runs in a background
    task, outside any request-scoped session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, job: ProvisioningJob) -> ProvisioningJob:
        async with self._session_factory() as session:
            ProvisioningJobRepository(session).add(job)
            await session.commit()
            await session.refresh(job)
            return job

    async def get(self, job_id: UUID) -> ProvisioningJob | None:
        async with self._session_factory() as session:
            return await ProvisioningJobRepository(session).get_by_id(job_id)

    async def list_for_tenant(self, tenant_id: str) -> list[ProvisioningJob]:
        async with self._session_factory() as session:
            return await ProvisioningJobRepository(session).list_by_tenant(tenant_id)

    async def find_active(self, tenant_id: str) -> ProvisioningJob | None:
        async with self._session_factory() as session:
            return await ProvisioningJobRepository(session).get_active_for_tenant(tenant_id)

    async def delete(self, job_id: UUID) -> bool:
        async with self._session_factory() as session:
            repo = ProvisioningJobRepository(session)
            job = await repo.get_by_id(job_id)
            if job is None:
                return False
            await repo.delete(job)
            await session.commit()
            return True

    async def ping(self) -> bool:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
            return True

    async def _mutate(self, job_id: UUID, mutation: JobMutation) -> ProvisioningJob | None:
        async with self._session_factory() as session:
            job = await ProvisioningJobRepository(session).get_for_update(job_id)
            if job is None:
                self._log_missing(job_id)
                return None
            if not mutation(job):
                await session.rollback()
                return None
            try:
                await session.commit()
            except StaleDataError:
                # Row deleted between the read and the write
                await session.rollback()
                self._log_missing(job_id)
                return None
            return job
