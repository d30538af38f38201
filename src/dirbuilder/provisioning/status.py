"""Status Reporter - read path from job record to caller-facing status view."""

from uuid import UUID

from src.dirbuilder.provisioning.store import JobStore
from src.dirbuilder.schemas.provisioning import JobStatusView


class StatusReporter:
    """Read-only projections of job records. Never mutates the store."""

    def __init__(self, store: JobStore):
        self._store = store

    async def get_status(self, job_id: UUID) -> JobStatusView | None:
        """Current status of a job, or None when the id does not resolve.

        Whether "not found" means 404 or a cross-tenant access is the
        caller's decision.
        """
        job = await self._store.get(job_id)
        if job is None:
            return None
        return JobStatusView.from_job(job)

    async def list_for_tenant(self, tenant_id: str) -> list[JobStatusView]:
        """Status views for every job of a tenant, newest first."""
        jobs = await self._store.list_for_tenant(tenant_id)
        return [JobStatusView.from_job(job) for job in jobs]
