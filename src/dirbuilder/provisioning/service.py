"""Provisioning service - the three calls the request layer uses."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.dirbuilder.core.config import Settings
from src.dirbuilder.core.logging import get_logger
from src.dirbuilder.models import ACTIVE_JOB_STATUSES, JobStatus, JobType
from src.dirbuilder.models.base import utc_now
from src.dirbuilder.provisioning.executor import JobExecutor
from src.dirbuilder.provisioning.launcher import JobLauncher
from src.dirbuilder.provisioning.registry import StepRegistry
from src.dirbuilder.provisioning.status import StatusReporter
from src.dirbuilder.provisioning.steps.directory import build_default_registry
from src.dirbuilder.provisioning.store import JobStore, SqlJobStore
from src.dirbuilder.provisioning.tenants import SqlTenantGateway, TenantGateway
from src.dirbuilder.schemas.provisioning import JobStatusView

logger = get_logger(__name__)


class ProvisioningService:
    """Wires store, executor, launcher and status reporter together."""

    def __init__(
        self,
        store: JobStore,
        tenants: TenantGateway,
        registry: StepRegistry,
        *,
        step_timeout: float | None = None,
        single_active_job: bool = True,
    ):
        self.store = store
        self.tenants = tenants
        self.executor = JobExecutor(store, registry, step_timeout=step_timeout)
        self.launcher = JobLauncher(store, self.executor, single_active_job=single_active_job)
        self.reporter = StatusReporter(store)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: JobStore,
        tenants: TenantGateway,
    ) -> "ProvisioningService":
        """Service running the directory publishing registry."""
        return cls(
            store,
            tenants,
            build_default_registry(tenants, settings),
            step_timeout=settings.provisioning_step_timeout_seconds,
            single_active_job=settings.provisioning_single_active_job,
        )

    async def create_job(self, tenant_id: str, job_type: JobType | str) -> UUID:
        """Queue a provisioning job and return its id immediately."""
        return await self.launcher.create_job(tenant_id, job_type)

    async def get_status(self, job_id: UUID) -> JobStatusView | None:
        """Status view for a job, or None if it does not exist."""
        return await self.reporter.get_status(job_id)

    async def cancel_job(self, job_id: UUID) -> bool:
        """
        Cancel a QUEUED or RUNNING job.

        Record-based: the executor notices the CANCELLED status before its
        next step. Returns False (and changes nothing) for missing or
        terminal jobs.
        """
        job = await self.store.transition(
            job_id,
            ACTIVE_JOB_STATUSES,
            status=JobStatus.CANCELLED,
            completed_at=utc_now(),
        )
        if job is not None:
            logger.info("Provisioning job cancelled", job_id=str(job_id))
        return job is not None

    async def list_tenant_jobs(self, tenant_id: str) -> list[JobStatusView]:
        """All jobs for a tenant, newest first."""
        return await self.reporter.list_for_tenant(tenant_id)

    async def wait_idle(self) -> None:
        await self.launcher.wait_idle()

    async def shutdown(self, timeout: float) -> bool:
        return await self.launcher.shutdown(timeout)


def build_provisioning_service(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> ProvisioningService:
    """Database-backed provisioning service."""
    return ProvisioningService.from_settings(
        settings,
        SqlJobStore(session_factory),
        SqlTenantGateway(session_factory),
    )
