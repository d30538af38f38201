"""Repository for ProvisioningJob entity."""

from sqlmodel import col, select

from src.dirbuilder.models import ACTIVE_JOB_STATUSES, ProvisioningJob
from src.dirbuilder.repositories.base import BaseRepository


class ProvisioningJobRepository(BaseRepository[ProvisioningJob]):
    """Repository for ProvisioningJob entity."""

    model = ProvisioningJob

    async def list_by_tenant(self, tenant_id: str) -> list[ProvisioningJob]:
        """List jobs for a tenant, newest first."""
        result = await self.session.execute(
            select(ProvisioningJob)
            .where(ProvisioningJob.tenant_id == tenant_id)
            .order_by(col(ProvisioningJob.created_at).desc())
        )
        return list(result.scalars().all())

    async def get_active_for_tenant(self, tenant_id: str) -> ProvisioningJob | None:
        """Get the newest QUEUED or RUNNING job for a tenant, if any."""
        result = await self.session.execute(
            select(ProvisioningJob)
            .where(
                ProvisioningJob.tenant_id == tenant_id,
                col(ProvisioningJob.status).in_([s.value for s in ACTIVE_JOB_STATUSES]),
            )
            .order_by(col(ProvisioningJob.created_at).desc())
            .limit(1)
        )
        return result.scalars().first()
