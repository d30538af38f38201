"""Tenant-state collaborator.

The saga reads tenant data during validation and flips the tenant to
PUBLISHED when it finishes. That flip is the only write provisioning makes
outside its own job record.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.dirbuilder.core.logging import get_logger
from src.dirbuilder.models import Tenant, TenantStatus
from src.dirbuilder.models.base import utc_now
from src.dirbuilder.repositories import TenantRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class TenantSnapshot:
    """Read-only view of the tenant fields provisioning needs."""

    id: str
    name: str
    domain: str
    status: TenantStatus
    published_at: datetime | None = None

    @classmethod
    def from_model(cls, tenant: Tenant) -> "TenantSnapshot":
        return cls(
            id=tenant.id,
            name=tenant.name,
            domain=tenant.domain,
            status=tenant.status_enum,
            published_at=tenant.published_at,
        )


class TenantGateway(ABC):
    """Access to tenant state for the provisioning saga."""

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> TenantSnapshot | None:
        """Fetch a tenant, or None if it does not exist (or was deleted)."""

    @abstractmethod
    async def mark_published(self, tenant_id: str) -> bool:
        """Flip the tenant to PUBLISHED. Returns False if the tenant is gone."""


class SqlTenantGateway(TenantGateway):
    """Tenant gateway over the tenants table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_tenant(self, tenant_id: str) -> TenantSnapshot | None:
        async with self._session_factory() as session:
            tenant = await TenantRepository(session).get_by_id(tenant_id)
            return TenantSnapshot.from_model(tenant) if tenant else None

    async def mark_published(self, tenant_id: str) -> bool:
        async with self._session_factory() as session:
            tenant = await TenantRepository(session).get_for_update(tenant_id)
            if tenant is None:
                return False
            now = utc_now()
            tenant.status = TenantStatus.PUBLISHED.value
            tenant.published_at = now
            tenant.updated_at = now
            await session.commit()
            return True


class MemoryTenantGateway(TenantGateway):
    """Process-local tenant gateway for tests and single-process development."""

    def __init__(self) -> None:
        self._tenants: dict[str, TenantSnapshot] = {}

    def add(
        self,
        tenant_id: str,
        *,
        name: str = "",
        domain: str = "",
        status: TenantStatus = TenantStatus.DRAFT,
    ) -> TenantSnapshot:
        """Register a tenant. Name and domain default to values derived from the id."""
        tenant = TenantSnapshot(
            id=tenant_id,
            name=name or tenant_id.replace("-", " ").title(),
            domain=domain or tenant_id,
            status=status,
        )
        self._tenants[tenant_id] = tenant
        return tenant

    def remove(self, tenant_id: str) -> None:
        """Delete a tenant (simulates out-of-band tenant deletion)."""
        self._tenants.pop(tenant_id, None)

    async def get_tenant(self, tenant_id: str) -> TenantSnapshot | None:
        return self._tenants.get(tenant_id)

    async def mark_published(self, tenant_id: str) -> bool:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            return False
        self._tenants[tenant_id] = replace(
            tenant, status=TenantStatus.PUBLISHED, published_at=utc_now()
        )
        logger.debug("Tenant marked published", tenant_id=tenant_id)
        return True
