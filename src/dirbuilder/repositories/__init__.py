"""Repository layer - data access abstraction."""

from src.dirbuilder.repositories.base import BaseRepository
from src.dirbuilder.repositories.provisioning_job_repository import ProvisioningJobRepository
from src.dirbuilder.repositories.tenant_repository import TenantRepository

__all__ = [
    "BaseRepository",
    "ProvisioningJobRepository",
    "TenantRepository",
]
