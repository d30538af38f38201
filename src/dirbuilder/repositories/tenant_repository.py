"""Repository for Tenant entity."""

from src.dirbuilder.models import Tenant
from src.dirbuilder.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant entity."""

    model = Tenant
