"""Tenant (directory) model."""

from datetime import datetime
from uuid import uuid4

from sqlmodel import Field, SQLModel

from src.dirbuilder.models.base import utc_now
from src.dirbuilder.models.enums import TenantStatus


class Tenant(SQLModel, table=True):
    """A published directory. Only status and published_at are touched by provisioning."""

    __tablename__ = "tenants"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True, max_length=64)
    name: str = Field(max_length=100)
    domain: str = Field(max_length=63, unique=True, index=True)
    status: str = Field(default=TenantStatus.DRAFT.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    published_at: datetime | None = Field(default=None)

    @property
    def status_enum(self) -> TenantStatus:
        """Get status as TenantStatus enum."""
        return TenantStatus(self.status)
