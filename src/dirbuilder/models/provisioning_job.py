"""Provisioning job record - one row per publish attempt."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, ForeignKey, String
from sqlmodel import Field, SQLModel

from src.dirbuilder.models.base import utc_now
from src.dirbuilder.models.enums import JobStatus, JobType


class ProvisioningJob(SQLModel, table=True):
    """Durable, polled state of one provisioning saga run.

    tenant_id cascades on tenant deletion, so a row can disappear while
    its saga is still executing.
    """

    __tablename__ = "provisioning_jobs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: str = Field(
        sa_column=Column(
            String(64),
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    type: str = Field(default=JobType.CREATE.value, max_length=20)
    status: str = Field(default=JobStatus.QUEUED.value, max_length=20, index=True)
    progress: int = Field(default=0)
    current_step: str = Field(default=JobStatus.QUEUED.value, max_length=100)
    steps_total: int = Field(default=0)
    steps_completed: int = Field(default=0)
    external_refs: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    compensation_data: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    error_message: str | None = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def status_enum(self) -> JobStatus:
        """Get status as JobStatus enum."""
        return JobStatus(self.status)
