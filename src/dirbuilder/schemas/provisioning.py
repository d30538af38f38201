from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ValidationError

from src.dirbuilder.models import JobStatus, ProvisioningJob


class JobResult(BaseModel):
    """Caller-facing result of a completed provisioning job."""

    tenant_url: str
    admin_url: str

    @classmethod
    def from_external_refs(cls, refs: dict[str, Any]) -> "JobResult | None":
        raw = refs.get("result")
        if not isinstance(raw, dict):
            return None
        try:
            return cls.model_validate(raw)
        except ValidationError:
            return None


class JobStatusView(BaseModel):
    """Projection of a job record for status polling.

    completed_at only appears once the job is terminal; result only when
    COMPLETED; error_message only when FAILED.
    """

    job_id: UUID
    tenant_id: str
    type: str
    status: JobStatus
    progress: int
    current_step: str
    steps_total: int
    steps_completed: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: JobResult | None = None
    error_message: str | None = None

    @classmethod
    def from_job(cls, job: ProvisioningJob) -> "JobStatusView":
        status = job.status_enum
        view = cls(
            job_id=job.id,
            tenant_id=job.tenant_id,
            type=job.type,
            status=status,
            progress=job.progress,
            current_step=job.current_step,
            steps_total=job.steps_total,
            steps_completed=job.steps_completed,
            started_at=job.started_at,
        )
        if status.is_terminal:
            view.completed_at = job.completed_at
        if status == JobStatus.COMPLETED:
            view.result = JobResult.from_external_refs(job.external_refs or {})
        if status == JobStatus.FAILED:
            view.error_message = job.error_message
        return view

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict without the fields that do not apply to this status."""
        return self.model_dump(mode="json", exclude_none=True)


class PublishResponse(BaseModel):
    """Response when a provisioning job is accepted."""

    job_id: UUID
    tenant_id: str
    status: JobStatus = JobStatus.QUEUED
    message: str = "Publishing started"


class CancelResponse(BaseModel):
    job_id: UUID
    cancelled: bool
