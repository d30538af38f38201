"""Directory publishing endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.dirbuilder.api.dependencies import ExistingTenant, ProvisioningServiceDep
from src.dirbuilder.models import JobType, TenantStatus
from src.dirbuilder.schemas.provisioning import CancelResponse, JobStatusView, PublishResponse

router = APIRouter(prefix="/tenants", tags=["publishing"])


async def _get_owned_job(
    service: ProvisioningServiceDep, tenant_id: str, job_id: UUID
) -> JobStatusView:
    """Job status, 404 when missing or owned by another tenant (indistinguishable)."""
    job = await service.get_status(job_id)
    if job is None or job.tenant_id != tenant_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return job


@router.post(
    "/{tenant_id}/publish",
    response_model=PublishResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        202: {
            "description": "Publishing started",
            "content": {
                "application/json": {
                    "example": {
                        "job_id": "0b9f7f2e-6f0c-4a43-9c0c-3f1c2b7c9a10",
                        "tenant_id": "tenant-1",
                        "status": "QUEUED",
                        "message": "Publishing started",
                    }
                }
            },
        },
        404: {"description": "Tenant not found"},
        409: {"description": "A publishing job is already active for this tenant"},
    },
)
async def publish_tenant(
    tenant: ExistingTenant,
    service: ProvisioningServiceDep,
) -> PublishResponse:
    """
    Start publishing a directory.

    Returns immediately with the job id. Poll /tenants/{tenant_id}/jobs/{job_id}
    for progress.
    """
    job_type = JobType.REPUBLISH if tenant.status == TenantStatus.PUBLISHED else JobType.CREATE
    # ActiveJobExistsError is turned into 409 by the exception handlers
    job_id = await service.create_job(tenant.id, job_type)
    return PublishResponse(job_id=job_id, tenant_id=tenant.id)


@router.get(
    "/{tenant_id}/jobs",
    response_model=list[JobStatusView],
    response_model_exclude_none=True,
)
async def list_jobs(tenant: ExistingTenant, service: ProvisioningServiceDep) -> list[JobStatusView]:
    """List the tenant's publishing jobs, newest first."""
    return await service.list_tenant_jobs(tenant.id)


@router.get(
    "/{tenant_id}/jobs/{job_id}",
    response_model=JobStatusView,
    response_model_exclude_none=True,
    responses={
        200: {
            "description": "Job status retrieved",
            "content": {
                "application/json": {
                    "examples": {
                        "running": {
                            "summary": "Job is running",
                            "value": {
                                "job_id": "0b9f7f2e-6f0c-4a43-9c0c-3f1c2b7c9a10",
                                "tenant_id": "tenant-1",
                                "type": "CREATE",
                                "status": "RUNNING",
                                "progress": 50,
                                "current_step": "SETUP_SEARCH_INDEX",
                                "steps_total": 6,
                                "steps_completed": 3,
                                "started_at": "2025-01-20T14:45:00",
                            },
                        },
                        "completed": {
                            "summary": "Job completed",
                            "value": {
                                "job_id": "0b9f7f2e-6f0c-4a43-9c0c-3f1c2b7c9a10",
                                "tenant_id": "tenant-1",
                                "type": "CREATE",
                                "status": "COMPLETED",
                                "progress": 100,
                                "current_step": "FINALIZE",
                                "steps_total": 6,
                                "steps_completed": 6,
                                "started_at": "2025-01-20T14:45:00",
                                "completed_at": "2025-01-20T14:45:04",
                                "result": {
                                    "tenant_url": "https://acme.example.com",
                                    "admin_url": "https://acme.example.com/admin",
                                },
                            },
                        },
                    }
                }
            },
        },
        404: {"description": "Tenant or job not found"},
    },
)
async def get_job_status(
    tenant: ExistingTenant,
    job_id: UUID,
    service: ProvisioningServiceDep,
) -> JobStatusView:
    """Get a publishing job's status."""
    return await _get_owned_job(service, tenant.id, job_id)


@router.post(
    "/{tenant_id}/jobs/{job_id}/cancel",
    response_model=CancelResponse,
    responses={404: {"description": "Tenant or job not found"}},
)
async def cancel_job(
    tenant: ExistingTenant,
    job_id: UUID,
    service: ProvisioningServiceDep,
) -> CancelResponse:
    """Cancel a queued or running job. cancelled=false if it already finished."""
    await _get_owned_job(service, tenant.id, job_id)
    cancelled = await service.cancel_job(job_id)
    return CancelResponse(job_id=job_id, cancelled=cancelled)
