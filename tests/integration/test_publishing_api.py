"""API tests for the publishing endpoints."""

import asyncio
from collections.abc import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from src.dirbuilder.main import create_app
from src.dirbuilder.models import TenantStatus
from src.dirbuilder.provisioning import MemoryJobStore, MemoryTenantGateway, ProvisioningService
from tests.helpers import StepRecorder

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest.fixture
def gate() -> asyncio.Event:
    return asyncio.Event()


@pytest.fixture
async def gated_client(
    job_store: MemoryJobStore,
    tenants: MemoryTenantGateway,
    recorder: StepRecorder,
    gate: asyncio.Event,
) -> AsyncGenerator[tuple[AsyncClient, ProvisioningService]]:
    """Client whose jobs block on the first step until the gate is set."""
    service = ProvisioningService(
        job_store, tenants, recorder.registry("A", "B", A={"gate": gate})
    )
    app = create_app(service)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac, service
    gate.set()
    await service.shutdown(timeout=1.0)


async def test_publish_and_poll_to_completion(
    client: AsyncClient, provisioning_service: ProvisioningService
):
    response = await client.post("/api/v1/tenants/tenant-1/publish")

    assert response.status_code == 202
    data = response.json()
    assert data["tenant_id"] == "tenant-1"
    assert data["status"] == "QUEUED"
    assert data["message"] == "Publishing started"
    job_id = data["job_id"]

    await provisioning_service.wait_idle()

    response = await client.get(f"/api/v1/tenants/tenant-1/jobs/{job_id}")
    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "COMPLETED"
    assert job["progress"] == 100
    assert job["type"] == "CREATE"
    assert job["result"] == {
        "tenant_url": "https://acme.example.com",
        "admin_url": "https://acme.example.com/admin",
    }
    assert "error_message" not in job


async def test_publish_unknown_tenant(client: AsyncClient):
    response = await client.post("/api/v1/tenants/tenant-404/publish")

    assert response.status_code == 404
    data = response.json()
    assert data["detail"] == "Tenant 'tenant-404' not found"
    assert data["request_id"]


async def test_republish_of_published_tenant(
    client: AsyncClient,
    tenants: MemoryTenantGateway,
    provisioning_service: ProvisioningService,
):
    tenants.add("tenant-3", name="Cedar Dental", domain="cedar", status=TenantStatus.PUBLISHED)

    response = await client.post("/api/v1/tenants/tenant-3/publish")
    await provisioning_service.wait_idle()

    job = await provisioning_service.get_status(UUID(response.json()["job_id"]))
    assert job.type == "REPUBLISH"


async def test_publish_conflicts_while_job_active(gated_client):
    client, service = gated_client

    first = await client.post("/api/v1/tenants/tenant-1/publish")
    assert first.status_code == 202

    second = await client.post("/api/v1/tenants/tenant-1/publish")
    assert second.status_code == 409
    data = second.json()
    assert data["active_job_id"] == first.json()["job_id"]
    assert data["request_id"]


async def test_job_status_while_running(gated_client):
    client, _ = gated_client

    job_id = (await client.post("/api/v1/tenants/tenant-1/publish")).json()["job_id"]
    await asyncio.sleep(0.01)

    response = await client.get(f"/api/v1/tenants/tenant-1/jobs/{job_id}")
    assert response.status_code == 200
    job = response.json()
    assert job["status"] in ("QUEUED", "RUNNING")
    assert job["progress"] == 0
    assert "completed_at" not in job
    assert "result" not in job


async def test_job_of_other_tenant_is_not_found(client: AsyncClient, provisioning_service):
    job_id = (await client.post("/api/v1/tenants/tenant-1/publish")).json()["job_id"]
    await provisioning_service.wait_idle()

    cross = await client.get(f"/api/v1/tenants/tenant-2/jobs/{job_id}")
    missing = await client.get(f"/api/v1/tenants/tenant-2/jobs/{uuid4()}")

    assert cross.status_code == missing.status_code == 404
    assert cross.json()["detail"] == missing.json()["detail"]


async def test_invalid_job_id(client: AsyncClient):
    response = await client.get("/api/v1/tenants/tenant-1/jobs/not-a-uuid")

    assert response.status_code == 422


async def test_list_jobs_newest_first(client: AsyncClient, provisioning_service):
    first = (await client.post("/api/v1/tenants/tenant-1/publish")).json()["job_id"]
    await provisioning_service.wait_idle()
    second = (await client.post("/api/v1/tenants/tenant-1/publish")).json()["job_id"]
    await provisioning_service.wait_idle()

    response = await client.get("/api/v1/tenants/tenant-1/jobs")

    assert response.status_code == 200
    jobs = response.json()
    assert [j["job_id"] for j in jobs] == [second, first]
    # The second publish ran against an already published tenant
    assert [j["type"] for j in jobs] == ["REPUBLISH", "CREATE"]


async def test_cancel_job(gated_client, gate: asyncio.Event):
    client, service = gated_client
    job_id = (await client.post("/api/v1/tenants/tenant-1/publish")).json()["job_id"]

    response = await client.post(f"/api/v1/tenants/tenant-1/jobs/{job_id}/cancel")
    assert response.status_code == 200
    assert response.json() == {"job_id": job_id, "cancelled": True}

    gate.set()
    await service.wait_idle()

    again = await client.post(f"/api/v1/tenants/tenant-1/jobs/{job_id}/cancel")
    assert again.json()["cancelled"] is False

    status = (await client.get(f"/api/v1/tenants/tenant-1/jobs/{job_id}")).json()
    assert status["status"] == "CANCELLED"


async def test_cancel_other_tenants_job(gated_client):
    client, _ = gated_client
    job_id = (await client.post("/api/v1/tenants/tenant-1/publish")).json()["job_id"]

    response = await client.post(f"/api/v1/tenants/tenant-2/jobs/{job_id}/cancel")

    assert response.status_code == 404


async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "healthy"
    assert data["in_flight_jobs"] == 0


async def test_health_reports_draining(client: AsyncClient, provisioning_service):
    await provisioning_service.shutdown(timeout=1.0)

    response = await client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "draining"


async def test_publish_rejected_while_shutting_down(client: AsyncClient, provisioning_service):
    await provisioning_service.shutdown(timeout=1.0)

    response = await client.post("/api/v1/tenants/tenant-1/publish")

    assert response.status_code == 503
    assert response.json()["request_id"]


async def test_request_id_header_is_echoed(client: AsyncClient):
    request_id = uuid4().hex

    response = await client.get("/health", headers={"X-Request-ID": request_id})

    assert response.headers["X-Request-ID"] == request_id
