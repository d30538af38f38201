"""Root test fixtures shared across all test types.

This conftest contains fixtures that can be used by both unit and integration tests.
Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Set before any app imports so settings never touch a real database or delay steps
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PROVISIONING_STEP_DELAY_SECONDS", "0")

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator

import pytest

from src.dirbuilder.core.config import Settings, get_settings
from src.dirbuilder.provisioning import (
    JobExecutor,
    MemoryJobStore,
    MemoryTenantGateway,
    ProvisioningService,
    build_default_registry,
)
from tests.helpers import StepRecorder

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        provisioning_step_delay_seconds=0,
        provisioning_step_timeout_seconds=5,
        public_base_domain="example.com",
    )


@pytest.fixture
def job_store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture
def tenants() -> MemoryTenantGateway:
    """Tenant gateway preloaded with tenant-1 and tenant-2."""
    gateway = MemoryTenantGateway()
    gateway.add("tenant-1", name="Acme Plumbers", domain="acme")
    gateway.add("tenant-2", name="Bolt Electric", domain="bolt")
    return gateway


@pytest.fixture
def recorder() -> StepRecorder:
    return StepRecorder()


@pytest.fixture
def make_executor(job_store: MemoryJobStore):
    """Build an executor over the shared memory store for a given registry."""

    def _make(registry, step_timeout: float | None = None) -> JobExecutor:
        return JobExecutor(job_store, registry, step_timeout=step_timeout)

    return _make


@pytest.fixture
async def provisioning_service(
    settings: Settings,
    job_store: MemoryJobStore,
    tenants: MemoryTenantGateway,
) -> AsyncGenerator[ProvisioningService]:
    """Service running the directory publishing steps over in-memory storage."""
    service = ProvisioningService(
        job_store,
        tenants,
        build_default_registry(tenants, settings),
        step_timeout=settings.provisioning_step_timeout_seconds,
    )
    yield service
    await service.shutdown(timeout=1.0)
