"""Integration test fixtures for database and HTTP client operations.

The database is a throwaway SQLite file per test (aiosqlite), so these
tests need no external services. Uses polyfactory for test data.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from src.dirbuilder.core.config import Settings
from src.dirbuilder.core.db import (
    create_engine_for_url,
    get_session,
    get_session_factory,
    init_models,
)
from src.dirbuilder.main import create_app
from src.dirbuilder.models import Tenant
from src.dirbuilder.provisioning import (
    ProvisioningService,
    SqlJobStore,
    SqlTenantGateway,
)
from tests.factories import TenantFactory


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'dirbuilder-test.db'}"


@pytest.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with all tables created."""
    test_engine = create_engine_for_url(database_url, poolclass=NullPool)
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return get_session_factory(engine)


@pytest.fixture
def sql_store(session_factory) -> SqlJobStore:
    return SqlJobStore(session_factory)


@pytest.fixture
def sql_tenants(session_factory) -> SqlTenantGateway:
    return SqlTenantGateway(session_factory)


@pytest.fixture
async def tenant(engine: AsyncEngine) -> Tenant:
    """Persisted DRAFT tenant."""
    tenant = TenantFactory.build(id="tenant-1", name="Acme Plumbers", domain="acme")
    async with get_session(engine) as session:
        session.add(tenant)
        await session.commit()
    return tenant


@pytest.fixture
async def sql_service(
    settings: Settings, sql_store: SqlJobStore, sql_tenants: SqlTenantGateway
) -> AsyncGenerator[ProvisioningService]:
    service = ProvisioningService.from_settings(settings, sql_store, sql_tenants)
    yield service
    await service.shutdown(timeout=1.0)


@pytest.fixture
async def client(
    provisioning_service: ProvisioningService,
) -> AsyncGenerator[AsyncClient]:
    """HTTP client against an app wired to the in-memory provisioning service."""
    app = create_app(provisioning_service)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

