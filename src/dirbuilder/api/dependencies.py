"""FastAPI dependency injection definitions."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.dirbuilder.provisioning import ProvisioningService, TenantSnapshot


def get_provisioning_service(request: Request) -> ProvisioningService:
    """Get the application's provisioning service (built at startup)."""
    service: ProvisioningService | None = getattr(request.app.state, "provisioning", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Provisioning service not initialised",
        )
    return service


ProvisioningServiceDep = Annotated[ProvisioningService, Depends(get_provisioning_service)]


async def get_tenant(tenant_id: str, service: ProvisioningServiceDep) -> TenantSnapshot:
    """Resolve the tenant from the path, 404 if it does not exist."""
    tenant = await service.tenants.get_tenant(tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant '{tenant_id}' not found",
        )
    return tenant


ExistingTenant = Annotated[TenantSnapshot, Depends(get_tenant)]
