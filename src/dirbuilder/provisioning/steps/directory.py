"""
Directory publishing steps.

Steps (in order):
1. VALIDATE_TENANT - Tenant exists and has a name and domain
2. GENERATE_STATIC_SITE - Build the static site artifact
3. DEPLOY_TO_CDN - Deploy the artifact, producing the deployment URL
4. SETUP_SEARCH_INDEX - Create the directory's search index
5. CONFIGURE_DOMAIN - Point the custom domain at the deployment (needs step 3)
6. FINALIZE - Flip the tenant to PUBLISHED and complete the job

None of these steps define a compensation: the integrations are simulated
and leave nothing behind to undo.
"""

import asyncio
import time

from src.dirbuilder.core.config import Settings
from src.dirbuilder.core.logging import get_logger
from src.dirbuilder.models import JobStatus
from src.dirbuilder.models.base import utc_now
from src.dirbuilder.provisioning.registry import StepRegistry
from src.dirbuilder.provisioning.steps.base import (
    ProvisioningStep,
    StepContext,
    StepFailed,
    StepResult,
    StepSucceeded,
)
from src.dirbuilder.provisioning.tenants import TenantGateway

logger = get_logger(__name__)

VALIDATE_TENANT = "VALIDATE_TENANT"
GENERATE_STATIC_SITE = "GENERATE_STATIC_SITE"
DEPLOY_TO_CDN = "DEPLOY_TO_CDN"
SETUP_SEARCH_INDEX = "SETUP_SEARCH_INDEX"
CONFIGURE_DOMAIN = "CONFIGURE_DOMAIN"
FINALIZE = "FINALIZE"


class DirectoryPublishingSteps:
    """Step implementations sharing the tenant gateway and publishing settings."""

    def __init__(
        self,
        tenants: TenantGateway,
        *,
        public_base_domain: str = "example.com",
        step_delay_seconds: float = 0.0,
    ):
        self._tenants = tenants
        self._base_domain = public_base_domain
        self._delay = step_delay_seconds

    async def _simulate_io(self) -> None:
        if self._delay > 0:
            await asyncio.sleep(self._delay)

    async def validate_tenant(self, ctx: StepContext) -> StepResult:
        tenant = await self._tenants.get_tenant(ctx.tenant_id)
        if tenant is None:
            return StepFailed("Tenant not found")
        if not tenant.name.strip():
            return StepFailed("Tenant has no name")
        if not tenant.domain.strip():
            return StepFailed("Tenant has no domain")

        await self._simulate_io()
        return StepSucceeded({"validated_domain": tenant.domain.strip().lower()})

    async def generate_static_site(self, ctx: StepContext) -> StepResult:
        await self._simulate_io()
        return StepSucceeded(
            {
                "static_site_generated": True,
                "build_id": f"build-{int(time.time() * 1000)}",
            }
        )

    async def deploy_to_cdn(self, ctx: StepContext) -> StepResult:
        domain = ctx.external_refs.get("validated_domain")
        if not domain:
            return StepFailed("No validated domain to deploy to")

        await self._simulate_io()
        return StepSucceeded(
            {
                "cdn_deployed": True,
                "deployment_url": f"https://{domain}.{self._base_domain}",
            }
        )

    async def setup_search_index(self, ctx: StepContext) -> StepResult:
        await self._simulate_io()
        return StepSucceeded(
            {
                "search_index_created": True,
                "index_id": f"idx-{ctx.tenant_id}",
            }
        )

    async def configure_domain(self, ctx: StepContext) -> StepResult:
        if not ctx.external_refs.get("deployment_url"):
            return StepFailed("No CDN deployment URL to point the domain at")

        await self._simulate_io()
        domain = ctx.external_refs["validated_domain"]
        return StepSucceeded(
            {
                "domain_configured": True,
                "custom_domain": f"{domain}.{self._base_domain}",
            }
        )

    async def finalize(self, ctx: StepContext) -> StepResult:
        tenant_url = ctx.external_refs.get("deployment_url")
        if not tenant_url:
            return StepFailed("No deployment URL to publish")

        job = await ctx.store.get(ctx.job_id)
        if job is not None and job.status != JobStatus.RUNNING.value:
            # Cancelled while finalizing; leave the tenant unpublished
            logger.info("Job no longer running, skipping publication", status=job.status)
            return StepSucceeded()

        if not await self._tenants.mark_published(ctx.tenant_id):
            # Tenant deleted mid-run; the job itself still completes
            logger.warning("Tenant vanished before publication flip", tenant_id=ctx.tenant_id)

        completed = await ctx.store.transition(
            ctx.job_id,
            {JobStatus.RUNNING},
            status=JobStatus.COMPLETED,
            progress=100,
            current_step=FINALIZE,
            steps_completed=ctx.steps_total,
            completed_at=utc_now(),
            external_refs={
                "result": {
                    "tenant_url": tenant_url,
                    "admin_url": f"{tenant_url}/admin",
                }
            },
        )
        if completed is None:
            logger.warning("Job could not be marked completed", job_id=str(ctx.job_id))
        return StepSucceeded()

    def build_steps(self) -> list[ProvisioningStep]:
        return [
            ProvisioningStep(
                VALIDATE_TENANT, self.validate_tenant, description="Validating tenant data"
            ),
            ProvisioningStep(
                GENERATE_STATIC_SITE,
                self.generate_static_site,
                description="Generating static site files",
            ),
            ProvisioningStep(DEPLOY_TO_CDN, self.deploy_to_cdn, description="Deploying to CDN"),
            ProvisioningStep(
                SETUP_SEARCH_INDEX, self.setup_search_index, description="Setting up search index"
            ),
            ProvisioningStep(
                CONFIGURE_DOMAIN, self.configure_domain, description="Configuring custom domain"
            ),
            ProvisioningStep(FINALIZE, self.finalize, description="Publishing directory"),
        ]


def build_default_registry(tenants: TenantGateway, settings: Settings) -> StepRegistry:
    """Build the six-step directory publishing registry."""
    steps = DirectoryPublishingSteps(
        tenants,
        public_base_domain=settings.public_base_domain,
        step_delay_seconds=settings.provisioning_step_delay_seconds,
    )
    return StepRegistry(steps.build_steps())
