"""
Tenant provisioning saga engine.

Turns a "publish this directory" request into an ordered sequence of side
effects executed in the background, with progress reporting, reverse-order
compensation on failure, and a polled job record as the only output.

Components:
- JobStore: durable job records (SQL and in-memory backends)
- StepRegistry: fixed, ordered steps with optional compensations
- JobExecutor: runs the saga for one job
- JobLauncher: creates the record and starts the saga without blocking
- StatusReporter: read path for status polling
"""

from src.dirbuilder.provisioning.errors import (
    ActiveJobExistsError,
    LauncherClosedError,
    ProvisioningError,
    StepRegistryError,
)
from src.dirbuilder.provisioning.executor import JobExecutor, compute_progress
from src.dirbuilder.provisioning.launcher import JobLauncher
from src.dirbuilder.provisioning.registry import StepRegistry
from src.dirbuilder.provisioning.service import ProvisioningService, build_provisioning_service
from src.dirbuilder.provisioning.status import StatusReporter
from src.dirbuilder.provisioning.steps import (
    ProvisioningStep,
    StepContext,
    StepFailed,
    StepResult,
    StepSucceeded,
)
from src.dirbuilder.provisioning.steps.directory import build_default_registry
from src.dirbuilder.provisioning.store import JobStore, MemoryJobStore, SqlJobStore
from src.dirbuilder.provisioning.tenants import (
    MemoryTenantGateway,
    SqlTenantGateway,
    TenantGateway,
    TenantSnapshot,
)

__all__ = [
    # Errors
    "ActiveJobExistsError",
    "LauncherClosedError",
    "ProvisioningError",
    "StepRegistryError",
    # Steps
    "ProvisioningStep",
    "StepContext",
    "StepFailed",
    "StepRegistry",
    "StepResult",
    "StepSucceeded",
    "build_default_registry",
    # Store
    "JobStore",
    "MemoryJobStore",
    "SqlJobStore",
    # Tenants
    "MemoryTenantGateway",
    "SqlTenantGateway",
    "TenantGateway",
    "TenantSnapshot",
    # Saga
    "JobExecutor",
    "JobLauncher",
    "ProvisioningService",
    "StatusReporter",
    "build_provisioning_service",
    "compute_progress",
]
