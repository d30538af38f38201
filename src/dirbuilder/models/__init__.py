"""Model exports.

Import from here: `from src.dirbuilder.models import ProvisioningJob, Tenant`
"""

from src.dirbuilder.models.enums import (
    ACTIVE_JOB_STATUSES,
    TERMINAL_JOB_STATUSES,
    JobStatus,
    JobType,
    TenantStatus,
)
from src.dirbuilder.models.provisioning_job import ProvisioningJob
from src.dirbuilder.models.tenant import Tenant

__all__ = [
    # Enums
    "ACTIVE_JOB_STATUSES",
    "TERMINAL_JOB_STATUSES",
    "JobStatus",
    "JobType",
    "TenantStatus",
    # Tables
    "ProvisioningJob",
    "Tenant",
]
