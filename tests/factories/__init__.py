"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import TenantFactory, ProvisioningJobFactory
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.provisioning_job import ProvisioningJobFactory
from tests.factories.tenant import TenantFactory

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Models
    "ProvisioningJobFactory",
    "TenantFactory",
]
