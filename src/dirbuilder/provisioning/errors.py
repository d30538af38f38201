"""Provisioning errors raised at the launch boundary.

Nothing below the launcher raises outward: step and persistence failures
are written to the job record instead.
"""

from uuid import UUID


class ProvisioningError(Exception):
    """Base class for provisioning errors."""


class StepRegistryError(ProvisioningError):
    """The step registry is malformed (empty, duplicate names)."""


class LauncherClosedError(ProvisioningError):
    """The launcher is shutting down and no longer accepts jobs."""

    def __init__(self) -> None:
        super().__init__("Provisioning launcher is shutting down")


class ActiveJobExistsError(ProvisioningError):
    """A QUEUED or RUNNING job already exists for the tenant."""

    def __init__(self, tenant_id: str, job_id: UUID | None) -> None:
        self.tenant_id = tenant_id
        self.job_id = job_id
        super().__init__(f"Tenant '{tenant_id}' already has an active provisioning job")


def describe_error(exc: BaseException) -> str:
    """Non-empty, human readable message for an exception."""
    message = str(exc).strip()
    return message or type(exc).__name__
