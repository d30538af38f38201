"""Shared enums for models."""

from enum import Enum


class TenantStatus(str, Enum):
    """Directory publication status."""

    DRAFT = "DRAFT"
    PREVIEW = "PREVIEW"
    PUBLISHED = "PUBLISHED"
    UPDATING = "UPDATING"
    FAILED = "FAILED"


class JobType(str, Enum):
    """Why a provisioning job was requested. Informational only."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    REPUBLISH = "REPUBLISH"


class JobStatus(str, Enum):
    """Provisioning job lifecycle status."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATUSES


TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})
ACTIVE_JOB_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.RUNNING})
