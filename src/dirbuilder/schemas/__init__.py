"""Pydantic response schemas."""

from src.dirbuilder.schemas.provisioning import (
    CancelResponse,
    JobResult,
    JobStatusView,
    PublishResponse,
)

__all__ = [
    "CancelResponse",
    "JobResult",
    "JobStatusView",
    "PublishResponse",
]
