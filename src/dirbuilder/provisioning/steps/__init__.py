"""Provisioning steps - the step contract and the directory publishing steps."""

from src.dirbuilder.provisioning.steps.base import (
    CompensateAction,
    ProvisioningStep,
    StepAction,
    StepContext,
    StepFailed,
    StepResult,
    StepSucceeded,
)

__all__ = [
    "CompensateAction",
    "ProvisioningStep",
    "StepAction",
    "StepContext",
    "StepFailed",
    "StepResult",
    "StepSucceeded",
]
