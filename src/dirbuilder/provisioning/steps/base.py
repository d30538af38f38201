"""Step contract for the provisioning saga."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from src.dirbuilder.provisioning.store import JobStore


@dataclass(frozen=True)
class StepSucceeded:
    """Step outcome: success, with refs to merge into the job's external_refs."""

    data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StepFailed:
    """Step outcome: failure, with the reason recorded as the job's error_message."""

    reason: str


StepResult = StepSucceeded | StepFailed


@dataclass(frozen=True)
class StepContext:
    """
    Everything a step invocation sees.

    Attributes:
        job_id: Job being executed
        tenant_id: Tenant being provisioned (may have been deleted meanwhile)
        position: 1-based index of the step in the registry
        steps_total: Number of steps in the registry
        external_refs: Read-only snapshot of refs emitted by earlier steps in this run
        store: Job store, for steps that write the record themselves (finalize)
    """

    job_id: UUID
    tenant_id: str
    position: int
    steps_total: int
    external_refs: Mapping[str, Any]
    store: "JobStore"


StepAction = Callable[[StepContext], Awaitable[StepResult | None]]
CompensateAction = Callable[[StepContext], Awaitable[None]]


@dataclass(frozen=True)
class ProvisioningStep:
    """
    One named unit of provisioning work.

    execute returns a StepResult (None counts as success without data);
    raising is treated the same as returning StepFailed. compensate is a
    best-effort undo of execute's side effect, omitted by steps that have
    nothing to undo.
    """

    name: str
    execute: StepAction
    compensate: CompensateAction | None = None
    description: str = ""
