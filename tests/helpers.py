"""Test helpers for building synthetic step registries and awaiting jobs."""

import asyncio
from collections.abc import Collection, Mapping
from typing import Any
from uuid import UUID

from src.dirbuilder.models import JobStatus, ProvisioningJob
from src.dirbuilder.provisioning import (
    JobStore,
    ProvisioningStep,
    StepContext,
    StepFailed,
    StepRegistry,
    StepResult,
    StepSucceeded,
)


class StepRecorder:
    """Builds synthetic steps that record every execute/compensate call in order.

    calls holds entries like "execute:A" and "compensate:A".
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.contexts: dict[str, StepContext] = {}

    @property
    def executed(self) -> list[str]:
        return [c.split(":", 1)[1] for c in self.calls if c.startswith("execute:")]

    @property
    def compensated(self) -> list[str]:
        return [c.split(":", 1)[1] for c in self.calls if c.startswith("compensate:")]

    def step(
        self,
        name: str,
        *,
        data: Mapping[str, Any] | None = None,
        fail: str | None = None,
        raises: BaseException | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
        compensate: bool = True,
        compensate_raises: BaseException | None = None,
    ) -> ProvisioningStep:
        """Build a step.

        Args:
            data: Refs returned on success
            fail: Return StepFailed with this reason
            raises: Raise this exception from execute
            delay: Sleep before finishing
            gate: Wait for this event before finishing
            compensate: Attach a compensation
            compensate_raises: Raise this exception from the compensation
        """

        async def execute(ctx: StepContext) -> StepResult:
            self.calls.append(f"execute:{name}")
            self.contexts[name] = ctx
            if gate is not None:
                await gate.wait()
            if delay:
                await asyncio.sleep(delay)
            if raises is not None:
                raise raises
            if fail is not None:
                return StepFailed(fail)
            return StepSucceeded(dict(data or {}))

        async def undo(ctx: StepContext) -> None:
            self.calls.append(f"compensate:{name}")
            if compensate_raises is not None:
                raise compensate_raises

        return ProvisioningStep(name, execute, undo if compensate else None)

    def registry(self, *names: str, **overrides: dict[str, Any]) -> StepRegistry:
        """Registry of plain succeeding steps, with per-step keyword overrides."""
        return StepRegistry(self.step(n, **overrides.get(n, {})) for n in names)


async def wait_for_status(
    store: JobStore,
    job_id: UUID,
    statuses: Collection[JobStatus],
    timeout: float = 2.0,
) -> ProvisioningJob:
    """Poll the store until the job reaches one of the given statuses."""
    wanted = {s.value for s in statuses}
    async with asyncio.timeout(timeout):
        while True:
            job = await store.get(job_id)
            if job is not None and job.status in wanted:
                return job
            await asyncio.sleep(0.005)
