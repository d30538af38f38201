"""Step registry - the fixed, ordered sequence of provisioning steps."""

from collections.abc import Iterable, Iterator

from src.dirbuilder.provisioning.errors import StepRegistryError
from src.dirbuilder.provisioning.steps.base import ProvisioningStep


class StepRegistry:
    """Immutable ordered list of steps, built once at startup.

    Order is significant: later steps rely on the postconditions of
    earlier ones, and compensation walks the completed prefix backwards.
    """

    __slots__ = ("_steps",)

    def __init__(self, steps: Iterable[ProvisioningStep]):
        ordered = tuple(steps)
        if not ordered:
            raise StepRegistryError("A step registry needs at least one step")

        seen: set[str] = set()
        for step in ordered:
            if step.name in seen:
                raise StepRegistryError(f"Duplicate step name '{step.name}'")
            seen.add(step.name)

        self._steps = ordered

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[ProvisioningStep]:
        return iter(self._steps)

    def __getitem__(self, index: int) -> ProvisioningStep:
        return self._steps[index]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(step.name for step in self._steps)

    def __repr__(self) -> str:
        return f"StepRegistry({', '.join(self.names)})"
