"""Ordered, immutable sequence of pace phases."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, overload

from pacebench._internal.errors import FormatError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pacebench.pace.spec import PaceSpec


class PacePlan(Sequence["PaceSpec"]):
    """The full ordered list of phases for one benchmark run.

    Phases run in the order given. The plan is built once at startup and
    never changes afterwards.

    Args:
        phases: The phases, in execution order. Must not be empty.

    Raises:
        FormatError: If *phases* is empty.

    Example::

        plan = PacePlan([PaceSpec(100), PaceSpec(200, 4)])
        plan.total_duration_seconds  # 14
    """

    def __init__(self, phases: Sequence[PaceSpec]) -> None:
        if not phases:
            raise FormatError("", "a pace plan needs at least one phase")
        self._phases: tuple[PaceSpec, ...] = tuple(phases)

    @overload
    def __getitem__(self, index: int) -> PaceSpec: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[PaceSpec]: ...

    def __getitem__(self, index: int | slice) -> PaceSpec | Sequence[PaceSpec]:
        return self._phases[index]

    def __len__(self) -> int:
        return len(self._phases)

    def __iter__(self) -> Iterator[PaceSpec]:
        return iter(self._phases)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PacePlan):
            return self._phases == other._phases
        if isinstance(other, (list, tuple)):
            return list(self._phases) == list(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._phases)

    def __repr__(self) -> str:
        return f"PacePlan({list(self._phases)!r})"

    @property
    def total_duration_seconds(self) -> int:
        """Return the sum of all phase durations."""
        return sum(p.duration for p in self._phases)

    @property
    def max_messages_per_phase(self) -> int:
        """Return the largest nominal message count of any single phase.

        Used to size the Kafka producer's local queue so a whole phase fits
        in it.
        """
        return max(p.expected_messages for p in self._phases)

    def describe(self) -> str:
        """Return a multi-line description of the plan.

        Returns:
            A header line followed by one numbered line per phase.
        """
        header = f"Pace plan: {len(self._phases)} phases, {self.total_duration_seconds}s total"
        lines = [f"  {i + 1}. {p.describe()}" for i, p in enumerate(self._phases)]
        return "\n".join([header, *lines])
