"""A single phase of a pace plan."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_DURATION_SECONDS = 10


@dataclass(frozen=True)
class PaceSpec:
    """One phase of the rate plan: ``rate`` requests per second for ``duration``.

    Attributes:
        rate: Target requests per second. Always > 0.
        duration: Phase length in whole seconds. Always > 0.
    """

    rate: int
    duration: int = DEFAULT_DURATION_SECONDS

    def __post_init__(self) -> None:
        if self.rate <= 0:
            msg = f"rate must be positive, got {self.rate}"
            raise ValueError(msg)
        if self.duration <= 0:
            msg = f"duration must be positive, got {self.duration}"
            raise ValueError(msg)

    @property
    def duration_seconds(self) -> float:
        """Return the duration as a float, for timer arithmetic."""
        return float(self.duration)

    @property
    def expected_messages(self) -> int:
        """Return how many sends the phase schedules at its nominal rate."""
        return self.rate * self.duration

    def describe(self) -> str:
        """Return a short human-readable form, e.g. ``200 rps for 4s``."""
        return f"{self.rate} rps for {self.duration}s"
