"""Result dataclasses for benchmark runs."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = [
    "BenchmarkResult",
    "LatencyStats",
    "PhaseSummary",
]


@dataclass(frozen=True)
class LatencyStats:
    """Latency distribution in milliseconds."""

    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    p50: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


@dataclass
class PhaseSummary:
    """What happened during one phase of the plan.

    Attributes:
        index: Zero-based phase position in the plan.
        target_rate: Configured requests per second.
        duration_seconds: Configured phase length.
        elapsed_seconds: Measured wall-clock length of the phase.
        attempts: Results observed on the completion stream.
        acknowledged: Results without an error.
        errors: Results with an error.
        errors_by_type: Error count keyed by exception name.
        latency: Latency distribution of all observed results.
    """

    index: int
    target_rate: int
    duration_seconds: float
    elapsed_seconds: float
    attempts: int = 0
    acknowledged: int = 0
    errors: int = 0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    latency: LatencyStats = field(default_factory=LatencyStats)

    @property
    def achieved_rate(self) -> float:
        """Return attempts per second over the measured phase length."""
        return self.attempts / max(self.elapsed_seconds, 0.001)

    @property
    def error_rate(self) -> float:
        """Return the fraction of attempts that failed (0.0 to 1.0)."""
        return self.errors / self.attempts if self.attempts else 0.0


@dataclass
class BenchmarkResult:
    """Complete result of one sender run.

    Attributes:
        source: Run identifier.
        plan_description: Human-readable form of the pace plan.
        duration_seconds: Wall-clock length of the run, warmup excluded.
        phases: One summary per phase, in plan order.
        late_acknowledged: Acknowledgements collected while draining, after
            the last phase closed.
        total_acknowledged: Acknowledgements over the whole run.
        total_errors: Failed sends over the whole run.
        latency: Run-wide latency distribution.
        gc_signals_sent: GC signals emitted.
        end_signal_sent: Whether the end signal went out.
    """

    source: str
    plan_description: str
    duration_seconds: float
    phases: list[PhaseSummary] = field(default_factory=list)
    late_acknowledged: int = 0
    total_acknowledged: int = 0
    total_errors: int = 0
    latency: LatencyStats = field(default_factory=LatencyStats)
    gc_signals_sent: int = 0
    end_signal_sent: bool = False
