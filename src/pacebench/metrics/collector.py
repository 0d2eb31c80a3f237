"""Per-phase collection of dispatch results."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import numpy as np

from pacebench.metrics.histogram import LatencyHistogram
from pacebench.metrics.models import LatencyStats, PhaseSummary

if TYPE_CHECKING:
    from pacebench.pace.spec import PaceSpec
    from pacebench.transport.base import DispatchResult


def compute_latency_stats(latencies: list[float]) -> LatencyStats:
    """Compute exact latency statistics from a list of milliseconds.

    Args:
        latencies: Latency values in milliseconds.

    Returns:
        The distribution. All zeros for an empty list.
    """
    if not latencies:
        return LatencyStats()

    arr = np.array(latencies, dtype=np.float64)
    p50, p90, p95, p99 = np.percentile(arr, [50.0, 90.0, 95.0, 99.0])

    return LatencyStats(
        min=float(np.min(arr)),
        max=float(np.max(arr)),
        avg=float(np.mean(arr)),
        p50=float(p50),
        p90=float(p90),
        p95=float(p95),
        p99=float(p99),
    )


def _error_type(error: str) -> str:
    # "TransportError: sink answered HTTP 503" -> "TransportError"
    return error.split(":")[0].strip()


class ResultCollector:
    """Accumulates :class:`DispatchResult` objects phase by phase.

    ``record`` buffers the results of the current phase. ``close_phase``
    turns the buffer into a :class:`PhaseSummary` and clears it. Every
    result also feeds a run-wide HDR histogram and totals.
    """

    def __init__(self) -> None:
        self._latencies: list[float] = []
        self._acknowledged = 0
        self._errors_by_type: dict[str, int] = defaultdict(int)
        self._histogram = LatencyHistogram()
        self.total_acknowledged = 0
        self.total_errors = 0

    @property
    def pending_count(self) -> int:
        """Return the number of results recorded in the open phase."""
        return len(self._latencies)

    def record(self, result: DispatchResult) -> None:
        """Record one result in the open phase and the run totals."""
        self._latencies.append(result.latency_ms)
        self._histogram.record_latency_ms(result.latency_ms)
        if result.ok:
            self._acknowledged += 1
            self.total_acknowledged += 1
        else:
            self._errors_by_type[_error_type(result.error or "")] += 1
            self.total_errors += 1

    def close_phase(self, index: int, phase: PaceSpec, elapsed_seconds: float) -> PhaseSummary:
        """Summarize and reset the open phase.

        Args:
            index: Phase position in the plan.
            phase: The phase's configuration.
            elapsed_seconds: Measured wall-clock length of the phase.

        Returns:
            The phase summary.
        """
        attempts = len(self._latencies)
        summary = PhaseSummary(
            index=index,
            target_rate=phase.rate,
            duration_seconds=phase.duration_seconds,
            elapsed_seconds=elapsed_seconds,
            attempts=attempts,
            acknowledged=self._acknowledged,
            errors=attempts - self._acknowledged,
            errors_by_type=dict(self._errors_by_type),
            latency=compute_latency_stats(self._latencies),
        )
        self._latencies = []
        self._acknowledged = 0
        self._errors_by_type = defaultdict(int)
        return summary

    def run_latency(self) -> LatencyStats:
        """Return the run-wide latency distribution."""
        return self._histogram.stats()
