"""HDR histogram wrapper for run-wide latency percentiles.

Works in milliseconds on the outside and integer microseconds on the inside,
as the ``hdrh`` API only accepts integers.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

from pacebench.metrics.models import LatencyStats

# Range: 1 microsecond to 60 seconds (in microseconds)
_LOWEST_TRACKABLE_US = 1
_HIGHEST_TRACKABLE_US = 60_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Bounded-memory latency histogram covering a whole run.

    A run can issue millions of sends. This keeps the run-wide distribution
    in constant memory; per-phase statistics are computed exactly by the
    collector instead.
    """

    def __init__(
        self,
        lowest_us: int = _LOWEST_TRACKABLE_US,
        highest_us: int = _HIGHEST_TRACKABLE_US,
        significant_digits: int = _SIGNIFICANT_DIGITS,
    ) -> None:
        self.lowest_us = lowest_us
        self.highest_us = highest_us
        self._histogram = HdrHistogram(lowest_us, highest_us, significant_digits)

    @property
    def total_count(self) -> int:
        """Return the number of recorded values."""
        return int(self._histogram.total_count)

    def record_latency_ms(self, latency_ms: float) -> None:
        """Record one latency, clamped to the trackable range."""
        value_us = int(latency_ms * 1000)
        value_us = max(self.lowest_us, min(value_us, self.highest_us))
        self._histogram.record_value(value_us)

    def get_percentile(self, percentile: float) -> float:
        """Return the latency in milliseconds at *percentile* (0-100), 0.0 if empty."""
        if self.total_count == 0:
            return 0.0
        return float(self._histogram.get_value_at_percentile(percentile)) / 1000.0

    def stats(self) -> LatencyStats:
        """Return the distribution as LatencyStats."""
        if self.total_count == 0:
            return LatencyStats()
        return LatencyStats(
            min=float(self._histogram.get_min_value()) / 1000.0,
            max=float(self._histogram.get_max_value()) / 1000.0,
            avg=float(self._histogram.get_mean_value()) / 1000.0,
            p50=self.get_percentile(50.0),
            p90=self.get_percentile(90.0),
            p95=self.get_percentile(95.0),
            p99=self.get_percentile(99.0),
        )
