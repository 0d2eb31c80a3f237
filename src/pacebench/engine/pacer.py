"""Constant-rate pacing shared by all dispatch workers of a phase."""

from __future__ import annotations

import asyncio

from pacebench._internal.logging import get_logger

logger = get_logger("engine.pacer")

# Fastest tick the dispatchers will schedule. Rates above 1 / MIN_TICK_INTERVAL
# are clamped to it instead of producing a zero-length interval.
MIN_TICK_INTERVAL = 1e-6
MAX_RATE = round(1 / MIN_TICK_INTERVAL)


def effective_rate(rate: int) -> int:
    """Return *rate* clamped to the fastest achievable issue rate.

    Args:
        rate: Requested requests per second. Must be positive.

    Raises:
        ValueError: If rate is not positive.
    """
    if rate <= 0:
        msg = f"rate must be positive, got {rate}"
        raise ValueError(msg)
    if rate > MAX_RATE:
        logger.warning(
            "Rate %d rps exceeds the fastest tick (%gs), clamping to %d rps",
            rate,
            MIN_TICK_INTERVAL,
            MAX_RATE,
        )
        return MAX_RATE
    return rate


class ConstantPacer:
    """Hands out hits at a constant wall-clock rate until a deadline.

    Hit ``n`` (starting at 0) is due at ``began + n / rate``. Workers call
    :meth:`next_hit` concurrently; each call returns exactly one hit. Callers
    queue on an internal lock, so hits are handed out in order. A hit due at
    or after the deadline is never handed out; from then on every call
    returns ``None``.

    When all workers are busy past a hit's due time, the late hits fire
    immediately once a worker frees up. The pacer does not skip them.

    Attributes:
        rate: Effective hits per second.
    """

    def __init__(self, rate: int, began: float, deadline: float) -> None:
        """Initialize the pacer.

        Args:
            rate: Target hits per second. Clamped by :func:`effective_rate`.
            began: Loop time of hit 0.
            deadline: Loop time at which the phase closes.

        Raises:
            ValueError: If rate is not positive.
        """
        self.rate = effective_rate(rate)
        self._began = began
        self._deadline = deadline
        self._hits = 0
        self._lock = asyncio.Lock()

    @property
    def hits(self) -> int:
        """Return the number of hits handed out so far."""
        return self._hits

    def due_at(self, hit: int) -> float:
        """Return the loop time at which *hit* is due."""
        return self._began + hit / self.rate

    async def next_hit(self) -> int | None:
        """Wait for the next hit and return its index.

        Returns:
            The hit index, or ``None`` once the phase deadline has been
            reached. The deadline wins ties with a hit due at the same time.
        """
        loop = asyncio.get_running_loop()
        async with self._lock:
            due = self.due_at(self._hits)
            if due >= self._deadline:
                return None
            delay = due - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
                if loop.time() >= self._deadline:
                    return None
            hit = self._hits
            self._hits += 1
            return hit
