"""Interval-ticker dispatch: one logical producer, one send per tick."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from pacebench._internal.logging import get_logger
from pacebench.engine.dispatcher import Dispatcher
from pacebench.engine.pacer import effective_rate

if TYPE_CHECKING:
    from pacebench.pace.spec import PaceSpec

logger = get_logger("engine.ticker")


class IntervalTickerDispatcher(Dispatcher):
    """Fires one send per tick of a fixed interval, ``1 / rate`` seconds.

    Used with queue-backed transports (Kafka). The interval is derived once
    per phase. Tick ``k`` (``k >= 1``) is due at ``began + k / rate``. Ticks
    that fall behind fire immediately instead of being dropped.

    Each tick starts its send and moves on without waiting for it, so a slow
    acknowledgement never delays the next tick. The producer finishes once
    every send it started has completed.

    The phase timer always wins: a tick due at or after the deadline, or one
    whose wait overran it, returns without sending. A phase of ``R`` rps for
    ``D`` seconds therefore issues ``R * D - 1`` sends.
    """

    name = "ticker"

    async def _produce(self, phase: PaceSpec, began: float, deadline: float) -> None:
        loop = asyncio.get_running_loop()
        rate = effective_rate(phase.rate)
        logger.debug("Ticker interval %.6fs for %s", 1 / rate, phase.describe())

        pending: set[asyncio.Task[None]] = set()
        try:
            tick = 1
            while True:
                due = began + tick / rate
                if due >= deadline:
                    break
                delay = due - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
                else:
                    # Behind schedule: still let the loop run between sends
                    await asyncio.sleep(0)
                if loop.time() >= deadline:
                    break
                task = asyncio.create_task(self._send(self._targeter.next_message()))
                pending.add(task)
                task.add_done_callback(pending.discard)
                tick += 1

            if pending:
                await asyncio.gather(*pending)
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            raise
