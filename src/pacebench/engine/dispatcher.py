"""Base class of the rate-controlled dispatchers.

A dispatcher turns one :class:`PaceSpec` into sends at the phase's target
rate. Concrete strategies only decide *when* to send
(:meth:`Dispatcher._produce`). The base class owns the parts both share:

- the completion stream: every send, successful or not, puts one
  :class:`DispatchResult` on a queue shared across phases;
- the phase orchestrator (:meth:`Dispatcher.attack`), which consumes that
  stream until the phase's wall-clock deadline and then returns, whether or
  not every scheduled send has completed.

Sends still in flight at the deadline are left running. Their results are
picked up by the next ``attack`` or by :meth:`Dispatcher.drain`.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pacebench._internal.logging import get_logger
from pacebench.transport.base import DispatchResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from pacebench.engine.protocol import ControlMessage
    from pacebench.engine.targeter import WorkloadTargeter
    from pacebench.pace.spec import PaceSpec
    from pacebench.transport.base import Transport

logger = get_logger("engine.dispatcher")


class Dispatcher(ABC):
    """Issues workload messages at a phase's target rate.

    Args:
        transport: Opened transport used for every send.
        targeter: Source of workload messages for the run.
    """

    name: str = "dispatcher"

    def __init__(self, transport: Transport, targeter: WorkloadTargeter) -> None:
        self._transport = transport
        self._targeter = targeter
        self._results: asyncio.Queue[DispatchResult] = asyncio.Queue()
        self._producers: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        """Return the number of phase producers that have not finished."""
        return len(self._producers)

    @abstractmethod
    async def _produce(self, phase: PaceSpec, began: float, deadline: float) -> None:
        """Issue the phase's sends.

        Implementations must not issue a send at or after *deadline* and must
        report every send through :meth:`_send`.

        Args:
            phase: The phase being run.
            began: Loop time at which the phase started.
            deadline: Loop time at which the phase closes.
        """

    async def attack(self, phase: PaceSpec, index: int = 0) -> AsyncIterator[DispatchResult]:
        """Run one phase and yield results until its duration has elapsed.

        The phase boundary depends only on wall-clock time. Under-delivery
        does not extend it, and a slow send does not hold it open.

        Args:
            phase: The phase to run.
            index: Phase position in the plan, used for task names.

        Yields:
            Results as they complete.
        """
        loop = asyncio.get_running_loop()
        began = loop.time()
        deadline = began + phase.duration_seconds

        producer = asyncio.create_task(
            self._produce(phase, began, deadline),
            name=f"{self.name}-phase-{index}",
        )
        self._producers.add(producer)
        producer.add_done_callback(self._on_producer_done)

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                result = await asyncio.wait_for(self._results.get(), timeout=remaining)
            except TimeoutError:
                break
            yield result

    async def drain(self, timeout: float) -> AsyncIterator[DispatchResult]:
        """Wait up to *timeout* seconds for in-flight sends, then yield leftovers.

        Producers still running after the timeout are cancelled.

        Args:
            timeout: Maximum seconds to wait for in-flight sends.

        Yields:
            Every result not yet consumed by an ``attack``.
        """
        if self._producers:
            _done, pending = await asyncio.wait(set(self._producers), timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                logger.debug("Cancelled %d producers still running after drain", len(pending))
                await asyncio.wait(pending, timeout=2.0)

        while not self._results.empty():
            yield self._results.get_nowait()

    async def _send(self, message: ControlMessage) -> None:
        """Send one message and put its result on the completion stream.

        Transport failures are recorded on the result and never propagate:
        a failed send must not abort the phase.
        """
        start = time.monotonic()
        status_code = 0
        error: str | None = None
        try:
            status_code = await self._transport.send(message)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.debug("Send of message %d failed: %s", message.id, error)

        self._results.put_nowait(
            DispatchResult(
                seq=message.id,
                timestamp=start,
                latency_ms=(time.monotonic() - start) * 1000,
                status_code=status_code,
                error=error,
            )
        )

    def _on_producer_done(self, task: asyncio.Task[None]) -> None:
        self._producers.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Producer %s failed", task.get_name(), exc_info=exc)
