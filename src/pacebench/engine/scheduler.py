"""Phase scheduler: runs a pace plan one phase at a time."""

from __future__ import annotations

import asyncio
import gc
import time
from typing import TYPE_CHECKING

from pacebench._internal.config import TimingConfig
from pacebench._internal.errors import EngineError
from pacebench._internal.logging import get_logger
from pacebench.engine.protocol import SenderProtocol, SenderState
from pacebench.metrics.collector import ResultCollector
from pacebench.metrics.models import BenchmarkResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from pacebench._internal.types import GcHook
    from pacebench.engine.dispatcher import Dispatcher
    from pacebench.engine.protocol import ControlMessage
    from pacebench.metrics.counters import BenchmarkCounters
    from pacebench.metrics.models import PhaseSummary
    from pacebench.pace.plan import PacePlan
    from pacebench.transport.base import Transport

logger = get_logger("engine.scheduler")


class PhaseScheduler:
    """Executes the phases of a plan strictly in order.

    For every phase the scheduler lets the dispatcher run it for its full
    wall-clock duration. It increments ``sent_total`` once per
    acknowledgement, then emits one GC signal, collects locally and pauses
    before the next phase. After the last phase it drains in-flight sends,
    emits exactly one end signal, and idles for the shutdown grace period.

    Send failures never stop the run: failed workload sends only show up as
    missing acknowledgements, and a failed control signal is logged.

    Attributes:
        current_phase_index: Index of the running phase. Equals the number
            of phases once the plan is done.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        control: Transport,
        counters: BenchmarkCounters,
        *,
        source: str,
        timing: TimingConfig | None = None,
        gc_hook: GcHook = gc.collect,
        on_phase: Callable[[PhaseSummary], None] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            dispatcher: Strategy issuing the workload of each phase.
            control: Transport used for GC and end signals.
            counters: Counters shared with the metrics exporter.
            source: Run identifier stamped on control signals.
            timing: Warmup, pause, drain and grace timings.
            gc_hook: Local collection run after every phase.
            on_phase: Optional callback invoked with each PhaseSummary.
        """
        self._dispatcher = dispatcher
        self._control = control
        self._counters = counters
        self._timing = timing or TimingConfig()
        self._gc_hook = gc_hook
        self._on_phase = on_phase
        self._protocol = SenderProtocol(source)
        self.current_phase_index = 0

    @property
    def state(self) -> SenderState:
        """Return the sender protocol state."""
        return self._protocol.state

    async def run(self, plan: PacePlan) -> BenchmarkResult:
        """Run every phase of *plan* and return the run's result.

        Args:
            plan: The parsed pace plan.

        Returns:
            BenchmarkResult with one summary per phase.

        Raises:
            EngineError: If the run loop itself fails. The scheduler is back
                in ``IDLE`` afterwards and can run another plan.
        """
        self._protocol.transition(SenderState.RUNNING)
        self.current_phase_index = 0
        collector = ResultCollector()
        phases: list[PhaseSummary] = []
        gc_signals = 0
        late_acknowledged = 0

        logger.info("%s", plan.describe())

        if self._timing.warmup_seconds > 0:
            logger.info("Waiting %.1fs before sending", self._timing.warmup_seconds)
            await asyncio.sleep(self._timing.warmup_seconds)

        logger.info("--- BENCHMARK ---")
        start_time = time.monotonic()

        try:
            for index, phase in enumerate(plan):
                self.current_phase_index = index
                logger.info("Starting phase %d/%d: %s", index + 1, len(plan), phase.describe())

                phase_start = time.monotonic()
                async for result in self._dispatcher.attack(phase, index):
                    collector.record(result)
                    if result.ok:
                        self._counters.sent.inc()

                summary = collector.close_phase(index, phase, time.monotonic() - phase_start)
                phases.append(summary)
                logger.info(
                    "Phase %d done: attempts=%d, acked=%d, rate=%.1f/s, p95=%.1fms",
                    index + 1,
                    summary.attempts,
                    summary.acknowledged,
                    summary.achieved_rate,
                    summary.latency.p95,
                )
                if self._on_phase is not None:
                    self._on_phase(summary)

                if await self._send_control(self._protocol.make_gc_signal()):
                    gc_signals += 1
                self._gc_hook()
                if self._timing.phase_pause_seconds > 0:
                    await asyncio.sleep(self._timing.phase_pause_seconds)

            self.current_phase_index = len(plan)
            self._protocol.transition(SenderState.DRAINING)

            async for result in self._dispatcher.drain(self._timing.drain_timeout_seconds):
                collector.record(result)
                if result.ok:
                    self._counters.sent.inc()
                    late_acknowledged += 1

            end_sent = await self._send_control(self._protocol.make_end_signal())
        except Exception as exc:
            logger.exception("Benchmark run failed")
            self._protocol.reset()
            raise EngineError("Benchmark run failed") from exc

        duration = time.monotonic() - start_time
        logger.info(
            "--- END BENCHMARK --- duration=%.1fs, acked=%d, errors=%d",
            duration,
            collector.total_acknowledged,
            collector.total_errors,
        )

        result = BenchmarkResult(
            source=self._protocol.source,
            plan_description=plan.describe(),
            duration_seconds=duration,
            phases=phases,
            late_acknowledged=late_acknowledged,
            total_acknowledged=collector.total_acknowledged,
            total_errors=collector.total_errors,
            latency=collector.run_latency(),
            gc_signals_sent=gc_signals,
            end_signal_sent=end_sent,
        )

        if self._timing.shutdown_grace_seconds > 0:
            logger.info("Idling %.1fs before exit", self._timing.shutdown_grace_seconds)
            await asyncio.sleep(self._timing.shutdown_grace_seconds)

        self._protocol.transition(SenderState.IDLE)
        return result

    async def _send_control(self, message: ControlMessage) -> bool:
        """Send a control signal; failures are logged, never raised."""
        try:
            await self._control.send(message)
        except Exception:
            logger.warning(
                "Failed to send %s (id=%d)",
                message.type.name,
                message.id,
                exc_info=True,
            )
            return False
        logger.debug("Sent %s (id=%d)", message.type.name, message.id)
        return True
