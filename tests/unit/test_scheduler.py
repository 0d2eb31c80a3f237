"""Tests for the phase scheduler."""

from __future__ import annotations

import pytest

from pacebench._internal.config import TimingConfig
from pacebench._internal.errors import EngineError
from pacebench.engine.pool import WorkerPoolDispatcher
from pacebench.engine.protocol import MessageType, SenderState
from pacebench.engine.scheduler import PhaseScheduler
from pacebench.engine.targeter import WorkloadTargeter
from pacebench.engine.ticker import IntervalTickerDispatcher
from pacebench.pace import PacePlan, PaceSpec

FAST = TimingConfig(
    warmup_seconds=0,
    phase_pause_seconds=0,
    drain_timeout_seconds=1.0,
    shutdown_grace_seconds=0,
)


def _scheduler(transport, counters, **kwargs) -> PhaseScheduler:
    dispatcher = WorkerPoolDispatcher(transport, WorkloadTargeter("run", 8), workers=2)
    kwargs.setdefault("timing", FAST)
    return PhaseScheduler(dispatcher, transport, counters, source="run", **kwargs)


class TestPhaseScheduler:
    """Tests for PhaseScheduler.run."""

    async def test_runs_phases_in_order_with_signals(self, fake_transport, counters) -> None:
        gc_calls: list[int] = []
        scheduler = _scheduler(
            fake_transport,
            counters,
            gc_hook=lambda: gc_calls.append(1) or 0,
        )
        plan = PacePlan([PaceSpec(10, 1), PaceSpec(20, 1)])

        result = await scheduler.run(plan)

        types = [m.type for m in fake_transport.sent]
        first_gc = types.index(MessageType.GC_SIGNAL)
        assert types[:first_gc] == [MessageType.WORKLOAD] * 10
        assert types[first_gc + 1 : first_gc + 21] == [MessageType.WORKLOAD] * 20
        assert types[-2:] == [MessageType.GC_SIGNAL, MessageType.END_SIGNAL]
        assert types.count(MessageType.END_SIGNAL) == 1
        assert len(gc_calls) == 2

        assert result.gc_signals_sent == 2
        assert result.end_signal_sent
        assert [p.target_rate for p in result.phases] == [10, 20]
        assert result.total_acknowledged == 30

    async def test_workload_ids_have_no_gaps(self, fake_transport, counters) -> None:
        scheduler = _scheduler(fake_transport, counters)
        await scheduler.run(PacePlan([PaceSpec(10, 1), PaceSpec(10, 1)]))

        workload = [m.id for m in fake_transport.sent if m.type is MessageType.WORKLOAD]
        control = [m.id for m in fake_transport.sent if m.type.is_control]
        assert sorted(workload) == list(range(20))
        assert control == [-1, -2, -3]

    async def test_sent_total_counts_acknowledgements(self, fake_transport, counters) -> None:
        scheduler = _scheduler(fake_transport, counters)
        await scheduler.run(PacePlan([PaceSpec(10, 1)]))
        assert counters.sent_total == 10

    async def test_failed_sends_are_not_counted(self, make_transport, counters) -> None:
        transport = make_transport(fail_types=(MessageType.WORKLOAD,))
        scheduler = _scheduler(transport, counters)

        result = await scheduler.run(PacePlan([PaceSpec(10, 1)]))

        assert counters.sent_total == 0
        assert result.total_errors == 10
        assert result.phases[0].errors_by_type == {"TransportError": 10}
        assert result.end_signal_sent

    async def test_failed_control_signal_does_not_stop_run(self, make_transport, counters) -> None:
        transport = make_transport(fail_types=(MessageType.GC_SIGNAL,))
        scheduler = _scheduler(transport, counters)

        result = await scheduler.run(PacePlan([PaceSpec(5, 1), PaceSpec(5, 1)]))

        assert result.gc_signals_sent == 0
        assert result.end_signal_sent
        assert len(result.phases) == 2

    async def test_state_and_index_after_run(self, fake_transport, counters) -> None:
        scheduler = _scheduler(fake_transport, counters)
        assert scheduler.state is SenderState.IDLE

        await scheduler.run(PacePlan([PaceSpec(5, 1), PaceSpec(5, 1)]))

        assert scheduler.state is SenderState.IDLE
        assert scheduler.current_phase_index == 2

    async def test_on_phase_callback(self, fake_transport, counters) -> None:
        seen: list[int] = []
        scheduler = _scheduler(fake_transport, counters, on_phase=lambda s: seen.append(s.index))
        await scheduler.run(PacePlan([PaceSpec(5, 1), PaceSpec(5, 1)]))
        assert seen == [0, 1]

    async def test_phase_duration_is_wall_clock(self, make_transport, counters) -> None:
        transport = make_transport(delay=0.5)
        dispatcher = WorkerPoolDispatcher(transport, WorkloadTargeter("run", 8), workers=10)
        scheduler = PhaseScheduler(dispatcher, transport, counters, source="run", timing=FAST)

        result = await scheduler.run(PacePlan([PaceSpec(10, 1)]))

        assert result.phases[0].elapsed_seconds < 1.3
        assert result.late_acknowledged > 0
        assert counters.sent_total == 10

    async def test_callback_failure_is_engine_error(self, fake_transport, counters) -> None:
        def explode(_summary: object) -> None:
            msg = "callback failed"
            raise RuntimeError(msg)

        scheduler = _scheduler(fake_transport, counters, on_phase=explode)
        with pytest.raises(EngineError):
            await scheduler.run(PacePlan([PaceSpec(5, 1)]))

    async def test_scheduler_can_rerun_after_failure(self, fake_transport, counters) -> None:
        calls: list[int] = []

        def explode_once(_summary: object) -> None:
            calls.append(1)
            if len(calls) == 1:
                msg = "callback failed"
                raise RuntimeError(msg)

        scheduler = _scheduler(fake_transport, counters, on_phase=explode_once)
        with pytest.raises(EngineError):
            await scheduler.run(PacePlan([PaceSpec(5, 1)]))
        assert scheduler.state is SenderState.IDLE

        result = await scheduler.run(PacePlan([PaceSpec(5, 1)]))

        assert scheduler.state is SenderState.IDLE
        assert result.total_acknowledged == 5
        assert result.end_signal_sent
        assert [m.type for m in fake_transport.sent].count(MessageType.END_SIGNAL) == 1

    async def test_ticker_dispatcher(self, fake_transport, counters) -> None:
        dispatcher = IntervalTickerDispatcher(fake_transport, WorkloadTargeter("run", 8))
        scheduler = PhaseScheduler(dispatcher, fake_transport, counters, source="run", timing=FAST)

        result = await scheduler.run(PacePlan([PaceSpec(10, 1)]))

        assert result.total_acknowledged == 9
        assert fake_transport.sent[-1].type is MessageType.END_SIGNAL
