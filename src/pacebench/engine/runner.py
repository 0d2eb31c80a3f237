"""Sender entry points: wire config, transport, dispatcher and scheduler."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pacebench._internal.config import KafkaSenderConfig
from pacebench._internal.logging import get_logger, setup_logging
from pacebench._internal.runtime import automatic_gc_disabled, install_uvloop
from pacebench.engine.pool import WorkerPoolDispatcher
from pacebench.engine.scheduler import PhaseScheduler
from pacebench.engine.targeter import WorkloadTargeter
from pacebench.engine.ticker import IntervalTickerDispatcher
from pacebench.metrics.counters import BenchmarkCounters, serve_metrics
from pacebench.transport.http import HttpTransport
from pacebench.transport.kafka import KafkaTransport

if TYPE_CHECKING:
    from collections.abc import Callable

    from prometheus_client import CollectorRegistry

    from pacebench._internal.config import SenderConfig
    from pacebench.metrics.models import BenchmarkResult, PhaseSummary
    from pacebench.pace.plan import PacePlan

logger = get_logger("engine.runner")


async def run_http_benchmark(
    config: SenderConfig,
    plan: PacePlan,
    counters: BenchmarkCounters,
    *,
    on_phase: Callable[[PhaseSummary], None] | None = None,
) -> BenchmarkResult:
    """Run *plan* against an HTTP sink with the worker-pool dispatcher.

    Args:
        config: Sender configuration.
        plan: The parsed pace plan.
        counters: Counters shared with the metrics exporter.
        on_phase: Optional callback invoked with each PhaseSummary.

    Returns:
        The run's BenchmarkResult.
    """
    targeter = WorkloadTargeter(config.source, config.msg_size)
    async with HttpTransport(
        config.sink_url,
        connections=config.workers,
        timeout=config.request_timeout,
    ) as transport:
        dispatcher = WorkerPoolDispatcher(transport, targeter, workers=config.workers)
        scheduler = PhaseScheduler(
            dispatcher,
            transport,
            counters,
            source=config.source,
            timing=config.timing,
            on_phase=on_phase,
        )
        return await scheduler.run(plan)


async def run_kafka_benchmark(
    config: KafkaSenderConfig,
    plan: PacePlan,
    counters: BenchmarkCounters,
    *,
    on_phase: Callable[[PhaseSummary], None] | None = None,
    transport: KafkaTransport | None = None,
) -> BenchmarkResult:
    """Run *plan* against a Kafka topic with the interval-ticker dispatcher.

    Args:
        config: Kafka sender configuration.
        plan: The parsed pace plan.
        counters: Counters shared with the metrics exporter.
        on_phase: Optional callback invoked with each PhaseSummary.
        transport: Pre-built transport; built from *config* when omitted.

    Returns:
        The run's BenchmarkResult.
    """
    if transport is None:
        transport = KafkaTransport(
            config.brokers,
            config.topic,
            queue_messages=plan.max_messages_per_phase,
        )
    targeter = WorkloadTargeter(config.source, config.msg_size)
    async with transport:
        dispatcher = IntervalTickerDispatcher(transport, targeter)
        scheduler = PhaseScheduler(
            dispatcher,
            transport,
            counters,
            source=config.source,
            timing=config.timing,
            on_phase=on_phase,
        )
        return await scheduler.run(plan)


def run_sender(
    config: SenderConfig | KafkaSenderConfig,
    plan: PacePlan,
    *,
    log_level: int = logging.INFO,
    json_logs: bool = False,
    registry: CollectorRegistry | None = None,
    on_phase: Callable[[PhaseSummary], None] | None = None,
) -> BenchmarkResult:
    """Run a whole sender process: metrics endpoint, event loop and plan.

    Picks the dispatch strategy from the config type: a ``SenderConfig``
    drives an HTTP sink through the worker pool, a ``KafkaSenderConfig``
    drives a topic through the interval ticker.

    Args:
        config: Sender configuration.
        plan: The parsed pace plan.
        log_level: Logging level.
        json_logs: Log one JSON object per line.
        registry: Prometheus registry for the counters. Fresh when omitted.
        on_phase: Optional callback invoked with each PhaseSummary.

    Returns:
        The run's BenchmarkResult.

    Raises:
        ConfigurationError: If the metrics port cannot be bound.
        EngineError: If the run loop fails.
    """
    install_uvloop()
    setup_logging(
        level=log_level,
        json_format=json_logs,
        role="kafka-sender" if isinstance(config, KafkaSenderConfig) else "sender",
    )

    counters = BenchmarkCounters(registry)
    serve_metrics(config.metrics_port, counters.registry)

    with automatic_gc_disabled(config.disable_gc):
        if isinstance(config, KafkaSenderConfig):
            return asyncio.run(run_kafka_benchmark(config, plan, counters, on_phase=on_phase))
        return asyncio.run(run_http_benchmark(config, plan, counters, on_phase=on_phase))
