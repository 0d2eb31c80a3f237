"""Prometheus counters shared between the harness and the metrics exporter."""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    start_http_server,
)

from pacebench._internal.errors import ConfigurationError
from pacebench._internal.logging import get_logger

logger = get_logger("metrics.counters")


def build_registry() -> CollectorRegistry:
    """Return a fresh registry with the process, platform and GC collectors.

    Each sender or receiver run gets its own registry, so running several
    commands in one interpreter never registers a counter twice.
    """
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)
    return registry


class BenchmarkCounters:
    """The two monotonic counters of a benchmark process.

    ``sent_total`` is incremented by the sender for every acknowledged
    workload message. ``received_total`` is incremented by the receiver for
    every inbound message. ``prometheus_client`` counters are safe to
    increment concurrently, so no extra locking is needed.

    Args:
        registry: Registry to register the counters on. A fresh one from
            :func:`build_registry` when omitted.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        if registry is None:
            registry = build_registry()
        self.registry = registry
        self.sent = Counter(
            "sent",
            "The total number of events sent and acknowledged",
            registry=registry,
        )
        self.received = Counter(
            "received",
            "The total number of events received",
            registry=registry,
        )

    @property
    def sent_total(self) -> int:
        """Return the current value of ``sent_total``."""
        return int(self.registry.get_sample_value("sent_total") or 0)

    @property
    def received_total(self) -> int:
        """Return the current value of ``received_total``."""
        return int(self.registry.get_sample_value("received_total") or 0)


def serve_metrics(port: int, registry: CollectorRegistry) -> None:
    """Expose *registry* on ``http://0.0.0.0:<port>/metrics`` from a daemon thread.

    Args:
        port: TCP port of the scrape endpoint.
        registry: Registry to expose.

    Raises:
        ConfigurationError: If the port cannot be bound.
    """
    try:
        start_http_server(port, registry=registry)
    except OSError as exc:
        msg = f"metrics port {port} unavailable: {exc}"
        raise ConfigurationError(msg) from exc
    logger.info("Serving metrics on :%d/metrics", port)
