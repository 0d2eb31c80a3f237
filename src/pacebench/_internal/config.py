"""Configuration values for the sender and receiver processes.

Each process builds exactly one config object at startup and passes it to
the components that need it. Nothing reads configuration from module-level
state after that point.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from pacebench._internal.errors import ConfigurationError

DEFAULT_SOURCE = "pacebench-sender"
DEFAULT_METRICS_PORT = 2112
DEFAULT_RECEIVER_PORT = 8080


def _require_positive(value: float, name: str) -> None:
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigurationError(msg)


def _require_non_negative(value: float, name: str) -> None:
    if value < 0:
        msg = f"{name} must be non-negative, got {value}"
        raise ConfigurationError(msg)


def _require_port(value: int, name: str) -> None:
    if not 0 < value < 65536:
        msg = f"{name} must be a TCP port in 1..65535, got {value}"
        raise ConfigurationError(msg)


@dataclass(frozen=True)
class TimingConfig:
    """Sender timings shared by the HTTP and Kafka senders.

    Attributes:
        warmup_seconds: Pause before the first phase so the receiver and the
            metrics scrape can come up.
        phase_pause_seconds: Pause after each phase's GC signal.
        drain_timeout_seconds: How long to wait for in-flight sends after the
            last phase before emitting the end signal.
        shutdown_grace_seconds: Idle time after the end signal, letting
            trailing responses arrive before the process exits.
    """

    warmup_seconds: float = 30.0
    phase_pause_seconds: float = 1.0
    drain_timeout_seconds: float = 5.0
    shutdown_grace_seconds: float = 120.0

    def __post_init__(self) -> None:
        _require_non_negative(self.warmup_seconds, "warmup_seconds")
        _require_non_negative(self.phase_pause_seconds, "phase_pause_seconds")
        _require_non_negative(self.drain_timeout_seconds, "drain_timeout_seconds")
        _require_non_negative(self.shutdown_grace_seconds, "shutdown_grace_seconds")


@dataclass(frozen=True)
class SenderConfig:
    """Configuration of the HTTP (worker-pool) sender.

    Attributes:
        sink_url: URL receiving the CloudEvents POSTs.
        msg_size: Size in bytes of each workload payload.
        workers: Number of concurrent dispatch workers.
        source: Run identifier written to every message.
        metrics_port: Port of the Prometheus scrape endpoint.
        request_timeout: Total timeout of a single request, in seconds.
        disable_gc: Disable the cyclic garbage collector for the run so
            collections only happen between phases.
        timing: Warmup, pause, drain and grace timings.
    """

    sink_url: str
    msg_size: int = 100
    workers: int = 1
    source: str = DEFAULT_SOURCE
    metrics_port: int = DEFAULT_METRICS_PORT
    request_timeout: float = 30.0
    disable_gc: bool = True
    timing: TimingConfig = TimingConfig()

    def __post_init__(self) -> None:
        if not self.sink_url:
            msg = "sink not set"
            raise ConfigurationError(msg)
        _require_positive(self.msg_size, "msg_size")
        _require_positive(self.workers, "workers")
        _require_positive(self.request_timeout, "request_timeout")
        _require_port(self.metrics_port, "metrics_port")


@dataclass(frozen=True)
class KafkaSenderConfig:
    """Configuration of the Kafka (interval-ticker) sender.

    Attributes:
        bootstrap_servers: Comma-separated broker list.
        topic: Destination topic.
        msg_size: Size in bytes of each workload payload.
        source: Run identifier written to every message.
        metrics_port: Port of the Prometheus scrape endpoint.
        disable_gc: Disable the cyclic garbage collector for the run.
        timing: Warmup, pause, drain and grace timings.
    """

    bootstrap_servers: str
    topic: str
    msg_size: int = 100
    source: str = DEFAULT_SOURCE
    metrics_port: int = DEFAULT_METRICS_PORT
    disable_gc: bool = True
    timing: TimingConfig = TimingConfig()

    def __post_init__(self) -> None:
        if not self.bootstrap_servers:
            msg = "bootstrap servers not set"
            raise ConfigurationError(msg)
        if not self.topic:
            msg = "topic not set"
            raise ConfigurationError(msg)
        _require_positive(self.msg_size, "msg_size")
        _require_port(self.metrics_port, "metrics_port")

    @property
    def brokers(self) -> list[str]:
        """Return the bootstrap servers as a list."""
        return [b.strip() for b in self.bootstrap_servers.split(",") if b.strip()]


@dataclass(frozen=True)
class ReceiverConfig:
    """Configuration of the receiver.

    Attributes:
        max_throughput_expected: Highest request rate the receiver should be
            ready for. Sizes the listen backlog. Must be positive.
        port: Port the CloudEvents sink listens on.
        metrics_port: Port of the Prometheus scrape endpoint.
        shutdown_grace_seconds: Idle time after the end signal before the
            server stops.
        disable_gc: Disable the cyclic garbage collector so collections only
            happen on GC signals.
    """

    max_throughput_expected: int
    port: int = DEFAULT_RECEIVER_PORT
    metrics_port: int = DEFAULT_METRICS_PORT
    shutdown_grace_seconds: float = 120.0
    disable_gc: bool = True

    def __post_init__(self) -> None:
        if self.max_throughput_expected <= 0:
            msg = "max_throughput_expected must be > 0"
            raise ConfigurationError(msg)
        _require_port(self.port, "port")
        _require_port(self.metrics_port, "metrics_port")
        _require_non_negative(self.shutdown_grace_seconds, "shutdown_grace_seconds")

    @property
    def backlog(self) -> int:
        """Return the listen backlog sized from the expected throughput."""
        return max(128, self.max_throughput_expected)


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ConfigurationError(msg) from None


def load_sender_config(
    sink_url: str = "",
    **overrides: object,
) -> SenderConfig:
    """Build a SenderConfig, letting the environment override CLI values.

    Environment variables:
        PACEBENCH_SINK: Sink URL. Takes precedence over *sink_url*.
        PACEBENCH_METRICS_PORT: Metrics port.

    Args:
        sink_url: Sink URL from the command line.
        **overrides: Remaining SenderConfig fields.

    Returns:
        A validated SenderConfig.

    Raises:
        ConfigurationError: If a value is missing or invalid.
    """
    env_sink = os.environ.get("PACEBENCH_SINK", "")
    if env_sink:
        sink_url = env_sink

    metrics_port = _env_int("PACEBENCH_METRICS_PORT")
    if metrics_port is not None:
        overrides["metrics_port"] = metrics_port

    return SenderConfig(sink_url=sink_url, **overrides)  # type: ignore[arg-type]


def load_kafka_sender_config(
    bootstrap_servers: str,
    topic: str,
    **overrides: object,
) -> KafkaSenderConfig:
    """Build a KafkaSenderConfig, applying ``PACEBENCH_METRICS_PORT``.

    Raises:
        ConfigurationError: If a value is missing or invalid.
    """
    metrics_port = _env_int("PACEBENCH_METRICS_PORT")
    if metrics_port is not None:
        overrides["metrics_port"] = metrics_port
    return KafkaSenderConfig(
        bootstrap_servers=bootstrap_servers,
        topic=topic,
        **overrides,  # type: ignore[arg-type]
    )


def load_receiver_config(
    max_throughput_expected: int,
    **overrides: object,
) -> ReceiverConfig:
    """Build a ReceiverConfig, applying ``PACEBENCH_METRICS_PORT``.

    Raises:
        ConfigurationError: If a value is missing or invalid.
    """
    metrics_port = _env_int("PACEBENCH_METRICS_PORT")
    if metrics_port is not None:
        overrides["metrics_port"] = metrics_port
    return ReceiverConfig(
        max_throughput_expected=max_throughput_expected,
        **overrides,  # type: ignore[arg-type]
    )
