"""``pacebench send`` and ``pacebench kafka-send``: run a pace plan."""

from __future__ import annotations

import logging

import typer
from rich.markup import escape

from pacebench._internal.config import (
    TimingConfig,
    load_kafka_sender_config,
    load_sender_config,
)
from pacebench._internal.errors import ConfigurationError, PaceBenchError
from pacebench.cli._display import console, print_plan, print_summary
from pacebench.engine.runner import run_sender
from pacebench.pace.parser import parse_pace

_PACE_HELP = (
    "Pace array, comma separated. Format rps[:duration=10s]. "
    "Example: 100,200:4,100:1,500:60"
)


def _fail(exc: Exception) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    return typer.Exit(code=1)


def send_cmd(
    pace: str = typer.Option(..., "--pace", "-p", help=_PACE_HELP),
    sink: str = typer.Option(
        "",
        "--sink",
        "-s",
        help="Sink URL for the events. PACEBENCH_SINK overrides it.",
    ),
    msg_size: int = typer.Option(
        100,
        "--msg-size",
        help="Payload size in bytes. Random letters, regenerated every run.",
    ),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of dispatch workers."),
    metrics_port: int = typer.Option(2112, "--metrics-port", help="Prometheus metrics port."),
    warmup: float = typer.Option(30.0, "--warmup", help="Seconds to wait before the first phase."),
    pause: float = typer.Option(1.0, "--pause", help="Seconds to pause after each phase."),
    grace: float = typer.Option(120.0, "--grace", help="Seconds to idle after the end signal."),
    timeout: float = typer.Option(30.0, "--timeout", help="Request timeout in seconds."),
    keep_gc: bool = typer.Option(
        False,
        "--keep-gc",
        help="Leave automatic garbage collection on during the run.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging."),
    log_json: bool = typer.Option(False, "--log-json", help="Log one JSON object per line."),
) -> None:
    """Send CloudEvents over HTTP at the rates of the pace plan."""
    try:
        plan = parse_pace(pace)
        config = load_sender_config(
            sink,
            msg_size=msg_size,
            workers=workers,
            metrics_port=metrics_port,
            request_timeout=timeout,
            disable_gc=not keep_gc,
            timing=TimingConfig(
                warmup_seconds=warmup,
                phase_pause_seconds=pause,
                shutdown_grace_seconds=grace,
            ),
        )
    except PaceBenchError as exc:
        raise _fail(exc) from exc

    print_plan("pacebench send", config.sink_url, plan)
    try:
        result = run_sender(
            config,
            plan,
            log_level=logging.DEBUG if verbose else logging.INFO,
            json_logs=log_json,
        )
    except ConfigurationError as exc:
        raise _fail(exc) from exc
    except PaceBenchError as exc:
        console.print(f"[red]Benchmark failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    print_summary(result)


def kafka_send_cmd(
    pace: str = typer.Option(..., "--pace", "-p", help=_PACE_HELP),
    bootstrap_server: str = typer.Option(
        ...,
        "--bootstrap-server",
        "-b",
        help="Kafka bootstrap servers, comma separated.",
    ),
    topic: str = typer.Option(..., "--topic", "-t", help="Destination topic."),
    msg_size: int = typer.Option(
        100,
        "--msg-size",
        help="Payload size in bytes. Random letters, regenerated every run.",
    ),
    metrics_port: int = typer.Option(2112, "--metrics-port", help="Prometheus metrics port."),
    warmup: float = typer.Option(0.0, "--warmup", help="Seconds to wait before the first phase."),
    pause: float = typer.Option(1.0, "--pause", help="Seconds to pause after each phase."),
    grace: float = typer.Option(0.0, "--grace", help="Seconds to idle after the end signal."),
    keep_gc: bool = typer.Option(
        False,
        "--keep-gc",
        help="Leave automatic garbage collection on during the run.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging."),
    log_json: bool = typer.Option(False, "--log-json", help="Log one JSON object per line."),
) -> None:
    """Produce CloudEvents to a Kafka topic at the rates of the pace plan."""
    try:
        plan = parse_pace(pace)
        config = load_kafka_sender_config(
            bootstrap_server,
            topic,
            msg_size=msg_size,
            metrics_port=metrics_port,
            disable_gc=not keep_gc,
            timing=TimingConfig(
                warmup_seconds=warmup,
                phase_pause_seconds=pause,
                shutdown_grace_seconds=grace,
            ),
        )
    except PaceBenchError as exc:
        raise _fail(exc) from exc

    print_plan("pacebench kafka-send", f"{config.bootstrap_servers}/{config.topic}", plan)
    try:
        result = run_sender(
            config,
            plan,
            log_level=logging.DEBUG if verbose else logging.INFO,
            json_logs=log_json,
        )
    except ConfigurationError as exc:
        raise _fail(exc) from exc
    except PaceBenchError as exc:
        console.print(f"[red]Benchmark failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    print_summary(result)
