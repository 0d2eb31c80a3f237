"""``pacebench receive``: count events until the sender's end signal."""

from __future__ import annotations

import logging

import typer
from rich.markup import escape

from pacebench._internal.config import load_receiver_config
from pacebench._internal.errors import PaceBenchError
from pacebench.cli._display import console
from pacebench.receiver.server import run_receiver


def receive_cmd(
    max_throughput_expected: int = typer.Option(
        0,
        "--max-throughput-expected",
        help="Highest expected rate in rps. Must be > 0; sizes the listen backlog.",
    ),
    port: int = typer.Option(8080, "--port", help="Port to receive events on."),
    metrics_port: int = typer.Option(2112, "--metrics-port", help="Prometheus metrics port."),
    grace: float = typer.Option(120.0, "--grace", help="Seconds to idle after the end signal."),
    keep_gc: bool = typer.Option(
        False,
        "--keep-gc",
        help="Leave automatic garbage collection on during the run.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging."),
    log_json: bool = typer.Option(False, "--log-json", help="Log one JSON object per line."),
) -> None:
    """Receive CloudEvents, collecting on GC signals, until the end signal."""
    try:
        config = load_receiver_config(
            max_throughput_expected,
            port=port,
            metrics_port=metrics_port,
            shutdown_grace_seconds=grace,
            disable_gc=not keep_gc,
        )
    except PaceBenchError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    try:
        received = run_receiver(
            config,
            log_level=logging.DEBUG if verbose else logging.INFO,
            json_logs=log_json,
        )
    except PaceBenchError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    console.print(f"[green]Received {received} events.[/green]")
