"""Rich rendering shared by the CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from pacebench.metrics.models import BenchmarkResult
    from pacebench.pace.plan import PacePlan

console = Console(stderr=True)


def print_plan(title: str, target: str, plan: PacePlan) -> None:
    """Print the run header: target and the phases about to run."""
    lines = [
        f"[bold]Target:[/bold]   {target}",
        f"[bold]Duration:[/bold] {plan.total_duration_seconds}s",
    ]
    lines += [f"[bold]Phase {i + 1}:[/bold]  {p.describe()}" for i, p in enumerate(plan)]
    console.print(Panel("\n".join(lines), title=title, border_style="cyan"))


def print_summary(result: BenchmarkResult) -> None:
    """Print the per-phase breakdown and the run totals."""
    table = Table(
        title="Phases",
        show_header=True,
        header_style="bold cyan",
        expand=True,
    )
    table.add_column("Phase", justify="right")
    table.add_column("Target rps", justify="right")
    table.add_column("Achieved rps", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Acked", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("p50", justify="right")
    table.add_column("p95", justify="right")
    table.add_column("p99", justify="right")

    for phase in result.phases:
        table.add_row(
            str(phase.index + 1),
            str(phase.target_rate),
            f"{phase.achieved_rate:.1f}",
            str(phase.attempts),
            str(phase.acknowledged),
            str(phase.errors),
            f"{phase.latency.p50:.1f}ms",
            f"{phase.latency.p95:.1f}ms",
            f"{phase.latency.p99:.1f}ms",
        )
    console.print(table)

    totals = Table(
        title="Benchmark Complete",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    totals.add_column("Metric", style="bold")
    totals.add_column("Value", justify="right")
    totals.add_row("Source", result.source)
    totals.add_row("Duration", f"{result.duration_seconds:.1f}s")
    totals.add_row("Acknowledged", str(result.total_acknowledged))
    totals.add_row("Late (drained)", str(result.late_acknowledged))
    totals.add_row("Errors", str(result.total_errors))
    totals.add_row("p95 Latency", f"{result.latency.p95:.1f}ms")
    totals.add_row("GC signals", str(result.gc_signals_sent))
    totals.add_row("End signal", "sent" if result.end_signal_sent else "[red]failed[/red]")
    console.print(totals)
