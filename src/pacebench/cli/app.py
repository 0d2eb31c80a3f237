"""Main Typer application, entry point for the ``pacebench`` CLI."""

from __future__ import annotations

import typer

from pacebench import __version__
from pacebench.cli.receive import receive_cmd
from pacebench.cli.send import kafka_send_cmd, send_cmd

app = typer.Typer(
    name="pacebench",
    help="Drive a paced event load at a sink and count it on the other side.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("send", help="Send CloudEvents over HTTP following a pace plan.")(send_cmd)
app.command("kafka-send", help="Produce CloudEvents to a Kafka topic following a pace plan.")(
    kafka_send_cmd
)
app.command("receive", help="Count incoming CloudEvents until the end signal.")(receive_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"pacebench {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """pacebench: paced throughput benchmarks."""
