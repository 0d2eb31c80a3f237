"""End-to-end tests for the pacebench CLI."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from pacebench import __version__
from pacebench.cli.app import app

runner = CliRunner()

FAST_FLAGS = ["--warmup", "0", "--pause", "0", "--grace", "0", "--keep-gc"]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PACEBENCH_SINK", raising=False)
    monkeypatch.delenv("PACEBENCH_METRICS_PORT", raising=False)


# ---------------------------------------------------------------------------
# Tests: version and help
# ---------------------------------------------------------------------------


def test_version_flag():
    """--version prints version and exits 0."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_version_short_flag():
    """-V also prints version."""
    result = runner.invoke(app, ["-V"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("send", "kafka-send", "receive"):
        assert command in result.output


def test_send_help():
    """pacebench send --help shows the sender options."""
    result = runner.invoke(app, ["send", "--help"])
    assert result.exit_code == 0
    assert "--pace" in result.output
    assert "--sink" in result.output


# ---------------------------------------------------------------------------
# Tests: startup validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("pace", ["abc", "100:", "1:2:3", "0", ""])
def test_send_rejects_bad_pace(pace: str):
    """A malformed pace exits 1 before any traffic."""
    result = runner.invoke(app, ["send", "--pace", pace, "--sink", "http://127.0.0.1:1"])
    assert result.exit_code == 1


def test_send_requires_sink():
    result = runner.invoke(app, ["send", "--pace", "10:1"])
    assert result.exit_code == 1


def test_kafka_send_rejects_bad_pace():
    result = runner.invoke(
        app,
        ["kafka-send", "--pace", "x", "--bootstrap-server", "localhost:9092", "--topic", "t"],
    )
    assert result.exit_code == 1


def test_receive_requires_max_throughput():
    """Without --max-throughput-expected the receiver refuses to start."""
    result = runner.invoke(app, ["receive"])
    assert result.exit_code == 1


def test_receive_rejects_negative_max_throughput():
    result = runner.invoke(app, ["receive", "--max-throughput-expected", "-1"])
    assert result.exit_code == 1


def test_send_metrics_port_in_use(busy_port: int):
    """A taken metrics port is reported as an error before any traffic."""
    result = runner.invoke(
        app,
        [
            "send",
            "--pace",
            "10:1",
            "--sink",
            "http://127.0.0.1:1",
            "--metrics-port",
            str(busy_port),
            *FAST_FLAGS,
        ],
    )
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert f"metrics port {busy_port} unavailable" in result.output


def test_receive_metrics_port_in_use(busy_port: int, free_port: int):
    result = runner.invoke(
        app,
        [
            "receive",
            "--max-throughput-expected",
            "10",
            "--port",
            str(free_port),
            "--metrics-port",
            str(busy_port),
            "--grace",
            "0",
            "--keep-gc",
        ],
    )
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert f"metrics port {busy_port} unavailable" in result.output


# ---------------------------------------------------------------------------
# Tests: pacebench send
# ---------------------------------------------------------------------------


@pytest.mark.slow
def test_send_runs_plan(sync_sink_server, free_port):
    """pacebench send delivers the plan, one GC signal per phase and one end signal."""
    result = runner.invoke(
        app,
        [
            "send",
            "--pace",
            "10:1,20:1",
            "--sink",
            sync_sink_server.url,
            "--workers",
            "2",
            "--metrics-port",
            str(free_port),
            *FAST_FLAGS,
        ],
    )
    assert result.exit_code == 0, f"output: {result.output}"

    types = sync_sink_server.types()
    assert types.count("dev.pacebench.benchmark.continue") == 30
    assert types.count("dev.pacebench.benchmark.gc") == 2
    assert types[-1] == "dev.pacebench.benchmark.end"


@pytest.mark.slow
def test_send_sink_from_environment(
    sync_sink_server,
    free_port,
    monkeypatch: pytest.MonkeyPatch,
):
    """PACEBENCH_SINK wins over --sink."""
    monkeypatch.setenv("PACEBENCH_SINK", sync_sink_server.url)
    result = runner.invoke(
        app,
        [
            "send",
            "--pace",
            "5:1",
            "--sink",
            "http://127.0.0.1:1",
            "--metrics-port",
            str(free_port),
            *FAST_FLAGS,
        ],
    )
    assert result.exit_code == 0, f"output: {result.output}"
    assert len(sync_sink_server.events) == 5 + 2
