"""Tests for configuration loading."""

from __future__ import annotations

import pytest

from pacebench._internal.config import (
    KafkaSenderConfig,
    ReceiverConfig,
    SenderConfig,
    TimingConfig,
    load_kafka_sender_config,
    load_receiver_config,
    load_sender_config,
)
from pacebench._internal.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PACEBENCH_SINK", raising=False)
    monkeypatch.delenv("PACEBENCH_METRICS_PORT", raising=False)


class TestTimingConfig:
    def test_defaults(self):
        """Defaults match the production timings."""
        timing = TimingConfig()
        assert timing.warmup_seconds == 30.0
        assert timing.phase_pause_seconds == 1.0
        assert timing.shutdown_grace_seconds == 120.0

    def test_rejects_negative(self):
        with pytest.raises(ConfigurationError, match="warmup_seconds"):
            TimingConfig(warmup_seconds=-1)


class TestSenderConfig:
    def test_defaults(self):
        config = SenderConfig(sink_url="http://sink")
        assert config.msg_size == 100
        assert config.workers == 1
        assert config.metrics_port == 2112
        assert config.disable_gc

    def test_frozen(self):
        config = SenderConfig(sink_url="http://sink")
        with pytest.raises(AttributeError):
            config.sink_url = "http://other"  # type: ignore[misc]

    def test_sink_required(self):
        with pytest.raises(ConfigurationError, match="sink not set"):
            SenderConfig(sink_url="")

    @pytest.mark.parametrize("field", ["msg_size", "workers"])
    def test_rejects_non_positive(self, field: str):
        with pytest.raises(ConfigurationError, match=field):
            SenderConfig(sink_url="http://sink", **{field: 0})

    def test_rejects_bad_port(self):
        with pytest.raises(ConfigurationError, match="TCP port"):
            SenderConfig(sink_url="http://sink", metrics_port=70000)


class TestLoadSenderConfig:
    def test_cli_value(self):
        assert load_sender_config("http://cli").sink_url == "http://cli"

    def test_env_sink_overrides_cli(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PACEBENCH_SINK", "http://env")
        assert load_sender_config("http://cli").sink_url == "http://env"

    def test_env_sink_alone(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PACEBENCH_SINK", "http://env")
        assert load_sender_config().sink_url == "http://env"

    def test_missing_sink(self):
        with pytest.raises(ConfigurationError, match="sink not set"):
            load_sender_config("")

    def test_env_metrics_port(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PACEBENCH_METRICS_PORT", "9100")
        assert load_sender_config("http://cli", metrics_port=2112).metrics_port == 9100

    def test_env_metrics_port_invalid(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PACEBENCH_METRICS_PORT", "abc")
        with pytest.raises(ConfigurationError, match="must be an integer"):
            load_sender_config("http://cli")

    def test_overrides(self):
        config = load_sender_config("http://cli", workers=8, msg_size=1024)
        assert config.workers == 8
        assert config.msg_size == 1024


class TestKafkaSenderConfig:
    def test_brokers_split(self):
        config = KafkaSenderConfig(bootstrap_servers="a:9092, b:9092,", topic="t")
        assert config.brokers == ["a:9092", "b:9092"]

    @pytest.mark.parametrize(("servers", "topic"), [("", "t"), ("a:9092", "")])
    def test_required_fields(self, servers: str, topic: str):
        with pytest.raises(ConfigurationError, match="not set"):
            KafkaSenderConfig(bootstrap_servers=servers, topic=topic)

    def test_loader(self):
        config = load_kafka_sender_config("a:9092", "t", msg_size=10)
        assert config.topic == "t"
        assert config.msg_size == 10


class TestReceiverConfig:
    @pytest.mark.parametrize("value", [0, -5])
    def test_max_throughput_must_be_positive(self, value: int):
        with pytest.raises(ConfigurationError, match="max_throughput_expected must be > 0"):
            ReceiverConfig(max_throughput_expected=value)

    def test_backlog(self):
        assert ReceiverConfig(max_throughput_expected=10).backlog == 128
        assert ReceiverConfig(max_throughput_expected=5000).backlog == 5000

    def test_loader_applies_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PACEBENCH_METRICS_PORT", "9200")
        config = load_receiver_config(100, port=9000)
        assert config.metrics_port == 9200
        assert config.port == 9000
