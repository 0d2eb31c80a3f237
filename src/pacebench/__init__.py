"""pacebench: pace-driven throughput benchmarks for event sinks and topics."""

from __future__ import annotations

from pacebench.engine.protocol import ControlMessage, MessageType
from pacebench.pace import PacePlan, PaceSpec, parse_pace
from pacebench.receiver.classifier import EventClassifier, classify

__version__ = "0.1.0"

__all__ = [
    "ControlMessage",
    "EventClassifier",
    "MessageType",
    "PacePlan",
    "PaceSpec",
    "classify",
    "parse_pace",
]
