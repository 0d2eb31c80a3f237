"""Receiver side of the benchmark: event classification and the HTTP sink."""

from __future__ import annotations

from pacebench.receiver.classifier import EventClassifier, classify

__all__ = [
    "EventClassifier",
    "classify",
]
