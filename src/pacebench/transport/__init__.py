"""Transports carrying benchmark messages to the system under test."""

from __future__ import annotations

from pacebench.transport.base import DispatchResult, Transport
from pacebench.transport.http import HttpTransport

__all__ = [
    "DispatchResult",
    "HttpTransport",
    "Transport",
]
