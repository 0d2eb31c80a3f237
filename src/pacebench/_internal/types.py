"""Shared type aliases for pacebench."""

from __future__ import annotations

from collections.abc import Callable

# Wire headers, as sent by the HTTP transport.
Headers = dict[str, str]

# Kafka record headers: list of (key, value) pairs.
KafkaHeaders = list[tuple[str, bytes]]

# Forced garbage collection hook. Returns the number of collected objects.
GcHook = Callable[[], int]
