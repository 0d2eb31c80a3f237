"""Receiver-side classification of inbound benchmark messages."""

from __future__ import annotations

import asyncio
import gc
from collections import Counter
from typing import TYPE_CHECKING

from pacebench._internal.logging import get_logger
from pacebench.engine.protocol import MessageType, ReceiverState

if TYPE_CHECKING:
    from pacebench._internal.types import GcHook
    from pacebench.engine.protocol import ControlMessage
    from pacebench.metrics.counters import BenchmarkCounters

logger = get_logger("receiver.classifier")


def classify(message: ControlMessage) -> MessageType:
    """Return the effective type of *message*.

    Unknown tags are treated as workload so they still count toward
    throughput.
    """
    if message.type is MessageType.UNKNOWN:
        return MessageType.WORKLOAD
    return message.type


class EventClassifier:
    """Reacts to inbound messages. Strictly reactive, no scheduling.

    Every message increments ``received_total`` exactly once. A GC signal
    additionally runs one full collection before the message is
    acknowledged. The first end signal moves the receiver to
    ``TERMINATING`` and sets :attr:`finished`, which the run loop waits on.

    Attributes:
        finished: Set when the end signal arrives.
        gc_runs: Number of collections triggered by GC signals.
        seen: Messages handled, by effective type.
    """

    def __init__(
        self,
        counters: BenchmarkCounters,
        *,
        gc_hook: GcHook = gc.collect,
    ) -> None:
        self._counters = counters
        self._gc_hook = gc_hook
        self._state = ReceiverState.LISTENING
        self.finished = asyncio.Event()
        self.gc_runs = 0
        self.seen: Counter[MessageType] = Counter()

    @property
    def state(self) -> ReceiverState:
        """Return the receiver protocol state."""
        return self._state

    def handle(self, message: ControlMessage) -> MessageType:
        """Count *message* and run the action its type asks for.

        Never raises on an unrecognised tag.

        Returns:
            The effective type the message was handled as.
        """
        kind = classify(message)
        self._counters.received.inc()
        self.seen[kind] += 1

        if kind is MessageType.GC_SIGNAL:
            collected = self._gc_hook()
            self.gc_runs += 1
            logger.debug("GC signal %d: collected %s objects", message.id, collected)
        elif kind is MessageType.END_SIGNAL:
            if self._state is ReceiverState.LISTENING:
                self._state = ReceiverState.TERMINATING
                logger.info("End signal received from %s", message.source or "<unknown>")
                self.finished.set()
            else:
                logger.debug("Ignoring repeated end signal %d", message.id)
        elif message.type is MessageType.UNKNOWN:
            logger.debug("Counting message %d with unknown type %r", message.id, message.raw_type)

        return kind
