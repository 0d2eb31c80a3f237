"""Workload message factory with per-run sequence ids and filler payload."""

from __future__ import annotations

import random
import string

from pacebench.engine.protocol import ControlMessage, MessageType

_LETTERS = string.ascii_letters


def random_filler(size: int, rng: random.Random | None = None) -> bytes:
    """Return *size* random ASCII letters as bytes.

    Args:
        size: Number of bytes to generate.
        rng: Random source. Defaults to the module-level generator.
    """
    choices = (rng or random).choices(_LETTERS, k=size)
    return "".join(choices).encode("ascii")


class WorkloadTargeter:
    """Builds the workload messages of one benchmark run.

    The filler payload is generated once, when the targeter is created, and
    shared read-only by every message of the run. A fresh targeter per run
    varies the content between runs without paying for random generation on
    every send.

    Ids start at 0 and increase by one per message, in issue order.

    Attributes:
        source: Run identifier written into every message.
        payload: The shared filler bytes.
    """

    def __init__(
        self,
        source: str,
        msg_size: int,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self.source = source
        self.payload = random_filler(msg_size, rng)
        self._seq = 0

    @property
    def issued(self) -> int:
        """Return how many workload messages have been built so far."""
        return self._seq

    def next_message(self) -> ControlMessage:
        """Return the next workload message and advance the sequence."""
        message = ControlMessage(
            id=self._seq,
            type=MessageType.WORKLOAD,
            source=self.source,
            payload=self.payload,
        )
        self._seq += 1
        return message
