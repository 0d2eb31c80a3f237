"""Control-signal protocol shared by the sender and the receiver.

Every unit on the wire is a :class:`ControlMessage`. Its ``type`` says whether
it is measured traffic (``WORKLOAD``) or a coordination signal:

- ``GC_SIGNAL`` asks the receiver to run a full garbage collection, so the
  sender can observe post-collection behaviour at a known point.
- ``END_SIGNAL`` tells the receiver the run is over.

Messages travel as CloudEvents in binary mode: the attributes live in
transport headers (``Ce-*`` for HTTP, ``ce_*`` for Kafka) and the payload is
the body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

from pacebench._internal.errors import ProtocolError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pacebench._internal.types import Headers, KafkaHeaders

CE_SPEC_VERSION = "1.0"
CE_CONTENT_TYPE = "text/plain"

# Id used when an inbound message has no parseable id.
MISSING_ID = -1


class MessageType(Enum):
    """Closed set of message types, plus an explicit arm for unknown tags."""

    WORKLOAD = "dev.pacebench.benchmark.continue"
    GC_SIGNAL = "dev.pacebench.benchmark.gc"
    END_SIGNAL = "dev.pacebench.benchmark.end"
    UNKNOWN = ""

    @classmethod
    def from_wire(cls, value: str | None) -> MessageType:
        """Map a wire type string to a MessageType.

        Unrecognised or missing values map to ``UNKNOWN`` instead of raising,
        so a receiver never drops a message because of its tag.
        """
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_control(self) -> bool:
        """Return True for GC and end signals."""
        return self in (MessageType.GC_SIGNAL, MessageType.END_SIGNAL)


@dataclass(frozen=True)
class ControlMessage:
    """A unit sent over the transport.

    Attributes:
        id: Workload messages carry the per-run sequence (0, 1, 2, ...).
            Control signals carry negative ids from their own sequence.
        type: The message type.
        source: Identifier of the run that produced the message.
        payload: Filler bytes. Empty for control signals.
        raw_type: The type string as seen on the wire. Only differs from
            ``type.value`` for ``UNKNOWN`` messages.
    """

    id: int
    type: MessageType
    source: str
    payload: bytes = b""
    raw_type: str = field(default="", compare=False)

    @property
    def wire_type(self) -> str:
        """Return the type string to put on the wire."""
        return self.raw_type or self.type.value

    def to_http_headers(self) -> Headers:
        """Encode the attributes as CloudEvents binary-mode HTTP headers."""
        return {
            "Ce-Id": str(self.id),
            "Ce-Type": self.wire_type,
            "Ce-Source": self.source,
            "Ce-Specversion": CE_SPEC_VERSION,
            "Content-Type": CE_CONTENT_TYPE,
        }

    def to_kafka_headers(self) -> KafkaHeaders:
        """Encode the attributes as CloudEvents Kafka record headers."""
        return [
            ("ce_id", str(self.id).encode()),
            ("ce_type", self.wire_type.encode()),
            ("ce_source", self.source.encode()),
            ("ce_specversion", CE_SPEC_VERSION.encode()),
            ("content-type", CE_CONTENT_TYPE.encode()),
        ]

    @classmethod
    def from_http_headers(cls, headers: Mapping[str, str], body: bytes = b"") -> ControlMessage:
        """Decode a message from CloudEvents binary-mode HTTP headers.

        Header lookup is case-insensitive when *headers* is (aiohttp's
        ``CIMultiDictProxy`` is). A missing or non-integer id decodes to
        ``MISSING_ID``; a missing type decodes to ``UNKNOWN``.
        """
        raw_type = headers.get("Ce-Type", "") or ""
        return cls(
            id=_parse_id(headers.get("Ce-Id")),
            type=MessageType.from_wire(raw_type),
            source=headers.get("Ce-Source", "") or "",
            payload=body,
            raw_type=raw_type,
        )


def _parse_id(value: str | None) -> int:
    if value is None:
        return MISSING_ID
    try:
        return int(value)
    except ValueError:
        return MISSING_ID


def gc_signal(message_id: int, source: str) -> ControlMessage:
    """Build a GC-trigger control message."""
    return ControlMessage(id=message_id, type=MessageType.GC_SIGNAL, source=source)


def end_signal(message_id: int, source: str) -> ControlMessage:
    """Build an end-of-run control message."""
    return ControlMessage(id=message_id, type=MessageType.END_SIGNAL, source=source)


# =============================================================================
# State machines
# =============================================================================


class SenderState(Enum):
    """Sender side: IDLE -> RUNNING -> DRAINING -> ENDED -> IDLE."""

    IDLE = auto()
    RUNNING = auto()
    DRAINING = auto()
    ENDED = auto()


class ReceiverState(Enum):
    """Receiver side: LISTENING -> TERMINATING."""

    LISTENING = auto()
    TERMINATING = auto()


_SENDER_TRANSITIONS: dict[SenderState, frozenset[SenderState]] = {
    SenderState.IDLE: frozenset({SenderState.RUNNING}),
    SenderState.RUNNING: frozenset({SenderState.DRAINING}),
    SenderState.DRAINING: frozenset({SenderState.ENDED}),
    SenderState.ENDED: frozenset({SenderState.IDLE}),
}


class SenderProtocol:
    """Tracks the sender state machine and numbers control signals.

    GC signals can be issued in any state and never change it. The end
    signal can be issued once, from ``DRAINING``.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self._state = SenderState.IDLE
        self._next_control_id = MISSING_ID
        self._end_sent = False

    @property
    def state(self) -> SenderState:
        """Return the current sender state."""
        return self._state

    @property
    def end_sent(self) -> bool:
        """Return True once the end signal of this run has been issued."""
        return self._end_sent

    def transition(self, target: SenderState) -> None:
        """Move to *target*.

        Raises:
            ProtocolError: If the transition is not allowed.
        """
        if target not in _SENDER_TRANSITIONS[self._state]:
            msg = f"illegal sender transition {self._state.name} -> {target.name}"
            raise ProtocolError(msg)
        if target is SenderState.RUNNING:
            self._end_sent = False
        self._state = target

    def _take_control_id(self) -> int:
        message_id = self._next_control_id
        self._next_control_id -= 1
        return message_id

    def make_gc_signal(self) -> ControlMessage:
        """Return the next GC signal. Does not change state."""
        return gc_signal(self._take_control_id(), self.source)

    def make_end_signal(self) -> ControlMessage:
        """Return the run's end signal and move to ``ENDED``.

        Raises:
            ProtocolError: If the end signal was already issued, or the
                sender is not draining.
        """
        if self._end_sent:
            msg = "end signal already sent for this run"
            raise ProtocolError(msg)
        self.transition(SenderState.ENDED)
        self._end_sent = True
        return end_signal(self._take_control_id(), self.source)

    def reset(self) -> None:
        """Abandon the current run and return to ``IDLE`` from any state.

        Control ids keep counting down, so signals of an abandoned run never
        share an id with those of the next one.
        """
        self._state = SenderState.IDLE
        self._end_sent = False
