"""Transport interface and the per-send result record."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Self

    from pacebench.engine.protocol import ControlMessage


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one send, reported on the dispatcher's completion stream.

    Attributes:
        seq: Id of the message that was sent.
        timestamp: Monotonic time when the send started.
        latency_ms: Time until the transport answered, in milliseconds.
        status_code: Transport status (HTTP status; 0 when the send failed
            before a response).
        error: Error description if the send failed, None otherwise.
    """

    seq: int
    timestamp: float
    latency_ms: float
    status_code: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True if the send was acknowledged."""
        return self.error is None


class Transport(ABC):
    """Sends :class:`ControlMessage` objects to the system under test.

    Transports are async context managers: connections are opened on enter
    and flushed/closed on exit. Retries, pooling and partitioning are left
    to the underlying client library.
    """

    name: str = "transport"

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.close()

    async def open(self) -> None:  # noqa: B027
        """Open the underlying client. No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Flush and close the underlying client. No-op by default."""

    @abstractmethod
    async def send(self, message: ControlMessage) -> int:
        """Send one message.

        Args:
            message: The message to send.

        Returns:
            A status code (the HTTP status, or 0 for transports without one).

        Raises:
            TransportError: If the message could not be sent.
        """
