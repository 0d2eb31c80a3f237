"""CloudEvents-over-HTTP transport built on aiohttp."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp

from pacebench._internal.errors import TransportError
from pacebench.transport.base import Transport

if TYPE_CHECKING:
    from pacebench.engine.protocol import ControlMessage


class HttpTransport(Transport):
    """POSTs each message to a sink URL as a binary-mode CloudEvent.

    The message attributes travel in ``Ce-*`` headers and the payload is the
    request body. One keep-alive ``aiohttp.ClientSession`` is shared by all
    dispatch workers; its connector allows one connection per worker.

    Attributes:
        sink_url: Destination URL.
    """

    name = "http"

    def __init__(
        self,
        sink_url: str,
        *,
        connections: int = 1,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the transport.

        Args:
            sink_url: URL receiving the events.
            connections: Connection pool size. Normally the worker count.
            timeout: Total timeout of one request, in seconds.
        """
        self.sink_url = sink_url
        self._connections = max(1, connections)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def open(self) -> None:
        """Open the underlying aiohttp session."""
        connector = aiohttp.TCPConnector(limit=self._connections, force_close=False)
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=self._timeout,
        )

    async def close(self) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def send(self, message: ControlMessage) -> int:
        """POST *message* to the sink.

        Returns:
            The HTTP status code.

        Raises:
            TransportError: On connection errors, timeouts, or a status >= 400.
            RuntimeError: If the transport is used outside its context manager.
        """
        if self._session is None:
            msg = "HttpTransport must be used as an async context manager"
            raise RuntimeError(msg)

        try:
            async with self._session.post(
                self.sink_url,
                data=message.payload,
                headers=message.to_http_headers(),
            ) as resp:
                await resp.read()
                status = resp.status
        except (aiohttp.ClientError, TimeoutError) as exc:
            msg = f"{type(exc).__name__}: {exc}"
            raise TransportError(msg) from exc

        if status >= 400:
            msg = f"sink answered HTTP {status}"
            raise TransportError(msg)
        return status
