"""Shared test fixtures for the pacebench test suite."""

from __future__ import annotations

import asyncio
import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web
from prometheus_client import CollectorRegistry

from pacebench._internal.errors import TransportError
from pacebench.metrics.counters import BenchmarkCounters
from pacebench.transport.base import Transport

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from pacebench.engine.protocol import ControlMessage


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


@pytest.fixture(autouse=True)
def _reset_pacebench_logger() -> Iterator[None]:
    """Drop handlers bound to a previous test's (possibly closed) stderr."""
    logger = logging.getLogger("pacebench")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    yield


# =============================================================================
# Network utilities
# =============================================================================


def get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def free_port() -> int:
    return get_free_port()


@pytest.fixture
def busy_port() -> Iterator[int]:
    """A port some other socket is already listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("0.0.0.0", 0))
        s.listen()
        yield s.getsockname()[1]


# =============================================================================
# Recording sink
# =============================================================================


@dataclass
class RecordedEvent:
    """One request seen by the recording sink."""

    path: str
    headers: dict[str, str]
    body: bytes


@dataclass
class RecordingSink:
    """Base URL of a running sink plus everything it received."""

    url: str
    events: list[RecordedEvent] = field(default_factory=list)

    def types(self) -> list[str]:
        return [e.headers.get("Ce-Type", "") for e in self.events]


def _create_sink_app(events: list[RecordedEvent]) -> web.Application:
    """Build a sink that records every request.

    ``/error?status=503`` answers with the given status, ``/delay?delay=0.2``
    answers after a pause. Everything else answers 200 with no body.
    """

    async def _record(request: web.Request) -> web.Response:
        body = await request.read()
        events.append(RecordedEvent(request.path, dict(request.headers), body))
        return web.Response(status=200)

    async def _error(request: web.Request) -> web.Response:
        await request.read()
        return web.Response(status=int(request.query.get("status", "500")))

    async def _delay(request: web.Request) -> web.Response:
        await request.read()
        await asyncio.sleep(float(request.query.get("delay", "0.1")))
        return web.Response(status=200)

    app = web.Application()
    app.router.add_route("*", "/error", _error)
    app.router.add_route("*", "/delay", _delay)
    app.router.add_route("*", "/{tail:.*}", _record)
    return app


@pytest.fixture
async def sink_server() -> AsyncIterator[RecordingSink]:
    """Aiohttp recording sink on a free localhost port."""
    sink = RecordingSink(url="")
    runner = web.AppRunner(_create_sink_app(sink.events))
    await runner.setup()
    port = get_free_port()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    sink.url = f"http://127.0.0.1:{port}"
    yield sink
    await runner.cleanup()


# =============================================================================
# In-memory doubles
# =============================================================================


class FakeTransport(Transport):
    """Transport that records messages in memory.

    Args:
        fail_types: Message types whose sends raise ``TransportError``.
        delay: Seconds each send takes.
    """

    name = "fake"

    def __init__(self, *, fail_types: tuple[object, ...] = (), delay: float = 0.0) -> None:
        self.sent: list[ControlMessage] = []
        self.fail_types = fail_types
        self.delay = delay
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def send(self, message: ControlMessage) -> int:
        if self.delay:
            await asyncio.sleep(self.delay)
        if message.type in self.fail_types:
            msg = f"refused {message.type.name}"
            raise TransportError(msg)
        self.sent.append(message)
        return 200


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def counters() -> BenchmarkCounters:
    """Counters on a private registry, without the process collectors."""
    return BenchmarkCounters(CollectorRegistry())


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    """Return the FakeTransport class, for tests that need custom behaviour."""
    return FakeTransport


# =============================================================================
# Sync fixtures for CLI tests
# =============================================================================


@pytest.fixture
def sync_sink_server() -> Iterator[RecordingSink]:
    """Recording sink running in a background thread for sync tests.

    Useful for CLI tests where the command owns the event loop and blocks
    the main thread.
    """
    port = get_free_port()
    sink = RecordingSink(url=f"http://127.0.0.1:{port}")
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_sink_app(sink.events))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield sink

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)
