"""aiohttp CloudEvents sink that feeds the event classifier."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from aiohttp import web

from pacebench._internal.logging import get_logger, setup_logging
from pacebench._internal.runtime import automatic_gc_disabled, install_uvloop
from pacebench.engine.protocol import ControlMessage
from pacebench.metrics.counters import BenchmarkCounters, serve_metrics
from pacebench.receiver.classifier import EventClassifier

if TYPE_CHECKING:
    from prometheus_client import CollectorRegistry

    from pacebench._internal.config import ReceiverConfig

logger = get_logger("receiver.server")

CLASSIFIER_KEY = web.AppKey("classifier", EventClassifier)


async def _handle_event(request: web.Request) -> web.Response:
    """Decode one inbound event, classify it and answer 200 with no body."""
    body = await request.read()
    message = ControlMessage.from_http_headers(request.headers, body)
    request.app[CLASSIFIER_KEY].handle(message)
    return web.Response(status=200)


def create_app(classifier: EventClassifier) -> web.Application:
    """Build the receiver application.

    Every path and method is routed to the event handler, so the sender's
    sink URL can point anywhere on the receiver.
    """
    app = web.Application()
    app[CLASSIFIER_KEY] = classifier
    app.router.add_route("*", "/{tail:.*}", _handle_event)
    return app


async def serve(
    config: ReceiverConfig,
    classifier: EventClassifier,
    *,
    host: str = "0.0.0.0",  # noqa: S104
) -> None:
    """Serve until the end signal arrives, then idle and shut down.

    Args:
        config: Receiver configuration.
        classifier: Classifier handling every inbound event.
        host: Interface to bind.
    """
    runner = web.AppRunner(create_app(classifier))
    await runner.setup()
    site = web.TCPSite(runner, host, config.port, backlog=config.backlog)
    await site.start()
    logger.info("Receiving events on %s:%d", host, config.port)

    try:
        await classifier.finished.wait()
        logger.info("Closing")
        if config.shutdown_grace_seconds > 0:
            await asyncio.sleep(config.shutdown_grace_seconds)
    finally:
        await runner.cleanup()


def run_receiver(
    config: ReceiverConfig,
    *,
    log_level: int = logging.INFO,
    json_logs: bool = False,
    registry: CollectorRegistry | None = None,
) -> int:
    """Run a whole receiver process until the sender's end signal.

    Args:
        config: Receiver configuration.
        log_level: Logging level.
        json_logs: Log one JSON object per line.
        registry: Prometheus registry for the counters. Fresh when omitted.

    Returns:
        The number of messages received.

    Raises:
        ConfigurationError: If the metrics port cannot be bound.
    """
    install_uvloop()
    setup_logging(level=log_level, json_format=json_logs, role="receiver")

    counters = BenchmarkCounters(registry)
    serve_metrics(config.metrics_port, counters.registry)

    logger.info("--- BENCHMARK ---")
    with automatic_gc_disabled(config.disable_gc):
        classifier = asyncio.run(_serve_with_new_classifier(config, counters))
    return sum(classifier.seen.values())


async def _serve_with_new_classifier(
    config: ReceiverConfig,
    counters: BenchmarkCounters,
) -> EventClassifier:
    # The classifier owns an asyncio.Event, so build it inside the running loop
    classifier = EventClassifier(counters)
    await serve(config, classifier)
    return classifier
