"""CloudEvents-over-Kafka transport built on confluent-kafka."""

from __future__ import annotations

import asyncio
import contextlib
import functools
from typing import TYPE_CHECKING, Any

from confluent_kafka import KafkaException, Producer

from pacebench._internal.errors import TransportError
from pacebench._internal.logging import get_logger
from pacebench.transport.base import Transport

if TYPE_CHECKING:
    from collections.abc import Callable

    from pacebench.engine.protocol import ControlMessage

logger = get_logger("transport.kafka")

# librdkafka's own ceiling for queue.buffering.max.messages.
_MAX_QUEUE_MESSAGES = 2_147_483_647
_DEFAULT_QUEUE_MESSAGES = 100_000


def producer_config(
    brokers: list[str],
    queue_messages: int = _DEFAULT_QUEUE_MESSAGES,
) -> dict[str, Any]:
    """Build the librdkafka producer configuration.

    Args:
        brokers: Bootstrap servers.
        queue_messages: Size of the local send queue. Sized so that one whole
            phase fits in it.
    """
    return {
        "bootstrap.servers": ",".join(brokers),
        "partitioner": "random",
        "queue.buffering.max.messages": max(1, min(queue_messages, _MAX_QUEUE_MESSAGES)),
    }


class KafkaTransport(Transport):
    """Produces each message to a topic as a binary-mode CloudEvent.

    A record counts as sent once the broker acknowledges it. ``send``
    enqueues the record into the producer's local queue and then waits for
    its delivery report, so a record the broker rejects surfaces as a
    :class:`TransportError` rather than a success. Delivery reports are
    served by ``poll(0)`` after every produce and by a background poll loop
    while the transport is open.

    Attributes:
        topic: Destination topic.
        delivery_failures: Records the broker reported as not delivered.
    """

    name = "kafka"

    def __init__(
        self,
        brokers: list[str],
        topic: str,
        *,
        queue_messages: int = _DEFAULT_QUEUE_MESSAGES,
        flush_timeout: float = 30.0,
        delivery_timeout: float = 30.0,
        poll_interval: float = 0.01,
        producer_factory: Callable[[dict[str, Any]], Any] = Producer,
    ) -> None:
        """Initialize the transport.

        Args:
            brokers: Bootstrap servers.
            topic: Destination topic.
            queue_messages: Local queue size, see :func:`producer_config`.
            flush_timeout: Seconds to wait for outstanding records on close.
            delivery_timeout: Seconds ``send`` waits for a delivery report.
            poll_interval: Seconds between background ``poll(0)`` calls.
            producer_factory: Builds the producer from its config.
        """
        self.topic = topic
        self.delivery_failures = 0
        self._config = producer_config(brokers, queue_messages)
        self._flush_timeout = flush_timeout
        self._delivery_timeout = delivery_timeout
        self._poll_interval = poll_interval
        self._producer_factory = producer_factory
        self._producer: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._poller: asyncio.Task[None] | None = None

    async def open(self) -> None:
        """Create the producer and start serving delivery reports."""
        self._loop = asyncio.get_running_loop()
        self._producer = self._producer_factory(self._config)
        self._poller = asyncio.create_task(self._poll_forever(), name="kafka-poll")

    async def close(self) -> None:
        """Flush outstanding records and drop the producer.

        The flush runs in a worker thread so the event loop keeps running
        while librdkafka waits on the broker.
        """
        if self._producer is None:
            return
        if self._poller is not None:
            self._poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poller
            self._poller = None

        remaining = await asyncio.to_thread(self._producer.flush, self._flush_timeout)
        if remaining:
            logger.warning("%d records still queued after flush", remaining)
        if self.delivery_failures:
            logger.warning("%d records were not delivered", self.delivery_failures)
        self._producer = None

    async def _poll_forever(self) -> None:
        while True:
            self._producer.poll(0)
            await asyncio.sleep(self._poll_interval)

    def _on_delivery(self, future: asyncio.Future[None], err: object, _msg: object) -> None:
        # Runs on whichever thread serves poll() or flush()
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._settle, future, err)

    def _settle(self, future: asyncio.Future[None], err: object) -> None:
        if err is not None:
            self.delivery_failures += 1
            logger.debug("Delivery failed: %s", err)
        if future.done():
            return
        if err is None:
            future.set_result(None)
        else:
            future.set_exception(TransportError(f"delivery failed: {err}"))

    async def send(self, message: ControlMessage) -> int:
        """Produce *message* to the topic and wait for its delivery report.

        Returns:
            Always 0; Kafka has no per-request status.

        Raises:
            TransportError: If the local queue is full, the producer rejects
                the record, the broker reports it as not delivered, or no
                report arrives within the delivery timeout.
            RuntimeError: If the transport is used outside its context manager.
        """
        if self._producer is None or self._loop is None:
            msg = "KafkaTransport must be used as an async context manager"
            raise RuntimeError(msg)

        delivered: asyncio.Future[None] = self._loop.create_future()
        try:
            self._producer.produce(
                self.topic,
                value=message.payload,
                key=str(message.id).encode(),
                headers=message.to_kafka_headers(),
                on_delivery=functools.partial(self._on_delivery, delivered),
            )
        except (BufferError, KafkaException) as exc:
            msg = f"{type(exc).__name__}: {exc}"
            raise TransportError(msg) from exc
        finally:
            self._producer.poll(0)

        try:
            await asyncio.wait_for(delivered, timeout=self._delivery_timeout)
        except TimeoutError as exc:
            msg = f"no delivery report within {self._delivery_timeout}s"
            raise TransportError(msg) from exc
        return 0
