# services/kitchen_display/kafka_subscriptions.py
from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from confluent_kafka import Consumer, KafkaError, KafkaException, Producer

from libs.kafka_common.config import ORDER_SNAPSHOTS_TOPIC, ORDER_UPDATES_TOPIC
from libs.kafka_common.events import OrderSnapshotEvent, OrderUpdateRequestedEvent
from libs.kafka_common.kafka_factory import create_consumer, create_producer
from libs.kafka_common.serdes_json import deserialize_event, serialize_event

from .subscriptions import ErrorCallback, OrderingHint, SnapshotCallback, StatusPredicate

logger = logging.getLogger(__name__)

ConsumerFactory = Callable[..., Consumer]


class SnapshotConsumerRunner:
    """
    One live query over the snapshot topic.

    Polls on its own thread and hands every matching snapshot to the event loop,
    so callbacks always run on the loop thread. A consumer error is reported
    once on the error channel and the thread ends.
    """

    def __init__(
        self,
        predicate: StatusPredicate,
        ordering: OrderingHint,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        loop: asyncio.AbstractEventLoop,
        group_id: str,
        topic: str = ORDER_SNAPSHOTS_TOPIC,
        consumer_factory: ConsumerFactory = create_consumer,
        poll_timeout_sec: float = 1.0,
    ) -> None:
        self.predicate = predicate
        self.ordering = ordering
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.loop = loop
        self.group_id = group_id
        self.topic = topic
        self.consumer_factory = consumer_factory
        self.poll_timeout_sec = poll_timeout_sec
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_until_error, daemon=True)
        self._thread.start()

    def unsubscribe(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=5)

    def _run_until_error(self) -> None:
        try:
            self._run()
        except Exception as e:
            self._dispatch(self.on_error, e)

    def _run(self) -> None:
        consumer = self.consumer_factory(group_id=self.group_id, auto_offset_reset="earliest")
        consumer.subscribe([self.topic])

        try:
            while not self._stop_event.is_set():
                msg = consumer.poll(self.poll_timeout_sec)
                if msg is None:
                    continue

                if msg.error():
                    # Topic not available yet - just wait, don't fail
                    if msg.error().code() == KafkaError.UNKNOWN_TOPIC_OR_PART:
                        continue
                    raise KafkaException(msg.error())

                try:
                    event = deserialize_event(msg.value())
                except ValueError as e:
                    logger.warning("Skipping unreadable message on %s: %s", msg.topic(), e)
                    continue

                if not isinstance(event, OrderSnapshotEvent) or event.status != self.predicate.value:
                    continue

                documents = [doc for doc in event.documents if self.predicate.matches(doc.data)]
                self._dispatch(self.on_snapshot, self.ordering.apply(documents))
        finally:
            consumer.close()

    def _dispatch(self, callback: Callable[[Any], None], arg: Any) -> None:
        if self._stop_event.is_set():
            return
        try:
            self.loop.call_soon_threadsafe(callback, arg)
        except RuntimeError:
            logger.warning("Event loop closed; dropping delivery for %s", self.predicate.value)


class KafkaOrderQueryService:
    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        group_prefix: str = "kitchen-display",
        topic: str = ORDER_SNAPSHOTS_TOPIC,
        consumer_factory: ConsumerFactory = create_consumer,
    ) -> None:
        self.loop = loop
        self.group_prefix = group_prefix
        self.topic = topic
        self.consumer_factory = consumer_factory

    def subscribe(
        self,
        predicate: StatusPredicate,
        ordering: OrderingHint,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SnapshotConsumerRunner:
        # Own group per subscription: every screen replays the topic to reach the current state.
        group_id = f"{self.group_prefix}-{predicate.value}-{uuid4().hex[:8]}"
        runner = SnapshotConsumerRunner(
            predicate,
            ordering,
            on_snapshot,
            on_error,
            loop=self.loop or asyncio.get_running_loop(),
            group_id=group_id,
            topic=self.topic,
            consumer_factory=self.consumer_factory,
        )
        runner.start()
        return runner


class KafkaPublishError(RuntimeError):
    """Base error when failing to publish to Kafka."""


class KafkaBrokersUnavailable(KafkaPublishError):
    """Raised when brokers are not available / connection issue."""


class KafkaTimeout(KafkaPublishError):
    """Raised when message could not be delivered within timeout."""


class ProducerQueueFull(KafkaPublishError):
    """Raised when local producer queue is full (BufferError)."""


def _as_publish_error(err: Exception) -> KafkaPublishError:
    if isinstance(err, BufferError):
        return ProducerQueueFull(str(err))
    return KafkaBrokersUnavailable(str(err))


class KafkaOrderUpdater:
    """The update operation over Kafka: publishes an update request keyed by order id."""

    def __init__(self, producer: Optional[Producer] = None, topic: str = ORDER_UPDATES_TOPIC, max_retries: int = 3, retry_backoff_ms: int = 200, flush_timeout_sec: float = 10.0):
        self.producer = producer or create_producer()
        self.topic = topic
        self.max_retries = max_retries
        self.retry_backoff_ms = retry_backoff_ms
        self.flush_timeout_sec = flush_timeout_sec

    def _send_once(self, key: str, value: bytes) -> None:
        self.producer.poll(0)
        self.producer.produce(topic=self.topic, key=key.encode("utf-8"), value=value)
        remaining = self.producer.flush(self.flush_timeout_sec)
        if remaining:
            raise KafkaTimeout(f"Flush timeout: {remaining} message(s) pending")

    def _produce(self, *, key: str, value: bytes) -> None:
        """Sends one message, backing off between attempts; a flush timeout is not retried."""
        for attempt in range(1, self.max_retries + 1):
            try:
                self._send_once(key, value)
                return
            except (BufferError, KafkaException) as e:
                logger.warning(
                    "Publishing %s to %s failed (attempt %d/%d): %s", key, self.topic, attempt, self.max_retries, e
                )
                if attempt == self.max_retries:
                    raise _as_publish_error(e) from e
                time.sleep(self.retry_backoff_ms * attempt / 1000.0)
        raise KafkaPublishError(f"Nothing published to {self.topic}: max_retries={self.max_retries}")

    def publish_update_requested(self, order_id: str, fields: Dict[str, Any]) -> OrderUpdateRequestedEvent:
        event = OrderUpdateRequestedEvent(order_id=order_id, fields=fields)
        self._produce(key=event.order_id, value=serialize_event(event))
        return event

    async def update(self, order_id: str, fields: Dict[str, Any]) -> None:
        await asyncio.to_thread(self.publish_update_requested, order_id, fields)
