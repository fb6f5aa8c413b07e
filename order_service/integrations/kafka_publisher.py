"""
Kafka producers for order notifications and dead-lettered payment events.
"""
import time
from typing import Any, Dict, Optional

import structlog
from confluent_kafka import KafkaException, Producer

from order_service.config import Settings, get_settings
from order_service.core.events import OrderCreatedEvent
from order_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


def build_producer(settings: Settings, client_suffix: str = "") -> Producer:
    """
    Create a confluent-kafka producer.

    Idempotence keeps retried sends from duplicating or reordering messages
    of one key inside a partition.
    """
    return Producer({
        "bootstrap.servers": settings.kafka_bootstrap_servers,
        "client.id": f"{settings.kafka_client_id}{client_suffix}",
        "enable.idempotence": True,
        "acks": "all",
        "linger.ms": 5,
        "retries": 5,
        "max.in.flight.requests.per.connection": 5,
    })


class KafkaOrderEventPublisher:
    """
    Publishes OrderCreated notifications, keyed by order id.

    Publishing is fire-and-forget: ``produce`` only enqueues the message and
    the delivery result is reported to a callback that logs it. Nothing is
    ever raised to the caller.
    """

    def __init__(
        self,
        producer: Optional[Producer] = None,
        topic: Optional[str] = None,
    ):
        """
        Initialize the publisher.

        Args:
            producer: Optional preconfigured producer
            topic: Topic name (uses config if not provided)
        """
        settings = get_settings()
        self.topic = topic or settings.order_created_topic
        self.producer = producer or build_producer(settings)

        logger.info("order_event_publisher_initialized", topic=self.topic)

    def publish_order_created(self, event: OrderCreatedEvent) -> None:
        """
        Enqueue an OrderCreated notification.

        Args:
            event: Notification to publish
        """
        order_id = str(event.order_id)
        try:
            self.producer.produce(
                topic=self.topic,
                key=order_id.encode("utf-8"),
                value=event.to_json(),
                on_delivery=self._delivery_callback,
            )
            # Serve delivery callbacks of earlier messages
            self.producer.poll(0)
        except (BufferError, KafkaException) as e:
            logger.error(
                "order_created_publish_failed",
                order_id=order_id,
                topic=self.topic,
                error=str(e),
            )
            metrics.record_order_event("failed")
            return

        metrics.record_order_event("enqueued")
        logger.debug("order_created_enqueued", order_id=order_id, topic=self.topic)

    @staticmethod
    def _delivery_callback(err: Any, msg: Any) -> None:
        """Callback for message delivery confirmation."""
        if err is not None:
            logger.error("order_created_delivery_failed", error=str(err))
            metrics.record_order_event("failed")
        else:
            logger.debug(
                "order_created_delivered",
                topic=msg.topic(),
                partition=msg.partition(),
                offset=msg.offset(),
            )
            metrics.record_order_event("delivered")

    def flush(self, timeout: float = 10.0) -> int:
        """Wait for all messages to be delivered."""
        remaining = self.producer.flush(timeout)
        if remaining > 0:
            logger.warning("order_created_flush_incomplete", remaining=remaining)
        return remaining

    def close(self) -> None:
        """Close producer and flush remaining messages."""
        self.flush()
        logger.info("order_event_publisher_closed")


class KafkaDeadLetterPublisher:
    """
    Sends unprocessable payment events to the dead-letter topic.

    The original payload and key are kept untouched; the failure is
    described in message headers.
    """

    def __init__(
        self,
        producer: Optional[Producer] = None,
        topic: Optional[str] = None,
        source_topic: Optional[str] = None,
    ):
        settings = get_settings()
        self.topic = topic or settings.payment_created_dlt_topic
        self.source_topic = source_topic or settings.payment_created_topic
        self.producer = producer or build_producer(settings, client_suffix="-dlt")

    def publish(self, payload: bytes, key: Optional[bytes], error: Exception) -> None:
        """
        Enqueue a payload on the dead-letter topic.

        Raises:
            BufferError: If the local producer queue is full
            KafkaException: If the message cannot be enqueued
        """
        self.producer.produce(
            topic=self.topic,
            key=key,
            value=payload,
            headers=self._headers(error),
            on_delivery=self._delivery_callback,
        )
        self.producer.poll(0)
        logger.warning("payment_event_sent_to_dlt", topic=self.topic, error=str(error))

    def _headers(self, error: Exception) -> Dict[str, bytes]:
        return {
            "dlt-original-topic": self.source_topic.encode("utf-8"),
            "dlt-exception-type": type(error).__name__.encode("utf-8"),
            "dlt-exception-message": str(error).encode("utf-8"),
            "dlt-timestamp": str(int(time.time() * 1000)).encode("utf-8"),
        }

    @staticmethod
    def _delivery_callback(err: Any, msg: Any) -> None:
        if err is not None:
            logger.error("dlt_delivery_failed", error=str(err))

    def flush(self, timeout: float = 10.0) -> int:
        return self.producer.flush(timeout)
