"""
Payment events background worker.

Consumes PAYMENT_CREATED, applies each message through PaymentStatusConsumer
and commits its offset once the message is settled. Messages of a partition
are handled one at a time, in order.
"""
import asyncio
import functools
import signal
from typing import Any, Optional

import structlog
from confluent_kafka import Consumer, KafkaError, KafkaException, TopicPartition
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from order_service.config import Settings, get_settings
from order_service.container import build_container
from order_service.core.payment_events import PaymentStatusConsumer, ProcessingOutcome
from order_service.core.ports import DeadLetterPublisher
from order_service.database.connection import close_db, init_db
from order_service.integrations.kafka_publisher import KafkaDeadLetterPublisher
from order_service.monitoring.logging import setup_logging
from order_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


def build_consumer(settings: Settings) -> Consumer:
    """Create a manually committing confluent-kafka consumer."""
    return Consumer({
        "bootstrap.servers": settings.kafka_bootstrap_servers,
        "group.id": settings.kafka_consumer_group,
        "client.id": f"{settings.kafka_client_id}-payments",
        "auto.offset.reset": "earliest",
        "enable.auto.commit": False,
        "isolation.level": "read_committed",
        "max.poll.interval.ms": 300000,
        "session.timeout.ms": 10000,
    })


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "payment_event_retry_scheduled",
        attempt=retry_state.attempt_number,
        error=str(error),
        error_type=type(error).__name__,
    )
    metrics.record_payment_event("retried")


class PaymentEventsWorker:
    """
    Kafka delivery loop around PaymentStatusConsumer.

    Failures that escape the consumer are retried with exponential backoff.
    When the attempts run out the message is dead-lettered so the partition
    keeps moving.
    """

    def __init__(
        self,
        handler: PaymentStatusConsumer,
        dead_letters: DeadLetterPublisher,
        consumer: Optional[Consumer] = None,
        topic: Optional[str] = None,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        poll_timeout: float = 1.0,
    ):
        """
        Initialize the worker.

        Args:
            handler: Applies decoded payment notifications
            dead_letters: Destination for messages that cannot be processed
            consumer: Optional preconfigured Kafka consumer
            topic: Topic to consume (uses config if not provided)
            max_attempts: Processing attempts per message (uses config if not provided)
            base_delay: Base backoff delay in seconds (uses config if not provided)
            poll_timeout: Poll timeout in seconds
        """
        settings = get_settings()
        self.handler = handler
        self.dead_letters = dead_letters
        self.consumer = consumer or build_consumer(settings)
        self.topic = topic or settings.payment_created_topic
        self.max_attempts = max_attempts or settings.payment_retry_max_attempts
        self.base_delay = (
            base_delay if base_delay is not None else settings.payment_retry_base_delay
        )
        self.poll_timeout = poll_timeout
        self.running = False

    async def handle_message(self, msg: Any) -> Optional[ProcessingOutcome]:
        """
        Settle one Kafka message.

        Returns:
            Optional[ProcessingOutcome]: How the message was settled, or None if
            it could not even be dead-lettered
        """
        payload: bytes = msg.value() or b""
        key: Optional[bytes] = msg.key()
        structlog.contextvars.bind_contextvars(
            topic=msg.topic(), partition=msg.partition(), offset=msg.offset()
        )

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(Exception),
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.base_delay, max=30),
                before_sleep=_log_retry,
                reraise=True,
            ):
                with attempt:
                    outcome = await self.handler.process(payload, key)
        except Exception as e:
            logger.error(
                "payment_event_retries_exhausted",
                attempts=self.max_attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
            try:
                self.dead_letters.publish(payload, key, e)
            except Exception as publish_error:
                logger.error(
                    "payment_event_dead_letter_failed",
                    error=str(publish_error),
                    error_type=type(publish_error).__name__,
                )
                metrics.record_payment_event("dead_letter_failed")
                return None
            metrics.record_payment_event(ProcessingOutcome.DEAD_LETTERED.value)
            return ProcessingOutcome.DEAD_LETTERED
        finally:
            structlog.contextvars.unbind_contextvars("topic", "partition", "offset")

        return outcome

    async def process_next(self) -> bool:
        """
        Poll for one message and settle it.

        Returns:
            bool: True if a message was settled and committed
        """
        loop = asyncio.get_running_loop()
        msg = await loop.run_in_executor(None, self.consumer.poll, self.poll_timeout)
        if msg is None:
            return False

        if msg.error():
            if msg.error().code() != KafkaError._PARTITION_EOF:
                logger.error("payment_consumer_error", error=str(msg.error()))
            return False

        outcome = await self.handle_message(msg)
        if outcome is None:
            # Unsettled: rewind so the message is delivered again
            try:
                self.consumer.seek(TopicPartition(msg.topic(), msg.partition(), msg.offset()))
            except KafkaException as e:
                logger.error("payment_offset_rewind_failed", error=str(e), offset=msg.offset())
            return False

        try:
            await loop.run_in_executor(
                None, functools.partial(self.consumer.commit, message=msg, asynchronous=False)
            )
        except KafkaException as e:
            # Redelivery of a settled message is harmless
            logger.error("payment_offset_commit_failed", error=str(e), offset=msg.offset())
            return False
        return True

    async def run(self) -> None:
        """Consume until stop() is called."""
        self.consumer.subscribe([self.topic])
        self.running = True
        logger.info("payment_worker_started", topic=self.topic)

        try:
            while self.running:
                await self.process_next()
        finally:
            self.close()

    def stop(self) -> None:
        self.running = False

    def close(self) -> None:
        """Close the consumer and flush pending dead letters."""
        self.consumer.close()
        self.dead_letters.flush()
        logger.info("payment_worker_stopped")


async def start_payment_worker() -> None:
    """
    Start the payment events worker.

    Runs continuously until SIGINT or SIGTERM.
    """
    setup_logging()
    settings = get_settings()
    logger.info("payment_worker_starting", topic=settings.payment_created_topic)

    if settings.order_store_backend == "database":
        await init_db()
    container = build_container(settings)
    dead_letters = KafkaDeadLetterPublisher()
    worker = PaymentEventsWorker(
        handler=PaymentStatusConsumer(container.order_service, dead_letters),
        dead_letters=dead_letters,
    )

    def signal_handler(sig: int, frame: Any) -> None:
        logger.info("payment_worker_shutdown_signal_received", signal=sig)
        worker.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await worker.run()
    except Exception as e:
        logger.error("payment_worker_error", error=str(e))
        raise
    finally:
        await container.close()
        await close_db()


def main() -> None:
    asyncio.run(start_payment_worker())


if __name__ == "__main__":
    main()
