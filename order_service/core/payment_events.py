"""
Reaction to payment status notifications.

A PAID notification moves the referenced order to PAID. Notifications for
orders that do not exist can never succeed, so they are routed to the
dead-letter topic instead of being redelivered.
"""
import time
from enum import Enum
from typing import Optional

import structlog
from pydantic import ValidationError

from order_service.core.events import PaymentConfirmedEvent
from order_service.core.exceptions import NonRetryableError, OrderNotFoundError
from order_service.core.models import OrderStatus, PaymentStatus
from order_service.core.order_service import OrderLifecycleService
from order_service.core.ports import DeadLetterPublisher
from order_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class ProcessingOutcome(str, Enum):
    """How an inbound payment message was settled."""

    PROCESSED = "processed"
    IGNORED = "ignored"
    DEAD_LETTERED = "dead_lettered"


class PaymentStatusConsumer:
    """
    Applies payment notifications to orders.

    Replaying a PAID notification rewrites the same status, so redelivery is
    harmless.
    """

    def __init__(
        self,
        order_service: OrderLifecycleService,
        dead_letters: DeadLetterPublisher,
    ):
        self.order_service = order_service
        self.dead_letters = dead_letters

    async def handle(self, event: PaymentConfirmedEvent) -> bool:
        """
        Apply one decoded notification.

        Args:
            event: Decoded payment notification

        Returns:
            bool: True if the order was moved to PAID, False for a no-op

        Raises:
            NonRetryableError: If the referenced order does not exist
        """
        if event.status != PaymentStatus.PAID:
            logger.debug(
                "payment_event_ignored",
                order_id=str(event.order_id),
                payment_status=event.status.value,
            )
            return False

        try:
            await self.order_service.change_status(event.order_id, OrderStatus.PAID)
        except OrderNotFoundError as e:
            raise NonRetryableError(e) from e

        logger.info("order_marked_paid", order_id=str(event.order_id))
        return True

    async def process(self, payload: bytes, key: Optional[bytes] = None) -> ProcessingOutcome:
        """
        Decode and apply a raw message, dead-lettering what cannot succeed.

        Any error other than NonRetryableError propagates so that the
        delivery loop can retry the message.

        Args:
            payload: Raw message value (JSON)
            key: Raw message key

        Returns:
            ProcessingOutcome: How the message was settled
        """
        start_time = time.time()
        try:
            try:
                event = PaymentConfirmedEvent.model_validate_json(payload)
            except ValidationError as e:
                raise NonRetryableError(e) from e

            changed = await self.handle(event)

        except NonRetryableError as e:
            logger.warning(
                "payment_event_dead_lettered",
                key=key.decode("utf-8", errors="replace") if key else None,
                error=str(e),
                error_type=type(e.cause).__name__,
            )
            self.dead_letters.publish(payload, key, e.cause)
            metrics.record_payment_event(
                ProcessingOutcome.DEAD_LETTERED.value, time.time() - start_time
            )
            return ProcessingOutcome.DEAD_LETTERED

        outcome = ProcessingOutcome.PROCESSED if changed else ProcessingOutcome.IGNORED
        metrics.record_payment_event(outcome.value, time.time() - start_time)
        return outcome
