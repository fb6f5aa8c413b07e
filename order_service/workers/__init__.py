"""Background workers."""
from .payment_consumer import PaymentEventsWorker

__all__ = ["PaymentEventsWorker"]
