"""Core order lifecycle logic."""
from .authorization import AuthorizationPolicy
from .order_items import OrderItemResolver
from .order_service import OrderLifecycleService
from .payment_events import PaymentStatusConsumer, ProcessingOutcome

__all__ = [
    "AuthorizationPolicy",
    "OrderItemResolver",
    "OrderLifecycleService",
    "PaymentStatusConsumer",
    "ProcessingOutcome",
]
