"""Exceptions raised by the order lifecycle core."""
from typing import Any


class OrderServiceError(Exception):
    """Base exception for order service errors."""

    pass


class NotFoundError(OrderServiceError):
    """Raised when an item or order required by an operation does not exist."""

    pass


class OrderNotFoundError(NotFoundError):
    """Raised when an order does not exist."""

    def __init__(self, order_id: Any):
        super().__init__(f"Order with id {order_id} not found")
        self.order_id = order_id


class ItemNotFoundError(NotFoundError):
    """Raised when a catalog item does not exist."""

    def __init__(self, item_id: Any):
        super().__init__(f"Item with id {item_id} not found")
        self.item_id = item_id


class AccessDeniedError(OrderServiceError):
    """
    Raised when a principal is not allowed to perform an operation.

    Never distinguishes "forbidden" from "not found".
    """

    pass


class NonRetryableError(OrderServiceError):
    """Raised by event handlers when redelivering the message cannot succeed."""

    def __init__(self, cause: Exception):
        super().__init__(str(cause))
        self.cause = cause
