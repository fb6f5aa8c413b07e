"""
Order aggregate and related domain types.

The Order aggregate owns its line items by value. A line carries a snapshot of
the catalog item (name and unit price) taken when the line was resolved, so the
order total never changes behind the order's back when catalog prices move.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """
    Order lifecycle states.

    Any status may follow any other; no transition graph is enforced.
    """

    CREATED = "CREATED"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    RETURNED = "RETURNED"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional[OrderStatus]:
        """Case-insensitive lookup; returns None for anything unrecognized."""
        if not isinstance(value, str):
            return None
        return cls.__members__.get(value.strip().upper())


class PaymentStatus(str, Enum):
    """Payment states reported by the payment service."""

    CREATED = "CREATED"
    PAID = "PAID"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: object) -> PaymentStatus:
        """Decode a wire value, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper(), cls.UNKNOWN)
        return cls.UNKNOWN


@dataclass(frozen=True)
class Item:
    """Catalog item; price is in minor currency units."""

    id: uuid.UUID
    name: str
    price: int


@dataclass(frozen=True)
class LineRequest:
    """A requested (item, quantity) pair, before resolution."""

    item_id: uuid.UUID
    quantity: int


@dataclass
class LineItem:
    item: Item
    quantity: int
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def amount(self) -> int:
        return self.item.price * self.quantity


@dataclass
class Order:
    """
    Order aggregate root.

    ``status`` starts at CREATED and is only changed by the lifecycle service.
    ``lines`` may legitimately be empty after an update.
    """

    id: uuid.UUID
    user_id: str
    status: OrderStatus
    creation_date: date
    lines: List[LineItem] = field(default_factory=list)

    @classmethod
    def create(cls, user_id: str, lines: List[LineItem]) -> Order:
        """Start a new order for ``user_id`` dated today."""
        return cls(
            id=uuid.uuid4(),
            user_id=user_id,
            status=OrderStatus.CREATED,
            creation_date=date.today(),
            lines=list(lines),
        )

    def payment_amount(self) -> int:
        """Sum of price x quantity over the current lines."""
        return sum(line.amount for line in self.lines)

    def replace_lines(self, lines: List[LineItem]) -> None:
        self.lines = list(lines)


class UserSnapshot(BaseModel):
    """Read-only view of a user owned by the user service."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    user_id: str = Field(..., alias="userId")
    name: Optional[str] = None
    surname: Optional[str] = None
    birth_date: Optional[date] = Field(default=None, alias="birthDate")
    email: Optional[str] = None


@dataclass(frozen=True)
class OrderView:
    """An order enriched with its owner's data; ``user`` is None when unknown."""

    order: Order
    user: Optional[UserSnapshot] = None
