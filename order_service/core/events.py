"""
Integration events exchanged with other services over Kafka.

Field names on the wire are camelCase to match the payment service.
"""
from __future__ import annotations

import uuid
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from order_service.core.models import PaymentStatus


class OrderCreatedEvent(BaseModel):
    """Published once per created order; keyed by order id."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    order_id: uuid.UUID = Field(..., alias="orderId")
    user_id: str = Field(..., alias="userId")
    payment_amount: int = Field(..., alias="paymentAmount", ge=0)

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


class PaymentConfirmedEvent(BaseModel):
    """
    Payment status notification consumed from the payment service.

    Unrecognized status values decode to UNKNOWN instead of failing.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    order_id: uuid.UUID = Field(..., alias="orderId")
    status: PaymentStatus = Field(
        default=PaymentStatus.UNKNOWN,
        validation_alias=AliasChoices("status", "paymentStatus"),
    )

    @field_validator("status", mode="before")
    @classmethod
    def decode_status(cls, v: Any) -> PaymentStatus:
        return PaymentStatus.parse(v)
