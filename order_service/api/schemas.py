"""
Pydantic schemas for API request/response models.

JSON field names are camelCase; responses omit null fields.
"""
from datetime import date
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from order_service.core.models import LineItem, LineRequest, OrderStatus, OrderView, UserSnapshot

T = TypeVar("T")


class OrderItemRequest(BaseModel):
    """One requested line."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: UUID = Field(..., alias="itemId", description="Catalog item identifier")
    quantity: int = Field(..., gt=0, description="Number of units")

    def to_line_request(self) -> LineRequest:
        return LineRequest(item_id=self.item_id, quantity=self.quantity)


class OrderCreateRequest(BaseModel):
    """Request schema for creating an order."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "userId": "user-42",
                    "orderItems": [
                        {"itemId": "5b1c6b0e-2a7e-4d55-9a57-4a3b4bb0b0a1", "quantity": 2}
                    ],
                }
            ]
        },
    )

    user_id: str = Field(..., alias="userId", min_length=1, description="Owner of the order")
    order_items: List[OrderItemRequest] = Field(..., alias="orderItems")

    def line_requests(self) -> List[LineRequest]:
        return [item.to_line_request() for item in self.order_items]


class OrderUpdateRequest(BaseModel):
    """Request schema for replacing the lines of an order."""

    model_config = ConfigDict(populate_by_name=True)

    order_items: List[OrderItemRequest] = Field(..., alias="orderItems")

    def line_requests(self) -> List[LineRequest]:
        return [item.to_line_request() for item in self.order_items]


class ChangeOrderStatusRequest(BaseModel):
    """Request schema for overwriting an order status."""

    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: object) -> OrderStatus:
        """Accept status names case-insensitively."""
        status = OrderStatus.parse(v) if isinstance(v, str) else None
        if status is None:
            raise ValueError(f"Unknown order status: {v!r}")
        return status


class ItemResponse(BaseModel):
    id: UUID
    name: str
    price: int


class OrderItemResponse(BaseModel):
    id: UUID
    item: ItemResponse
    quantity: int

    @classmethod
    def from_line(cls, line: LineItem) -> "OrderItemResponse":
        return cls(
            id=line.id,
            item=ItemResponse(id=line.item.id, name=line.item.name, price=line.item.price),
            quantity=line.quantity,
        )


class OrderResponse(BaseModel):
    """Response schema for an order enriched with its owner's data."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    user_id: str = Field(..., alias="userId")
    status: OrderStatus
    creation_date: date = Field(..., alias="creationDate")
    order_items: List[OrderItemResponse] = Field(default_factory=list, alias="orderItems")
    user_data: Optional[UserSnapshot] = Field(default=None, alias="userData")

    @classmethod
    def from_view(cls, view: OrderView) -> "OrderResponse":
        order = view.order
        return cls(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            creation_date=order.creation_date,
            order_items=[OrderItemResponse.from_line(line) for line in order.lines],
            user_data=view.user,
        )


class ApiResponse(BaseModel, Generic[T]):
    """Envelope used by every order endpoint."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None

    @classmethod
    def ok(cls, message: str, data: Optional[T] = None) -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)


class HealthCheckResponse(BaseModel):
    """Response schema for health check."""

    status: str = Field(..., description="Overall health status")
    checks: dict = Field(default_factory=dict, description="Individual health checks")
