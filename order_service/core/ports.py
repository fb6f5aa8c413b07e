"""Interfaces the lifecycle core depends on."""
from __future__ import annotations

import uuid
from typing import Iterable, List, Optional, Protocol

from order_service.core.events import OrderCreatedEvent
from order_service.core.models import Item, Order, OrderStatus, UserSnapshot


class OrderStore(Protocol):
    """Durable storage of whole Order aggregates."""

    async def get(self, order_id: uuid.UUID) -> Optional[Order]: ...

    async def get_many(self, order_ids: Iterable[uuid.UUID]) -> List[Order]: ...

    async def get_by_statuses(self, statuses: Iterable[OrderStatus]) -> List[Order]: ...

    async def put(self, order: Order) -> Order: ...

    async def delete(self, order: Order) -> None: ...


class ItemCatalog(Protocol):
    async def get(self, item_id: uuid.UUID) -> Optional[Item]: ...


class UserDirectory(Protocol):
    async def fetch(self, user_id: str) -> Optional[UserSnapshot]: ...


class OrderEventPublisher(Protocol):
    def publish_order_created(self, event: OrderCreatedEvent) -> None: ...


class DeadLetterPublisher(Protocol):
    def publish(
        self, payload: bytes, key: Optional[bytes], error: Exception
    ) -> None: ...
