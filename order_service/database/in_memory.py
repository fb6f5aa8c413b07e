"""In-process order store and item catalog, used for local runs and tests."""
import asyncio
import copy
import uuid
from typing import Dict, Iterable, List, Optional

from order_service.core.models import Item, Order, OrderStatus


class InMemoryOrderStore:
    """
    Dict-backed order storage.

    Orders are copied on the way in and out, so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._orders: Dict[uuid.UUID, Order] = {}
        self._lock = asyncio.Lock()

    async def get(self, order_id: uuid.UUID) -> Optional[Order]:
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order else None

    async def get_many(self, order_ids: Iterable[uuid.UUID]) -> List[Order]:
        wanted = set(order_ids)
        return [copy.deepcopy(o) for o in self._orders.values() if o.id in wanted]

    async def get_by_statuses(self, statuses: Iterable[OrderStatus]) -> List[Order]:
        wanted = set(statuses)
        return [copy.deepcopy(o) for o in self._orders.values() if o.status in wanted]

    async def put(self, order: Order) -> Order:
        async with self._lock:
            self._orders[order.id] = copy.deepcopy(order)
        return copy.deepcopy(order)

    async def delete(self, order: Order) -> None:
        async with self._lock:
            self._orders.pop(order.id, None)

    def __len__(self) -> int:
        return len(self._orders)


class InMemoryItemCatalog:
    def __init__(self, items: Optional[Iterable[Item]] = None) -> None:
        self._items: Dict[uuid.UUID, Item] = {item.id: item for item in items or ()}

    async def get(self, item_id: uuid.UUID) -> Optional[Item]:
        return self._items.get(item_id)

    async def put(self, item: Item) -> Item:
        self._items[item.id] = item
        return item
