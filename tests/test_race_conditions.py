"""
Race condition tests.

Read-modify-write on an order is not guarded, so concurrent mutations of the
same order resolve as last write wins. These tests pin that behavior down.
"""
import asyncio
import uuid
from typing import Optional

import pytest

from order_service.core import OrderItemResolver, OrderLifecycleService
from order_service.core.models import Item, LineRequest, Order, OrderStatus
from order_service.database import InMemoryItemCatalog, InMemoryOrderStore


class InterleavingStore(InMemoryOrderStore):
    """Holds every read until ``readers`` reads are pending, forcing interleaving."""

    def __init__(self, readers: int) -> None:
        super().__init__()
        self.readers = readers
        self.pending = 0
        self.released = asyncio.Event()
        self.armed = False

    async def get(self, order_id: uuid.UUID) -> Optional[Order]:
        order = await super().get(order_id)
        if self.armed:
            self.pending += 1
            if self.pending >= self.readers:
                self.released.set()
            await self.released.wait()
        return order


@pytest.fixture
def racing_service(catalog: InMemoryItemCatalog, user_directory, publisher):
    store = InterleavingStore(readers=2)
    service = OrderLifecycleService(store, OrderItemResolver(catalog), user_directory, publisher)
    return service, store


class TestConcurrentMutations:
    """Test suite for concurrent order mutations."""

    @pytest.mark.race
    @pytest.mark.asyncio
    async def test_concurrent_status_changes_last_write_wins(
        self, racing_service, item_a: Item
    ) -> None:
        service, store = racing_service
        created = await service.create("alice", [LineRequest(item_a.id, 1)])
        store.armed = True

        results = await asyncio.gather(
            service.change_status(created.order.id, OrderStatus.PAID),
            service.change_status(created.order.id, OrderStatus.CANCELED),
        )
        store.armed = False

        final = await service.get_by_id(created.order.id)
        assert {r.order.status for r in results} == {OrderStatus.PAID, OrderStatus.CANCELED}
        assert final.order.status in (OrderStatus.PAID, OrderStatus.CANCELED)

    @pytest.mark.race
    @pytest.mark.asyncio
    async def test_update_racing_status_change_loses_one_change(
        self, racing_service, item_a: Item, item_b: Item
    ) -> None:
        """Test an update and a status change interleaved lose one of the two changes."""
        service, store = racing_service
        created = await service.create("alice", [LineRequest(item_a.id, 1)])
        store.armed = True

        await asyncio.gather(
            service.update(created.order.id, [LineRequest(item_b.id, 4)]),
            service.change_status(created.order.id, OrderStatus.PAID),
        )
        store.armed = False

        final = (await service.get_by_id(created.order.id)).order
        kept_update = [line.item.id for line in final.lines] == [item_b.id]
        kept_status = final.status == OrderStatus.PAID
        assert kept_update != kept_status

    @pytest.mark.race
    @pytest.mark.asyncio
    async def test_concurrent_creates_are_independent(
        self, catalog: InMemoryItemCatalog, user_directory, publisher, item_a: Item
    ) -> None:
        store = InMemoryOrderStore()
        service = OrderLifecycleService(
            store, OrderItemResolver(catalog), user_directory, publisher
        )

        views = await asyncio.gather(
            *(service.create("alice", [LineRequest(item_a.id, n)]) for n in range(1, 21))
        )

        assert len({v.order.id for v in views}) == 20
        assert len(store) == 20
        assert len(publisher.events) == 20
