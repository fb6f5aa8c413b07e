"""
SQLAlchemy-backed order store and item catalog.

Each operation runs in its own session and transaction. Orders are saved as
whole aggregates: the order row and the full set of its line rows.
"""
import uuid
from typing import Iterable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_service.core.models import Item, LineItem, Order, OrderStatus
from order_service.database.models import ItemRecord, OrderLineRecord, OrderRecord

logger = structlog.get_logger(__name__)


def _to_domain(record: OrderRecord) -> Order:
    return Order(
        id=record.id,
        user_id=record.user_id,
        status=OrderStatus(record.status),
        creation_date=record.creation_date,
        lines=[
            LineItem(
                id=line.id,
                item=Item(id=line.item_id, name=line.item_name, price=line.unit_price),
                quantity=line.quantity,
            )
            for line in record.lines
        ],
    )


class SqlAlchemyOrderStore:
    """Order aggregate storage in a relational database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, order_id: uuid.UUID) -> Optional[Order]:
        async with self.session_factory() as session:
            record = await session.get(OrderRecord, order_id)
            return _to_domain(record) if record else None

    async def get_many(self, order_ids: Iterable[uuid.UUID]) -> List[Order]:
        ids = list(order_ids)
        if not ids:
            return []
        async with self.session_factory() as session:
            result = await session.execute(
                select(OrderRecord)
                .where(OrderRecord.id.in_(ids))
                .order_by(OrderRecord.creation_date, OrderRecord.id)
            )
            return [_to_domain(r) for r in result.scalars().all()]

    async def get_by_statuses(self, statuses: Iterable[OrderStatus]) -> List[Order]:
        values = [status.value for status in statuses]
        if not values:
            return []
        async with self.session_factory() as session:
            result = await session.execute(
                select(OrderRecord)
                .where(OrderRecord.status.in_(values))
                .order_by(OrderRecord.creation_date, OrderRecord.id)
            )
            return [_to_domain(r) for r in result.scalars().all()]

    async def put(self, order: Order) -> Order:
        """
        Insert or overwrite an order and its lines.

        Lines absent from ``order`` are deleted; lines keep their ids across
        saves so unchanged lines are updated in place.
        """
        async with self.session_factory() as session:
            async with session.begin():
                record = await session.get(OrderRecord, order.id)
                if record is None:
                    record = OrderRecord(id=order.id)
                    session.add(record)

                record.user_id = order.user_id
                record.status = order.status.value
                record.creation_date = order.creation_date

                existing = {line.id: line for line in record.lines}
                lines = []
                for position, line in enumerate(order.lines):
                    line_record = existing.get(line.id) or OrderLineRecord(id=line.id)
                    line_record.position = position
                    line_record.item_id = line.item.id
                    line_record.item_name = line.item.name
                    line_record.unit_price = line.item.price
                    line_record.quantity = line.quantity
                    lines.append(line_record)
                record.lines = lines

            logger.debug("order_saved", order_id=str(order.id), lines=len(lines))
            return _to_domain(record)

    async def delete(self, order: Order) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                record = await session.get(OrderRecord, order.id)
                if record is not None:
                    await session.delete(record)
        logger.debug("order_row_deleted", order_id=str(order.id))


class SqlAlchemyItemCatalog:
    """Read access to catalog items, plus ``put`` for seeding."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, item_id: uuid.UUID) -> Optional[Item]:
        async with self.session_factory() as session:
            record = await session.get(ItemRecord, item_id)
            if record is None:
                return None
            return Item(id=record.id, name=record.name, price=record.price)

    async def put(self, item: Item) -> Item:
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(ItemRecord(id=item.id, name=item.name, price=item.price))
        return item
