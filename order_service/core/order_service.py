"""
Order lifecycle orchestration.

Coordinates line resolution, persistence, user enrichment and the
order-created notification:
1. Resolve requested lines against the catalog (fail fast)
2. Load / build the Order aggregate
3. Persist the whole aggregate
4. Publish OrderCreated (creation only, fire-and-forget)
5. Enrich the result with best-effort user data
"""
import uuid
from typing import Iterable, List, Optional

import structlog

from order_service.core.events import OrderCreatedEvent
from order_service.core.exceptions import OrderNotFoundError
from order_service.core.models import LineRequest, Order, OrderStatus, OrderView
from order_service.core.order_items import OrderItemResolver
from order_service.core.ports import OrderEventPublisher, OrderStore, UserDirectory
from order_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class OrderLifecycleService:
    """
    Creates, reads, updates, transitions and deletes orders.

    Read-modify-write sequences are not guarded by locks or version checks;
    concurrent mutations of one order resolve as last write wins.
    """

    def __init__(
        self,
        store: OrderStore,
        resolver: OrderItemResolver,
        user_directory: UserDirectory,
        publisher: OrderEventPublisher,
    ):
        """
        Initialize the lifecycle service.

        Args:
            store: Order aggregate storage
            resolver: Resolver for requested lines
            user_directory: Best-effort user lookup
            publisher: Order-created notifier
        """
        self.store = store
        self.resolver = resolver
        self.user_directory = user_directory
        self.publisher = publisher

    async def create(self, owner_id: str, lines: Iterable[LineRequest]) -> OrderView:
        """
        Create a new order in CREATED status dated today.

        The payment amount is computed from the resolved lines before they
        are persisted, and the notification is emitted only after the order
        has been stored. A failing notification never undoes the order.

        Args:
            owner_id: Owning principal
            lines: Requested lines, in order

        Returns:
            OrderView: Created order enriched with user data

        Raises:
            ItemNotFoundError: If any requested item does not exist
        """
        logger.debug("creating_order", user_id=owner_id)
        resolved = await self.resolver.resolve_all(lines)
        order = Order.create(owner_id, resolved)
        payment_amount = order.payment_amount()

        saved = await self.store.put(order)
        logger.info(
            "order_created",
            order_id=str(saved.id),
            user_id=owner_id,
            lines=len(saved.lines),
            payment_amount=payment_amount,
        )
        metrics.record_order_created(payment_amount)

        self.publisher.publish_order_created(
            OrderCreatedEvent(
                order_id=saved.id,
                user_id=saved.user_id,
                payment_amount=payment_amount,
            )
        )

        return await self._enrich(saved)

    async def get_by_id(self, order_id: uuid.UUID) -> OrderView:
        """
        Fetch one order.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        logger.debug("fetching_order", order_id=str(order_id))
        order = await self._load(order_id)
        return await self._enrich(order)

    async def get_all_by_ids(self, order_ids: Iterable[uuid.UUID]) -> List[OrderView]:
        """Fetch the orders that exist among ``order_ids``; missing ids are skipped."""
        ids = list(order_ids)
        logger.debug("fetching_orders_by_ids", count=len(ids))
        orders = await self.store.get_many(ids)
        views = [await self._enrich(order) for order in orders]
        logger.debug("orders_fetched_by_ids", requested=len(ids), found=len(views))
        return views

    async def get_all_by_statuses(self, status_names: Iterable[str]) -> List[OrderView]:
        """
        Fetch orders whose status is among ``status_names``.

        Names are matched case-insensitively; unknown names are dropped. If
        nothing valid remains the result is empty.
        """
        names = list(status_names)
        statuses = {s for s in (OrderStatus.parse(name) for name in names) if s is not None}
        logger.debug(
            "fetching_orders_by_statuses",
            requested=names,
            statuses=sorted(s.value for s in statuses),
        )
        if not statuses:
            return []

        orders = await self.store.get_by_statuses(statuses)
        return [await self._enrich(order) for order in orders]

    async def update(self, order_id: uuid.UUID, lines: Iterable[LineRequest]) -> OrderView:
        """
        Replace every line of an order.

        Previous lines are discarded, not merged.

        Raises:
            OrderNotFoundError: If the order does not exist
            ItemNotFoundError: If any requested item does not exist
        """
        logger.debug("updating_order", order_id=str(order_id))
        order = await self._load(order_id)
        resolved = await self.resolver.resolve_all(lines)
        order.replace_lines(resolved)

        saved = await self.store.put(order)
        logger.info("order_updated", order_id=str(saved.id), lines=len(saved.lines))
        return await self._enrich(saved)

    async def change_status(self, order_id: uuid.UUID, status: OrderStatus) -> OrderView:
        """
        Overwrite the status of an order.

        Any status is accepted as the target regardless of the current one.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        logger.debug("changing_order_status", order_id=str(order_id), status=status.value)
        order = await self._load(order_id)
        previous = order.status
        order.status = status

        saved = await self.store.put(order)
        logger.info(
            "order_status_changed",
            order_id=str(saved.id),
            previous_status=previous.value,
            status=status.value,
        )
        metrics.record_status_change(status.value)
        return await self._enrich(saved)

    async def delete(self, order_id: uuid.UUID) -> None:
        """
        Delete an order together with its lines.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        logger.debug("deleting_order", order_id=str(order_id))
        order = await self._load(order_id)
        await self.store.delete(order)
        metrics.record_order_deleted()
        logger.info("order_deleted", order_id=str(order_id))

    async def _load(self, order_id: uuid.UUID) -> Order:
        order: Optional[Order] = await self.store.get(order_id)
        if order is None:
            logger.debug("order_not_found", order_id=str(order_id))
            raise OrderNotFoundError(order_id)
        return order

    async def _enrich(self, order: Order) -> OrderView:
        return OrderView(order=order, user=await self.user_directory.fetch(order.user_id))
