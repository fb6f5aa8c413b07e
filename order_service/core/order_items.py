"""Resolution of requested order lines against the item catalog."""
from typing import Iterable, List

import structlog

from order_service.core.exceptions import ItemNotFoundError
from order_service.core.models import LineItem, LineRequest
from order_service.core.ports import ItemCatalog

logger = structlog.get_logger(__name__)


class OrderItemResolver:
    """Turns requested (item id, quantity) pairs into line items."""

    def __init__(self, catalog: ItemCatalog):
        self.catalog = catalog

    async def resolve(self, request: LineRequest) -> LineItem:
        """
        Resolve one requested line.

        Args:
            request: Requested item id and quantity

        Returns:
            LineItem: Line pairing the current item state with the quantity

        Raises:
            ItemNotFoundError: If the catalog has no such item
        """
        logger.debug("resolving_order_item", item_id=str(request.item_id))
        item = await self.catalog.get(request.item_id)
        if item is None:
            logger.debug("order_item_not_found", item_id=str(request.item_id))
            raise ItemNotFoundError(request.item_id)
        return LineItem(item=item, quantity=request.quantity)

    async def resolve_all(self, requests: Iterable[LineRequest]) -> List[LineItem]:
        """Resolve lines in request order, stopping at the first missing item."""
        lines = []
        for request in requests:
            lines.append(await self.resolve(request))
        return lines
