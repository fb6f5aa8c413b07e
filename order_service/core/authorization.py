"""
Ownership-based authorization rules for orders.

Administrators are not handled here: the caller decides, based on role,
whether to bypass the policy or delegate to it.
"""
import uuid
from typing import Iterable, Optional

import structlog

from order_service.core.exceptions import AccessDeniedError
from order_service.core.models import Order, OrderStatus
from order_service.core.ports import OrderStore

logger = structlog.get_logger(__name__)


class AuthorizationPolicy:
    """
    Guards order operations for non-privileged principals.

    Every check either returns True or raises AccessDeniedError. The only
    exception is can_access_batch, which answers False when some order
    belongs to somebody else.
    """

    def __init__(self, store: OrderStore):
        self.store = store

    def can_create(self, principal_id: Optional[str], requested_owner_id: Optional[str]) -> bool:
        """Principals may only create orders for themselves."""
        if not principal_id or not requested_owner_id or principal_id != requested_owner_id:
            logger.info(
                "order_create_denied",
                principal_id=principal_id,
                requested_owner_id=requested_owner_id,
            )
            raise AccessDeniedError("You do not have rights to create this order")
        return True

    async def can_access(self, principal_id: Optional[str], order_id: Optional[uuid.UUID]) -> bool:
        """
        Check that the principal owns the order.

        A missing order is reported as denied access so that existence is
        not leaked to non-owners.

        Raises:
            AccessDeniedError: If the principal may not read the order
        """
        message = "You do not have rights to access this order"
        order = await self._load_owned(principal_id, order_id, message)
        logger.debug("order_access_granted", principal_id=principal_id, order_id=str(order.id))
        return True

    async def can_manage(self, principal_id: Optional[str], order_id: Optional[uuid.UUID]) -> bool:
        """
        Check that the principal owns the order and it is still CREATED.

        Raises:
            AccessDeniedError: If the principal may not modify or delete the order
        """
        message = "You do not have rights to manage this order"
        order = await self._load_owned(principal_id, order_id, message)
        if order.status != OrderStatus.CREATED:
            logger.info(
                "order_manage_denied",
                principal_id=principal_id,
                order_id=str(order.id),
                status=order.status.value,
            )
            raise AccessDeniedError(message)
        return True

    async def can_access_batch(
        self, principal_id: Optional[str], order_ids: Optional[Iterable[uuid.UUID]]
    ) -> bool:
        """
        Check that every existing order among ``order_ids`` belongs to the principal.

        Returns:
            bool: False if any stored order is owned by someone else

        Raises:
            AccessDeniedError: If the principal or the id collection is missing
        """
        if not principal_id or order_ids is None:
            raise AccessDeniedError("You do not have rights to access these orders")

        orders = await self.store.get_many(list(order_ids))
        allowed = all(order.user_id == principal_id for order in orders)
        if not allowed:
            logger.info("order_batch_access_denied", principal_id=principal_id)
        return allowed

    async def _load_owned(
        self, principal_id: Optional[str], order_id: Optional[uuid.UUID], message: str
    ) -> Order:
        if not principal_id or order_id is None:
            raise AccessDeniedError(message)

        order = await self.store.get(order_id)
        if order is None or order.user_id != principal_id:
            logger.info(
                "order_access_denied",
                principal_id=principal_id,
                order_id=str(order_id),
            )
            raise AccessDeniedError(message)
        return order
