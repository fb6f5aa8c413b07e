"""
Unit tests for ownership-based authorization.
"""
import uuid

import pytest

from order_service.core import AuthorizationPolicy, OrderLifecycleService
from order_service.core.exceptions import AccessDeniedError
from order_service.core.models import Item, LineRequest, OrderStatus


class TestAuthorizationPolicy:
    """Test suite for AuthorizationPolicy."""

    @pytest.mark.unit
    def test_can_create_for_self(self, policy: AuthorizationPolicy) -> None:
        assert policy.can_create("alice", "alice") is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "principal,owner", [("alice", "bob"), (None, "alice"), ("alice", None), ("", "")]
    )
    def test_can_create_denied(
        self, policy: AuthorizationPolicy, principal: str, owner: str
    ) -> None:
        """Test creating orders on behalf of someone else is denied."""
        with pytest.raises(AccessDeniedError):
            policy.can_create(principal, owner)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_access_owner(
        self, policy: AuthorizationPolicy, order_service: OrderLifecycleService, item_a: Item
    ) -> None:
        view = await order_service.create("alice", [LineRequest(item_a.id, 1)])

        assert await policy.can_access("alice", view.order.id) is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_access_other_owner_denied(
        self, policy: AuthorizationPolicy, order_service: OrderLifecycleService, item_a: Item
    ) -> None:
        view = await order_service.create("alice", [LineRequest(item_a.id, 1)])

        with pytest.raises(AccessDeniedError, match="access this order"):
            await policy.can_access("bob", view.order.id)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_access_missing_order_is_denied(self, policy: AuthorizationPolicy) -> None:
        """Test a missing order looks the same as someone else's order."""
        with pytest.raises(AccessDeniedError):
            await policy.can_access("alice", uuid.uuid4())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_access_without_principal(self, policy: AuthorizationPolicy) -> None:
        with pytest.raises(AccessDeniedError):
            await policy.can_access(None, uuid.uuid4())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_manage_created_order(
        self, policy: AuthorizationPolicy, order_service: OrderLifecycleService, item_a: Item
    ) -> None:
        view = await order_service.create("alice", [LineRequest(item_a.id, 1)])

        assert await policy.can_manage("alice", view.order.id) is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_manage_denied_once_not_created(
        self, policy: AuthorizationPolicy, order_service: OrderLifecycleService, item_a: Item
    ) -> None:
        """Test the owner loses management rights once the order leaves CREATED."""
        view = await order_service.create("alice", [LineRequest(item_a.id, 1)])
        await order_service.change_status(view.order.id, OrderStatus.PAID)

        with pytest.raises(AccessDeniedError, match="manage this order"):
            await policy.can_manage("alice", view.order.id)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_manage_other_owner_denied(
        self, policy: AuthorizationPolicy, order_service: OrderLifecycleService, item_a: Item
    ) -> None:
        view = await order_service.create("alice", [LineRequest(item_a.id, 1)])

        with pytest.raises(AccessDeniedError):
            await policy.can_manage("bob", view.order.id)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_access_batch(
        self, policy: AuthorizationPolicy, order_service: OrderLifecycleService, item_a: Item
    ) -> None:
        """Test batch access is granted only when every stored order is owned."""
        mine = await order_service.create("alice", [LineRequest(item_a.id, 1)])
        also_mine = await order_service.create("alice", [LineRequest(item_a.id, 2)])
        theirs = await order_service.create("bob", [LineRequest(item_a.id, 1)])

        assert await policy.can_access_batch("alice", [mine.order.id, also_mine.order.id]) is True
        assert await policy.can_access_batch("alice", [mine.order.id, theirs.order.id]) is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_access_batch_ignores_unknown_ids(
        self, policy: AuthorizationPolicy, order_service: OrderLifecycleService, item_a: Item
    ) -> None:
        mine = await order_service.create("alice", [LineRequest(item_a.id, 1)])

        assert await policy.can_access_batch("alice", [mine.order.id, uuid.uuid4()]) is True
        assert await policy.can_access_batch("alice", []) is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_can_access_batch_requires_principal_and_ids(
        self, policy: AuthorizationPolicy
    ) -> None:
        with pytest.raises(AccessDeniedError):
            await policy.can_access_batch(None, [uuid.uuid4()])
        with pytest.raises(AccessDeniedError):
            await policy.can_access_batch("alice", None)
