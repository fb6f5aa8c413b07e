"""
Wiring of the order service components.

The API and the payment worker both build their object graph here so that the
same store, resolver, directory and publisher are shared by every operation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from order_service.config import Settings, get_settings
from order_service.core import AuthorizationPolicy, OrderItemResolver, OrderLifecycleService
from order_service.core.ports import ItemCatalog, OrderEventPublisher, OrderStore, UserDirectory
from order_service.database import (
    InMemoryItemCatalog,
    InMemoryOrderStore,
    SqlAlchemyItemCatalog,
    SqlAlchemyOrderStore,
    get_session_factory,
)
from order_service.integrations import KafkaOrderEventPublisher, UserDirectoryClient
from order_service.monitoring.health import HealthCheck

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Container:
    settings: Settings
    store: OrderStore
    catalog: ItemCatalog
    user_directory: UserDirectory
    publisher: OrderEventPublisher
    order_service: OrderLifecycleService
    policy: AuthorizationPolicy
    health: HealthCheck

    async def close(self) -> None:
        """Flush pending notifications and release HTTP connections."""
        close_publisher = getattr(self.publisher, "close", None)
        if close_publisher is not None:
            close_publisher()
        close_directory = getattr(self.user_directory, "close", None)
        if close_directory is not None:
            await close_directory()


def build_container(
    settings: Optional[Settings] = None,
    *,
    store: Optional[OrderStore] = None,
    catalog: Optional[ItemCatalog] = None,
    user_directory: Optional[UserDirectory] = None,
    publisher: Optional[OrderEventPublisher] = None,
) -> Container:
    """
    Build the component graph.

    Any component passed explicitly replaces the one derived from settings.
    """
    settings = settings or get_settings()
    use_database = settings.order_store_backend == "database"

    if store is None:
        store = (
            SqlAlchemyOrderStore(get_session_factory()) if use_database else InMemoryOrderStore()
        )
    if catalog is None:
        catalog = (
            SqlAlchemyItemCatalog(get_session_factory()) if use_database else InMemoryItemCatalog()
        )
    if user_directory is None:
        user_directory = UserDirectoryClient()
    if publisher is None:
        publisher = KafkaOrderEventPublisher()

    order_service = OrderLifecycleService(
        store=store,
        resolver=OrderItemResolver(catalog),
        user_directory=user_directory,
        publisher=publisher,
    )
    health = HealthCheck(
        session_factory=get_session_factory if use_database else None,
        user_service_breaker=getattr(user_directory, "breaker", None),
    )

    logger.info("container_built", order_store_backend=settings.order_store_backend)
    return Container(
        settings=settings,
        store=store,
        catalog=catalog,
        user_directory=user_directory,
        publisher=publisher,
        order_service=order_service,
        policy=AuthorizationPolicy(store),
        health=health,
    )
