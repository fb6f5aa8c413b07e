"""
Pytest configuration and fixtures.
"""
import uuid
from datetime import date
from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from order_service.api.main import create_app
from order_service.config import Settings
from order_service.container import Container, build_container
from order_service.core import AuthorizationPolicy, OrderItemResolver, OrderLifecycleService
from order_service.core.events import OrderCreatedEvent
from order_service.core.models import Item, UserSnapshot
from order_service.database import InMemoryItemCatalog, InMemoryOrderStore

ITEM_A_ID = uuid.UUID("6f1c7f0e-0000-4000-8000-00000000000a")
ITEM_B_ID = uuid.UUID("6f1c7f0e-0000-4000-8000-00000000000b")


class FakeUserDirectory:
    """User directory that serves a fixed set of users, or nothing when unavailable."""

    def __init__(self, users: Optional[Dict[str, UserSnapshot]] = None):
        self.users = users or {}
        self.available = True
        self.calls: List[str] = []

    async def fetch(self, user_id: str) -> Optional[UserSnapshot]:
        self.calls.append(user_id)
        if not self.available:
            return None
        return self.users.get(user_id)


class RecordingPublisher:
    """Order-created publisher that keeps what it was given."""

    def __init__(self) -> None:
        self.events: List[OrderCreatedEvent] = []

    def publish_order_created(self, event: OrderCreatedEvent) -> None:
        self.events.append(event)


class RecordingDeadLetters:
    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []

    def publish(self, payload: bytes, key: Optional[bytes], error: Exception) -> None:
        self.messages.append({"payload": payload, "key": key, "error": error})

    def flush(self, timeout: float = 10.0) -> int:
        return 0


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        order_store_backend="memory",
        app_name="order-service-test",
        app_env="test",
        log_level="DEBUG",
        payment_retry_max_attempts=3,
        payment_retry_base_delay=0,
    )


@pytest.fixture
def item_a() -> Item:
    return Item(id=ITEM_A_ID, name="Keyboard", price=100)


@pytest.fixture
def item_b() -> Item:
    return Item(id=ITEM_B_ID, name="Mouse", price=50)


@pytest.fixture
def catalog(item_a: Item, item_b: Item) -> InMemoryItemCatalog:
    return InMemoryItemCatalog([item_a, item_b])


@pytest.fixture
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def alice() -> UserSnapshot:
    return UserSnapshot(
        user_id="alice",
        name="Alice",
        surname="Smith",
        birth_date=date(1990, 5, 17),
        email="alice@example.com",
    )


@pytest.fixture
def user_directory(alice: UserSnapshot) -> FakeUserDirectory:
    return FakeUserDirectory({"alice": alice})


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def dead_letters() -> RecordingDeadLetters:
    return RecordingDeadLetters()


@pytest.fixture
def order_service(
    store: InMemoryOrderStore,
    catalog: InMemoryItemCatalog,
    user_directory: FakeUserDirectory,
    publisher: RecordingPublisher,
) -> OrderLifecycleService:
    return OrderLifecycleService(
        store=store,
        resolver=OrderItemResolver(catalog),
        user_directory=user_directory,
        publisher=publisher,
    )


@pytest.fixture
def policy(store: InMemoryOrderStore) -> AuthorizationPolicy:
    return AuthorizationPolicy(store)


@pytest.fixture
def container(
    test_settings: Settings,
    store: InMemoryOrderStore,
    catalog: InMemoryItemCatalog,
    user_directory: FakeUserDirectory,
    publisher: RecordingPublisher,
) -> Container:
    return build_container(
        test_settings,
        store=store,
        catalog=catalog,
        user_directory=user_directory,
        publisher=publisher,
    )


@pytest_asyncio.fixture
async def client(container: Container) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client."""
    app = create_app(container)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
