"""
Unit tests for the user service client.
"""
from typing import Callable, List

import httpx
import pytest

from order_service.core import OrderItemResolver, OrderLifecycleService
from order_service.core.models import Item, LineRequest
from order_service.database import InMemoryItemCatalog, InMemoryOrderStore
from order_service.integrations.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from order_service.integrations.user_directory import (
    UserDirectoryClient,
    forwarded_authorization,
)

USER_PAYLOAD = {
    "success": True,
    "message": "User found",
    "data": {
        "userId": "alice",
        "name": "Alice",
        "surname": "Smith",
        "birthDate": "1990-05-17",
        "email": "alice@example.com",
    },
}


def make_client(
    handler: Callable[[httpx.Request], httpx.Response], requests: List[httpx.Request]
) -> UserDirectoryClient:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(recording_handler), base_url="http://users.test"
    )
    breaker = CircuitBreaker(
        CircuitBreakerConfig(failure_rate_threshold=0.5, window_size=2, min_calls=2),
        name="user-service-test",
    )
    return UserDirectoryClient(
        base_url="http://users.test", timeout=1.0, breaker=breaker, http_client=http_client
    )


class TestUserDirectoryClient:
    """Test suite for UserDirectoryClient."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_found(self) -> None:
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json=USER_PAYLOAD), requests)

        user = await client.fetch("alice")

        assert user is not None
        assert user.user_id == "alice"
        assert user.email == "alice@example.com"
        assert requests[0].url.path == "/api/v1/users/alice"
        await client.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_not_found_does_not_trip_breaker(self) -> None:
        """Test 4xx answers mean an unknown user, not an unhealthy service."""
        requests: List[httpx.Request] = []
        client = make_client(
            lambda r: httpx.Response(404, json={"success": False, "message": "nope"}), requests
        )

        for _ in range(3):
            assert await client.fetch("ghost") is None

        assert client.breaker.state == CircuitState.CLOSED
        assert len(requests) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_unsuccessful_envelope(self) -> None:
        requests: List[httpx.Request] = []
        client = make_client(
            lambda r: httpx.Response(200, json={"success": False, "message": "disabled"}),
            requests,
        )

        assert await client.fetch("alice") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_server_errors_open_circuit(self) -> None:
        """Test 5xx answers degrade to None and eventually stop outbound calls."""
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(503), requests)

        assert await client.fetch("alice") is None
        assert await client.fetch("alice") is None
        assert client.breaker.state == CircuitState.OPEN

        assert await client.fetch("alice") is None
        assert len(requests) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transport_error_returns_none(self) -> None:
        requests: List[httpx.Request] = []

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(refuse, requests)

        assert await client.fetch("alice") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_malformed_body_returns_none(self) -> None:
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, content=b"<html>"), requests)

        assert await client.fetch("alice") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_user_id_skips_call(self) -> None:
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json=USER_PAYLOAD), requests)

        assert await client.fetch("") is None
        assert requests == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_forwards_authorization(self) -> None:
        """Test the inbound Authorization header is relayed."""
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(200, json=USER_PAYLOAD), requests)

        token = forwarded_authorization.set("Bearer abc.def")
        try:
            await client.fetch("alice")
        finally:
            forwarded_authorization.reset(token)
        await client.fetch("alice")

        assert requests[0].headers["Authorization"] == "Bearer abc.def"
        assert "Authorization" not in requests[1].headers


    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_user_id_is_a_single_path_segment(self) -> None:
        """Test reserved characters in the id cannot redirect the lookup."""
        requests: List[httpx.Request] = []
        client = make_client(lambda r: httpx.Response(404), requests)

        await client.fetch("attacker?x=")
        await client.fetch("a/../../admin")

        assert requests[0].url.raw_path == b"/api/v1/users/attacker%3Fx%3D"
        assert requests[0].url.query == b""
        assert requests[1].url.raw_path == b"/api/v1/users/a%2F..%2F..%2Fadmin"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_client_error_returns_none(self) -> None:
        """Test errors outside httpx.HTTPError, such as InvalidURL, are absorbed."""
        requests: List[httpx.Request] = []

        def reject(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        client = make_client(reject, requests)

        assert await client.fetch("bad\x00id") is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_create_survives_failing_lookup(
        self,
        store: InMemoryOrderStore,
        catalog: InMemoryItemCatalog,
        publisher,
        item_a: Item,
    ) -> None:
        """Test an order is created without user data when the lookup blows up."""
        requests: List[httpx.Request] = []

        def reject(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        service = OrderLifecycleService(
            store=store,
            resolver=OrderItemResolver(catalog),
            user_directory=make_client(reject, requests),
            publisher=publisher,
        )

        view = await service.create("bad\x00id", [LineRequest(item_a.id, 1)])

        assert view.user is None
        assert len(store) == 1
        assert len(publisher.events) == 1
