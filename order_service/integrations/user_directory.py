"""
Client for the user service.

Lookups are best-effort: transport errors, server errors, malformed answers
and open-circuit rejections all degrade to "unknown" (None), so order
operations never fail because the user service is unavailable.
"""
import time
from contextvars import ContextVar
from typing import Dict, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel

from order_service.config import Settings, get_settings
from order_service.core.models import UserSnapshot
from order_service.integrations.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerOpenError,
    CircuitState,
)
from order_service.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

# Authorization header of the inbound request, relayed to the user service
forwarded_authorization: ContextVar[Optional[str]] = ContextVar(
    "forwarded_authorization", default=None
)


class UserEnvelope(BaseModel):
    """Response envelope used by the user service."""

    success: bool = False
    message: Optional[str] = None
    data: Optional[UserSnapshot] = None


def breaker_config_from_settings(settings: Settings) -> CircuitBreakerConfig:
    return CircuitBreakerConfig(
        failure_rate_threshold=settings.user_service_failure_rate_threshold,
        slow_call_rate_threshold=settings.user_service_slow_call_rate_threshold,
        slow_call_duration=settings.user_service_slow_call_seconds,
        window_size=settings.user_service_window_size,
        min_calls=settings.user_service_min_calls,
        open_timeout=settings.user_service_open_timeout,
        half_open_max_calls=settings.user_service_half_open_calls,
    )


def _publish_breaker_state(state: CircuitState) -> None:
    metrics.set_circuit_breaker_state(state.value)


class UserDirectoryClient:
    """
    Best-effort user lookup behind a circuit breaker.

    Example:
        >>> client = UserDirectoryClient()
        >>> user = await client.fetch("user-42")  # UserSnapshot or None
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the user directory client.

        Args:
            base_url: User service base URL (uses config if not provided)
            timeout: Per-call timeout in seconds (uses config if not provided)
            breaker: Optional circuit breaker
            http_client: Optional preconfigured httpx client
        """
        settings = get_settings()
        self.base_url = (base_url or settings.user_service_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.user_service_timeout
        self.breaker = breaker or CircuitBreaker(
            breaker_config_from_settings(settings),
            name="user-service",
            on_state_change=_publish_breaker_state,
        )
        self.http_client = http_client or httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout
        )

        logger.info("user_directory_client_initialized", base_url=self.base_url)

    async def fetch(self, user_id: str) -> Optional[UserSnapshot]:
        """
        Look up a user.

        Args:
            user_id: User identifier

        Returns:
            Optional[UserSnapshot]: The user, or None when unknown or unreachable
        """
        if not user_id:
            return None

        start_time = time.time()
        try:
            user = await self.breaker.call(self._get_user, user_id)
        except CircuitBreakerOpenError:
            logger.debug("user_directory_call_rejected", user_id=user_id)
            metrics.record_user_lookup("rejected")
            return None
        except Exception as e:
            logger.warning(
                "user_directory_unavailable",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            metrics.record_user_lookup("error", time.time() - start_time)
            return None

        metrics.record_user_lookup("found" if user else "missing", time.time() - start_time)
        return user

    async def _get_user(self, user_id: str) -> Optional[UserSnapshot]:
        response = await self.http_client.get(
            f"/api/v1/users/{quote(user_id, safe='')}", headers=self._headers()
        )
        if response.status_code >= 500:
            response.raise_for_status()
        if response.status_code >= 400:
            logger.debug(
                "user_directory_lookup_refused",
                user_id=user_id,
                status_code=response.status_code,
            )
            return None

        envelope = UserEnvelope.model_validate_json(response.content)
        if not envelope.success or envelope.data is None:
            logger.debug(
                "user_directory_lookup_empty", user_id=user_id, message=envelope.message
            )
            return None
        return envelope.data

    @staticmethod
    def _headers() -> Dict[str, str]:
        authorization = forwarded_authorization.get()
        return {"Authorization": authorization} if authorization else {}

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.http_client.aclose()
