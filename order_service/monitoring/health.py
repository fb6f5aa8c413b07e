"""
Health check endpoints for Kubernetes readiness/liveness probes.

Checks:
- Database connectivity
- User service circuit state (reported, never fails readiness)
"""
from typing import Any, Callable, Dict, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_service.integrations.circuit_breaker import CircuitBreaker

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when health check fails."""

    pass


class HealthCheck:
    """
    Health check service for monitoring system dependencies.

    The user service is optional for order operations, so an open circuit
    only marks the service as degraded.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], async_sessionmaker[AsyncSession]]] = None,
        user_service_breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        """
        Initialize health check service.

        Args:
            session_factory: Provider of the session factory; None when orders
                are kept in memory
            user_service_breaker: Circuit breaker guarding the user service
        """
        self.session_factory = session_factory
        self.user_service_breaker = user_service_breaker

    async def check_database(self) -> Dict[str, Any]:
        """
        Check database connectivity.

        Raises:
            HealthCheckError: If database check fails
        """
        if self.session_factory is None:
            return {"status": "healthy", "service": "database", "message": "In-memory store"}

        try:
            async with self.session_factory()() as db:
                result = await db.execute(text("SELECT 1"))
                result.scalar()
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            raise HealthCheckError(f"Database health check failed: {str(e)}")

        return {
            "status": "healthy",
            "service": "database",
            "message": "Database connection successful",
        }

    def check_user_service(self) -> Dict[str, Any]:
        if self.user_service_breaker is None:
            return {"status": "healthy", "service": "user_service"}

        state = self.user_service_breaker.get_state()
        return {
            "status": "healthy" if state["state"] == "closed" else "degraded",
            "service": "user_service",
            "circuit": state,
        }

    async def check_all(self) -> Dict[str, Any]:
        """
        Run all health checks.

        Returns:
            Dict[str, Any]: Overall health status
        """
        checks: Dict[str, Any] = {}
        all_healthy = True

        try:
            checks["database"] = await self.check_database()
        except HealthCheckError as e:
            checks["database"] = {
                "status": "unhealthy",
                "service": "database",
                "error": str(e),
            }
            all_healthy = False

        checks["user_service"] = self.check_user_service()

        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """Liveness probe; does not check external dependencies."""
        return {
            "status": "alive",
            "message": "Application is running",
        }

    async def readiness(self) -> Dict[str, Any]:
        """Readiness probe; verifies the database is reachable."""
        return await self.check_all()
