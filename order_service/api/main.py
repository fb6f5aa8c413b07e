"""
Main FastAPI application.

Order management API with:
- CORS configuration
- Error handling mapped to the response envelope
- Request ID tracking
- Structured logging
- Prometheus metrics
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from order_service.config import get_settings
from order_service.container import Container, build_container
from order_service.core.exceptions import AccessDeniedError, NotFoundError
from order_service.database.connection import close_db, init_db
from order_service.integrations.user_directory import forwarded_authorization
from order_service.monitoring.logging import setup_logging

from .routes import monitoring_router, order_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    """
    Application lifespan manager.

    Builds the component container unless one was supplied to create_app.
    """
    settings = get_settings()
    owns_container = app.state.container is None
    logger.info("application_startup", app_name=settings.app_name, env=settings.app_env)

    if owns_container:
        setup_logging()
        if settings.order_store_backend == "database":
            try:
                await init_db()
                logger.info("database_initialized")
            except Exception as e:
                logger.error("database_initialization_failed", error=str(e))
                raise
        app.state.container = build_container(settings)

    yield

    logger.info("application_shutdown")
    if owns_container:
        await app.state.container.close()
        try:
            await close_db()
            logger.info("database_connections_closed")
        except Exception as e:
            logger.error("database_shutdown_error", error=str(e))


async def add_request_context_middleware(request: Request, call_next: Any) -> Response:
    """
    Add request ID to all requests for tracing.

    Also relays the caller's Authorization header to outbound user lookups.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start_time = time.time()

    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    token = forwarded_authorization.set(request.headers.get("Authorization"))

    logger.info(
        "request_started",
        client_host=request.client.host if request.client else None,
    )

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=time.time() - start_time,
        )
        return response

    except Exception as e:
        logger.error(
            "request_failed",
            error=str(e),
            duration_seconds=time.time() - start_time,
        )
        raise

    finally:
        forwarded_authorization.reset(token)
        structlog.contextvars.clear_contextvars()


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info("resource_not_found", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"success": False, "message": str(exc)},
    )


async def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
    logger.info("access_denied", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"success": False, "message": str(exc)},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        container: Prebuilt components; when omitted they are built from
            settings at startup

    Returns:
        FastAPI: Configured application
    """
    settings = get_settings()

    app = FastAPI(
        title="Order Service",
        description=(
            "Order lifecycle management: creation, ownership checks, status "
            "changes, user enrichment and Kafka notifications."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_request_context_middleware)

    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(AccessDeniedError, access_denied_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(order_router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "service": settings.app_name,
            "version": "1.0.0",
            "status": "operational",
            "environment": settings.app_env,
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        }

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "order_service.api.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=settings.api_workers if not settings.debug else 1,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
