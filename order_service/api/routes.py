"""
API routes for order management.

Administrators bypass the ownership policy; every other principal goes
through it before the lifecycle service is called.
"""
import uuid
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from order_service.container import Container
from order_service.core.exceptions import AccessDeniedError

from .dependencies import Principal, get_container, get_principal
from .schemas import (
    ApiResponse,
    ChangeOrderStatusRequest,
    HealthCheckResponse,
    OrderCreateRequest,
    OrderResponse,
    OrderUpdateRequest,
)

logger = structlog.get_logger(__name__)

# Create routers
order_router = APIRouter(prefix="/api/v1/orders", tags=["orders"])
monitoring_router = APIRouter(tags=["monitoring"])


def _split(values: List[str]) -> List[str]:
    """Flatten repeated and comma-separated query values."""
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def _parse_ids(values: List[str]) -> List[uuid.UUID]:
    try:
        return [uuid.UUID(value) for value in _split(values)]
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="ids must be UUIDs",
        )


@order_router.post(
    "",
    response_model=ApiResponse[OrderResponse],
    response_model_exclude_none=True,
    summary="Create an order",
)
async def create_order(
    request: OrderCreateRequest,
    principal: Principal = Depends(get_principal),
    container: Container = Depends(get_container),
) -> ApiResponse[OrderResponse]:
    """Create an order in CREATED status and announce it on ORDER_CREATED."""
    if not principal.is_admin:
        container.policy.can_create(principal.user_id, request.user_id)

    logger.info(
        "api_create_order_request",
        principal_id=principal.user_id,
        user_id=request.user_id,
        lines=len(request.order_items),
    )
    view = await container.order_service.create(request.user_id, request.line_requests())
    return ApiResponse.ok("Order created", OrderResponse.from_view(view))


@order_router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderResponse],
    response_model_exclude_none=True,
    summary="Get an order",
)
async def get_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    container: Container = Depends(get_container),
) -> ApiResponse[OrderResponse]:
    if not principal.is_admin:
        await container.policy.can_access(principal.user_id, order_id)

    view = await container.order_service.get_by_id(order_id)
    return ApiResponse.ok("Order found", OrderResponse.from_view(view))


@order_router.get(
    "",
    response_model=ApiResponse[List[OrderResponse]],
    response_model_exclude_none=True,
    summary="List orders by ids or by statuses",
)
async def list_orders(
    ids: Optional[List[str]] = Query(default=None),
    statuses: Optional[List[str]] = Query(default=None),
    principal: Principal = Depends(get_principal),
    container: Container = Depends(get_container),
) -> ApiResponse[List[OrderResponse]]:
    """
    List orders.

    ``ids`` is open to owners of every listed order; ``statuses`` is for
    administrators only. Empty parameters yield an empty success.
    """
    if ids is not None:
        order_ids = _parse_ids(ids)
        if not principal.is_admin:
            allowed = await container.policy.can_access_batch(principal.user_id, order_ids)
            if not allowed:
                raise AccessDeniedError("You do not have rights to access these orders")
        if not order_ids:
            return ApiResponse.ok("Orders found")
        views = await container.order_service.get_all_by_ids(order_ids)
        return ApiResponse.ok("Orders found", [OrderResponse.from_view(v) for v in views])

    if statuses is not None:
        if not principal.is_admin:
            raise AccessDeniedError("Only administrators may list orders by status")
        names = _split(statuses)
        if not names:
            return ApiResponse.ok("Orders found")
        views = await container.order_service.get_all_by_statuses(names)
        return ApiResponse.ok("Orders found", [OrderResponse.from_view(v) for v in views])

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Either ids or statuses must be provided",
    )


@order_router.patch(
    "/{order_id}",
    response_model=ApiResponse[OrderResponse],
    response_model_exclude_none=True,
    summary="Replace the lines of an order",
)
async def update_order(
    order_id: uuid.UUID,
    request: OrderUpdateRequest,
    principal: Principal = Depends(get_principal),
    container: Container = Depends(get_container),
) -> ApiResponse[OrderResponse]:
    if not principal.is_admin:
        await container.policy.can_manage(principal.user_id, order_id)

    view = await container.order_service.update(order_id, request.line_requests())
    return ApiResponse.ok("Order updated", OrderResponse.from_view(view))


@order_router.patch(
    "/{order_id}/status",
    response_model=ApiResponse[OrderResponse],
    response_model_exclude_none=True,
    summary="Overwrite the status of an order",
)
async def change_order_status(
    order_id: uuid.UUID,
    request: ChangeOrderStatusRequest,
    principal: Principal = Depends(get_principal),
    container: Container = Depends(get_container),
) -> ApiResponse[OrderResponse]:
    if not principal.is_admin:
        raise AccessDeniedError("Only administrators may change order status")

    view = await container.order_service.change_status(order_id, request.status)
    return ApiResponse.ok("Order status changed", OrderResponse.from_view(view))


@order_router.delete(
    "/{order_id}",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
    summary="Delete an order",
)
async def delete_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    container: Container = Depends(get_container),
) -> ApiResponse[None]:
    if not principal.is_admin:
        await container.policy.can_manage(principal.user_id, order_id)

    await container.order_service.delete(order_id)
    return ApiResponse.ok("Order deleted")


# Monitoring endpoints


@monitoring_router.get("/health", response_model=HealthCheckResponse)
async def health(
    response: Response, container: Container = Depends(get_container)
) -> Dict[str, Any]:
    """Comprehensive health check of all dependencies."""
    result = await container.health.check_all()
    if result["status"] != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result


@monitoring_router.get("/health/live")
async def liveness(container: Container = Depends(get_container)) -> Dict[str, Any]:
    """Kubernetes liveness probe."""
    return await container.health.liveness()


@monitoring_router.get("/health/ready")
async def readiness(
    response: Response, container: Container = Depends(get_container)
) -> Dict[str, Any]:
    """Kubernetes readiness probe."""
    result = await container.health.readiness()
    if result["status"] != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result


@monitoring_router.get("/metrics")
async def prometheus_metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
