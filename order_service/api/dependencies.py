"""
Request-scoped dependencies: the calling principal and the component container.

The gateway validates tokens and forwards the subject in ``X-User-Id`` and
its roles in ``X-User-Roles`` (comma separated).
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from fastapi import Header, HTTPException, Request, status

from order_service.container import Container

ADMIN_ROLE = "ADMIN"


@dataclass(frozen=True)
class Principal:
    user_id: str
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles


async def get_principal(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_roles: Optional[str] = Header(default=None, alias="X-User-Roles"),
) -> Principal:
    """
    Resolve the authenticated caller.

    Raises:
        HTTPException: 401 if no principal was forwarded
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    roles = frozenset(
        role.strip().upper().removeprefix("ROLE_")
        for role in (x_user_roles or "").split(",")
        if role.strip()
    )
    return Principal(user_id=x_user_id.strip(), roles=roles)


def get_container(request: Request) -> Container:
    return request.app.state.container
