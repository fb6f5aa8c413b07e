"""
Engine and session factory for the SQL order store.

One engine per process, created lazily from settings. SQLite URLs (used by
tests through aiosqlite) get no pool sizing, since its pool does not take it.
"""
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from order_service.config import Settings, get_settings
from order_service.database.models import Base

_engine: Optional[AsyncEngine] = None
_sessions: Optional[async_sessionmaker[AsyncSession]] = None


def engine_options(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for create_async_engine."""
    options: Dict[str, Any] = {"echo": settings.database_echo}
    if settings.database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
    )
    return options


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, **engine_options(settings))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Session factory shared by the order store and item catalog.

    Sessions keep loaded attributes after commit so stores can map records to
    domain objects once the transaction is closed.
    """
    global _sessions
    if _sessions is None:
        _sessions = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _sessions


async def init_db() -> None:
    """Create the items, orders and order_lines tables when missing."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _sessions
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None
