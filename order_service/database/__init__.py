"""Persistence for orders and catalog items."""
from .connection import close_db, engine_options, get_engine, get_session_factory, init_db
from .in_memory import InMemoryItemCatalog, InMemoryOrderStore
from .models import Base, ItemRecord, OrderLineRecord, OrderRecord
from .stores import SqlAlchemyItemCatalog, SqlAlchemyOrderStore

__all__ = [
    "Base",
    "InMemoryItemCatalog",
    "InMemoryOrderStore",
    "ItemRecord",
    "OrderLineRecord",
    "OrderRecord",
    "SqlAlchemyItemCatalog",
    "SqlAlchemyOrderStore",
    "close_db",
    "engine_options",
    "get_engine",
    "get_session_factory",
    "init_db",
]
