"""SQLAlchemy database models for the order service."""
import uuid
from datetime import date, datetime
from typing import List

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ItemRecord(Base):
    """
    Catalog items table.

    Items are referenced by order lines but owned by the catalog; prices are
    stored in minor currency units.
    """

    __tablename__ = "items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (CheckConstraint("price >= 0", name="check_item_price_non_negative"),)

    def __repr__(self) -> str:
        return f"<ItemRecord(id={self.id}, name={self.name}, price={self.price})>"


class OrderRecord(Base):
    """
    Orders table.

    An order row owns its line rows; saving an order replaces its lines.
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    creation_date: Mapped[date] = mapped_column(Date, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        onupdate=func.now(),
    )

    lines: Mapped[List["OrderLineRecord"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineRecord.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<OrderRecord(id={self.id}, user_id={self.user_id}, status={self.status})>"


class OrderLineRecord(Base):
    """
    Order lines table.

    Each line keeps a snapshot of the item name and unit price taken when the
    line was created.
    """

    __tablename__ = "order_lines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped[OrderRecord] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_line_quantity_positive"),
        Index("idx_order_lines_order_position", "order_id", "position"),
    )
