"""SQLAlchemy table mappings.

Rows are persistence shapes only; repositories translate them to and
from domain objects. ``order_lines.product_id`` deliberately has no
foreign key: a line keeps its own snapshot of the product.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

from stockkeeper.domain.model.order import OrderStatus

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductRow(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="ck_products_available_non_negative"),
    )

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    available_quantity = Column(Integer, nullable=False, default=0, index=True)
    total_reserved = Column(Integer, nullable=False, default=0)
    # NULL counts as active
    is_active = Column(Boolean, nullable=True, default=True)
    min_threshold = Column(Integer, nullable=False, default=5)
    max_threshold = Column(Integer, nullable=False, default=1000)
    last_restocked = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class MovementRow(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_product_created", "product_id", "created_at"),
        CheckConstraint("delta <> 0", name="ck_stock_movements_delta_non_zero"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(64), nullable=False)
    movement_type = Column(String(20), nullable=False, index=True)
    delta = Column(Integer, nullable=False)
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)
    reason = Column(String(200), nullable=False, default="")
    order_id = Column(Integer, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class OrderRow(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(String(64), nullable=False, index=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    stock_deducted = Column(Boolean, nullable=False, default=False)
    delivery_address = Column(String(500), nullable=False)
    notes = Column(String(1000), nullable=False, default="")
    delivery_agent = Column(String(64), nullable=True, index=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    version = Column(Integer, nullable=False, default=1)

    lines = relationship(
        "OrderLineRow",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineRow.position",
        lazy="selectin",
    )


class OrderLineRow(Base):
    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(String(64), nullable=False)
    product_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    restored = Column(Boolean, nullable=False, default=False)

    order = relationship("OrderRow", back_populates="lines")
