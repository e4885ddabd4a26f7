"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world. Money is pre-formatted.
"""

from __future__ import annotations

from dataclasses import dataclass

from stockkeeper.domain.model.movement import StockMovement
from stockkeeper.domain.model.order import Order
from stockkeeper.domain.model.product import Product
from stockkeeper.domain.service.stock_ledger import StockChange

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M UTC"


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: one cart line (product id + quantity)."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class OrderLineItemDTO:
    product_id: str
    product_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "$15.00"
    line_total: str


@dataclass(frozen=True)
class OrderDTO:
    id: int
    order_number: str
    customer_id: str
    status: str
    stock_deducted: bool
    items: list[OrderLineItemDTO]
    total: str
    delivery_address: str
    notes: str
    delivery_agent: str | None
    estimated_delivery: str | None
    created_at: str


@dataclass(frozen=True)
class ProductStockDTO:
    product_id: str
    name: str
    price: str
    available: int
    total_reserved: int
    min_threshold: int
    max_threshold: int
    status: str
    active: bool


@dataclass(frozen=True)
class MovementDTO:
    movement_type: str
    delta: int
    quantity_before: int
    quantity_after: int
    reason: str
    order_id: int | None
    created_at: str


@dataclass(frozen=True)
class StockChangeDTO:
    product_id: str
    movement_type: str
    delta: int
    quantity_before: int
    quantity_after: int
    audited: bool


def order_to_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        id=order.id,  # type: ignore[arg-type]
        order_number=order.order_number,
        customer_id=order.customer_id,
        status=order.status.value,
        stock_deducted=order.stock_deducted,
        items=[
            OrderLineItemDTO(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity.value,
                unit_price=str(item.unit_price),
                line_total=str(item.line_total),
            )
            for item in order.items
        ],
        total=str(order.total),
        delivery_address=order.delivery_address,
        notes=order.notes,
        delivery_agent=order.delivery_agent,
        estimated_delivery=(
            order.estimated_delivery.strftime(_TIMESTAMP_FORMAT)
            if order.estimated_delivery
            else None
        ),
        created_at=order.created_at.strftime(_TIMESTAMP_FORMAT),
    )


def product_to_dto(product: Product) -> ProductStockDTO:
    return ProductStockDTO(
        product_id=product.id,
        name=product.name,
        price=str(product.price),
        available=product.available_quantity,
        total_reserved=product.total_reserved,
        min_threshold=product.min_threshold,
        max_threshold=product.max_threshold,
        status=product.stock_status.value,
        active=product.active,
    )


def movement_to_dto(movement: StockMovement) -> MovementDTO:
    return MovementDTO(
        movement_type=movement.movement_type.value,
        delta=movement.delta,
        quantity_before=movement.quantity_before,
        quantity_after=movement.quantity_after,
        reason=movement.reason,
        order_id=movement.order_id,
        created_at=movement.created_at.strftime(_TIMESTAMP_FORMAT),
    )


def change_to_dto(change: StockChange) -> StockChangeDTO:
    return StockChangeDTO(
        product_id=change.product_id,
        movement_type=change.movement_type.value,
        delta=change.delta,
        quantity_before=change.quantity_before,
        quantity_after=change.quantity_after,
        audited=change.audited,
    )
