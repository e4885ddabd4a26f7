"""Order aggregate: the unit of checkout.

An Order is only ever created after every line item has been reserved, so
new orders start ``PENDING`` with ``stock_deducted = True``. The status
machine below decides which transitions are legal; the stock side effects
of cancellation are driven by ``OrderLifecycle``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from stockkeeper.domain.exceptions import InvalidTransitionError, ValidationError
from stockkeeper.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Fulfilment moves forward only; skipping ahead is allowed (an operator can
# mark a pending order delivered directly).
FULFILMENT_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

MAX_LINE_ITEMS = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrderLineItem:
    """A reserved product line with its price locked at checkout.

    ``product_id`` is a weak reference: the line keeps its own name and
    price snapshot so later catalog changes cannot corrupt the order.
    ``restored`` marks a line whose stock has already been given back
    during a (possibly interrupted) cancellation.
    """

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money
    restored: bool = False

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class Order:
    """Aggregate root for placed orders.

    Use ``Order.place()`` for new orders. The ``__init__`` stays simple so
    the repository can reconstitute persisted orders without re-validating.
    """

    id: int | None
    customer_id: str
    items: list[OrderLineItem]
    delivery_address: str
    notes: str = ""
    status: OrderStatus = OrderStatus.PENDING
    stock_deducted: bool = False
    delivery_agent: str | None = None
    estimated_delivery: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    # Bumped by the repository on every successful save.
    version: int = 0

    @staticmethod
    def place(
        customer_id: str,
        items: list[OrderLineItem],
        delivery_address: str,
        notes: str = "",
    ) -> Order:
        """Build the record for a checkout whose reservations all succeeded."""
        if not customer_id or not customer_id.strip():
            raise ValidationError("Customer ID is required")
        if not delivery_address or not delivery_address.strip():
            raise ValidationError("Delivery address is required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        return Order(
            id=None,
            customer_id=customer_id.strip(),
            items=list(items),
            delivery_address=delivery_address.strip(),
            notes=(notes or "").strip(),
            status=OrderStatus.PENDING,
            stock_deducted=True,
        )

    # --- State transitions ----------------------------------------------------

    def advance_to(
        self,
        status: OrderStatus,
        delivery_agent: str | None = None,
        estimated_delivery: datetime | None = None,
    ) -> bool:
        """Move along the fulfilment sequence.

        Returns False when the order is already in ``status`` (only the
        optional delivery fields are updated). Cancellation is not handled
        here; it goes through ``cancel()`` after stock has been restored.
        """
        if status == OrderStatus.CANCELLED:
            raise InvalidTransitionError("Use cancel() to cancel an order")

        changed = status != self.status
        if changed:
            if self.status.is_terminal:
                raise InvalidTransitionError(
                    f"Cannot change order #{self.id}: status {self.status.value} is final"
                )
            if self.cancellation_in_progress:
                raise InvalidTransitionError(
                    f"Cannot change order #{self.id}: it is being cancelled"
                )
            current = FULFILMENT_SEQUENCE.index(self.status)
            if FULFILMENT_SEQUENCE.index(status) < current:
                raise InvalidTransitionError(
                    f"Cannot move order #{self.id} back from "
                    f"{self.status.value} to {status.value}"
                )
            self.status = status

        if delivery_agent:
            self.delivery_agent = delivery_agent
        if estimated_delivery is not None:
            self.estimated_delivery = estimated_delivery
        self.updated_at = _utcnow()
        return changed

    def mark_line_restored(self, line: OrderLineItem) -> None:
        line.restored = True
        self.updated_at = _utcnow()

    def release_line(self, line: OrderLineItem) -> None:
        """Undo ``mark_line_restored`` when the stock could not be given back."""
        line.restored = False
        self.updated_at = _utcnow()

    def cancel(self) -> None:
        """Transition any non-terminal status -> CANCELLED.

        Stock must already be restored for every line; this clears
        ``stock_deducted`` together with the status change.
        """
        if self.status == OrderStatus.DELIVERED:
            raise InvalidTransitionError(
                f"Cannot cancel order #{self.id}, it has been delivered"
            )
        if self.stock_deducted and self.pending_restorations:
            raise ValidationError(
                f"Order #{self.id} still holds reserved stock; restore it first"
            )
        self.status = OrderStatus.CANCELLED
        self.stock_deducted = False
        self.updated_at = _utcnow()

    # --- Computed properties --------------------------------------------------

    @property
    def total(self) -> Money:
        result = Money(Decimal("0.00"))
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED

    @property
    def pending_restorations(self) -> list[OrderLineItem]:
        """Lines whose reserved stock has not been given back yet."""
        return [item for item in self.items if not item.restored]

    @property
    def cancellation_in_progress(self) -> bool:
        """Some lines are already restored but the order is not cancelled yet."""
        return (
            not self.is_cancelled
            and self.stock_deducted
            and any(item.restored for item in self.items)
        )

    @property
    def order_number(self) -> str:
        return str(self.id or "").rjust(8, "0")[-8:].upper()
