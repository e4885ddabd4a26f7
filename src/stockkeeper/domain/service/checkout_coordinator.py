"""Domain service: Checkout Coordinator.

Makes a multi-item checkout look atomic without a cross-product
transaction. Items are reserved one at a time, in input order; every
successful reservation is pushed onto a compensation stack. When any step
fails, for any reason (a stock error, a storage error, a timeout or task
cancellation), the stack is unwound most-recent-first, restoring each
reservation, and only then does the failure reach the caller.

A restoration that fails during unwinding is logged and recorded on the
raised ``CheckoutError``; the loop carries on with the next entry and the
original failure is what gets reported.

There is still a window between the last reservation and the order being
saved in which a process crash leaves stock reserved with no order. That
window is accepted; a stronger design would record a pending-order intent
before reserving and reconcile orphans afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from stockkeeper.domain.exceptions import (
    CheckoutError,
    CheckoutTimeoutError,
    CompensationFailure,
    DomainException,
    ValidationError,
)
from stockkeeper.domain.model.movement import MovementType
from stockkeeper.domain.model.order import MAX_LINE_ITEMS, Order, OrderLineItem
from stockkeeper.domain.model.value_objects import Money, Quantity
from stockkeeper.domain.service.order_lifecycle import OrderLifecycle
from stockkeeper.domain.service.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

ROLLBACK_REASON = "Stock restored after failed checkout"


@dataclass(frozen=True)
class CheckoutItem:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class ReservedLine:
    """A committed saga step; undone by restoring ``quantity``."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: Money

    def to_line_item(self) -> OrderLineItem:
        return OrderLineItem(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=Quantity(self.quantity),
            unit_price=self.unit_price,
        )


class ReservationSaga:
    """One checkout's reservations and their compensation stack."""

    def __init__(self, ledger: StockLedger) -> None:
        self._ledger = ledger
        self.committed: list[ReservedLine] = []
        self.current: CheckoutItem | None = None
        self.compensation_failures: tuple[CompensationFailure, ...] = ()

    async def run(self, items: list[CheckoutItem]) -> list[ReservedLine]:
        try:
            for item in items:
                self.current = item
                change = await self._ledger.reserve(item.product_id, item.quantity)
                product = change.product
                self.committed.append(
                    ReservedLine(
                        product_id=item.product_id,
                        product_name=product.name if product else item.product_id,
                        quantity=item.quantity,
                        unit_price=product.price if product else Money.zero(),
                    )
                )
            self.current = None
        except BaseException:
            # Also runs on CancelledError so a timed-out checkout never
            # leaves reservations behind.
            await asyncio.shield(self.compensate())
            raise
        return list(self.committed)

    async def compensate(self) -> tuple[CompensationFailure, ...]:
        failures: list[CompensationFailure] = []
        while self.committed:
            line = self.committed.pop()
            try:
                await self._ledger.restore(
                    line.product_id,
                    line.quantity,
                    ROLLBACK_REASON,
                    movement_type=MovementType.ADJUSTMENT,
                )
            except DomainException as exc:
                logger.exception(
                    "Stock rollback failed for product %s (qty %d)",
                    line.product_id,
                    line.quantity,
                )
                failures.append(CompensationFailure(line.product_id, line.quantity, str(exc)))
        self.compensation_failures += tuple(failures)
        return tuple(failures)


class CheckoutCoordinator:

    def __init__(
        self,
        ledger: StockLedger,
        lifecycle: OrderLifecycle,
        timeout: float | None = None,
    ) -> None:
        self._ledger = ledger
        self._lifecycle = lifecycle
        self._timeout = timeout

    async def place_order(
        self,
        customer_id: str,
        items: list[CheckoutItem],
        delivery_address: str,
        notes: str = "",
    ) -> Order:
        """Reserve every item and record the order, or reserve nothing.

        Raises CheckoutError (CheckoutTimeoutError on timeout) after all
        committed reservations have been compensated.
        """
        _validate_request(customer_id, items, delivery_address)

        saga = ReservationSaga(self._ledger)
        try:
            if self._timeout is None:
                reserved = await saga.run(items)
            else:
                reserved = await asyncio.wait_for(saga.run(items), self._timeout)
        except asyncio.TimeoutError as exc:
            item = saga.current
            logger.warning("Checkout for customer %s timed out; reservations rolled back", customer_id)
            raise CheckoutTimeoutError(
                item.product_id if item else None,
                item.quantity if item else None,
                exc,
                saga.compensation_failures,
            ) from exc
        except DomainException as exc:
            item = saga.current
            logger.info(
                "Checkout for customer %s failed on product %s: %s",
                customer_id,
                item.product_id if item else "?",
                exc,
            )
            raise CheckoutError(
                item.product_id if item else None,
                item.quantity if item else None,
                exc,
                saga.compensation_failures,
            ) from exc

        try:
            return await self._lifecycle.open_order(
                customer_id,
                [line.to_line_item() for line in reserved],
                delivery_address,
                notes,
            )
        except DomainException as exc:
            logger.error("Order record for customer %s could not be saved; rolling back", customer_id)
            failures = await saga.compensate()
            raise CheckoutError(None, None, exc, failures) from exc


def _validate_request(customer_id: str, items: list[CheckoutItem], delivery_address: str) -> None:
    """Reject requests that could never become an order before reserving anything."""
    if not customer_id or not customer_id.strip():
        raise ValidationError("Customer ID is required")
    if not delivery_address or not delivery_address.strip():
        raise ValidationError("Delivery address is required")
    if not items:
        raise ValidationError("Cart is empty")
    if len(items) > MAX_LINE_ITEMS:
        raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

    seen: set[str] = set()
    for item in items:
        if item.product_id in seen:
            raise ValidationError(
                f"Product '{item.product_id}' appears more than once; merge quantities first"
            )
        seen.add(item.product_id)
        Quantity(item.quantity)
