"""Domain service: Order Lifecycle.

Drives an order through its statuses and owns the one stock side effect
of the state machine: giving reserved stock back on cancellation.

Stock is deducted when the order is placed, not when it is delivered, so
a ``pending`` order keeps its stock until someone cancels it.
``expire_stale_pending`` is the explicit, opt-in way to release it.

Order saves are version-checked. Every operation here re-reads the order
and re-checks its rules when a save is refused because someone else
wrote the order in between.

Cancellation is retry-safe. A line is marked ``restored`` and the order
saved before its stock goes back; if the restore fails the mark is
released again. Re-running an interrupted cancellation therefore only
restores the lines that are still outstanding, and two concurrent
cancellations never restore the same line twice. Once a line has been
claimed, status updates are refused until the cancellation finishes.
``stock_deducted`` is cleared in the same save as the status change.
Cancelling an order that is already cancelled is a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from stockkeeper.domain.exceptions import (
    ConcurrentModificationError,
    DomainException,
    InvalidTransitionError,
    OrderNotFoundError,
)
from stockkeeper.domain.model.movement import MovementType
from stockkeeper.domain.model.order import Order, OrderLineItem, OrderStatus
from stockkeeper.domain.repository.order_repository import OrderRepository
from stockkeeper.domain.service.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

CANCEL_REASON = "Stock restored due to order cancellation"
EXPIRY_REASON = "Stock restored after pending order expired"

# Refused saves tolerated before an operation gives up.
MAX_SAVE_ATTEMPTS = 5


@dataclass(frozen=True)
class StatusChange:
    order: Order
    changed: bool

    @property
    def message(self) -> str:
        if not self.changed:
            return f"Order #{self.order.id} already {self.order.status.value}"
        if self.order.status == OrderStatus.CANCELLED:
            return "Order cancelled and stock restored"
        if self.order.status == OrderStatus.DELIVERED:
            return "Order marked as delivered"
        if self.order.status == OrderStatus.CONFIRMED:
            return "Order confirmed"
        return "Order status updated successfully"


class OrderLifecycle:

    def __init__(self, order_repo: OrderRepository, ledger: StockLedger) -> None:
        self._order_repo = order_repo
        self._ledger = ledger

    async def open_order(
        self,
        customer_id: str,
        items: list[OrderLineItem],
        delivery_address: str,
        notes: str = "",
    ) -> Order:
        """Record an order whose line items are already reserved."""
        order = Order.place(customer_id, items, delivery_address, notes)
        await self._order_repo.save(order)
        logger.info(
            "Order #%s placed for customer %s (%d lines, total %s)",
            order.id,
            order.customer_id,
            len(order.items),
            order.total,
        )
        return order

    async def get(self, order_id: int) -> Order:
        order = await self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        delivery_agent: str | None = None,
        estimated_delivery: datetime | None = None,
    ) -> StatusChange:
        """Apply a status change coming from the delivery/admin side.

        A save refused because the order changed since it was read is
        retried on a fresh copy, so the transition is re-checked against
        whatever the other writer did (a cancellation wins).
        """
        if status == OrderStatus.CANCELLED:
            return await self.cancel(order_id)

        for _ in range(MAX_SAVE_ATTEMPTS):
            order = await self.get(order_id)
            changed = order.advance_to(status, delivery_agent, estimated_delivery)
            try:
                await self._order_repo.save(order)
            except ConcurrentModificationError:
                logger.debug("Order #%s changed while updating its status; retrying", order_id)
                continue
            if changed:
                logger.info("Order #%s status updated to %s", order_id, status.value)
            return StatusChange(order, changed)
        raise ConcurrentModificationError(
            f"Order #{order_id} kept changing; status not updated"
        )

    async def cancel(self, order_id: int, reason: str = CANCEL_REASON) -> StatusChange:
        """Cancel an order, giving each line's stock back exactly once.

        Every line is claimed (marked restored and saved) before its stock
        is restored. The claim is a version-checked save, so of two writers
        racing on the same order only one gets to restore a given line.
        """
        conflicts = 0
        while conflicts < MAX_SAVE_ATTEMPTS:
            order = await self.get(order_id)

            if order.is_cancelled and not order.stock_deducted:
                logger.info("Order #%s already cancelled; nothing to restore", order_id)
                return StatusChange(order, False)
            if order.status == OrderStatus.DELIVERED:
                raise InvalidTransitionError(
                    f"Cannot cancel order #{order_id}, it has been delivered"
                )

            pending = [
                index for index, item in enumerate(order.items)
                if order.stock_deducted and not item.restored
            ]
            try:
                if pending:
                    await self._restore_line(order, pending[0], reason)
                    continue
                order.cancel()
                await self._order_repo.save(order)
            except ConcurrentModificationError:
                conflicts += 1
                logger.debug("Order #%s changed while cancelling; re-reading", order_id)
                continue

            logger.info("Order #%s cancelled and its stock restored", order_id)
            return StatusChange(order, True)

        raise ConcurrentModificationError(
            f"Order #{order_id} kept changing; cancellation not finished"
        )

    async def _restore_line(self, order: Order, index: int, reason: str) -> None:
        line = order.items[index]
        order.mark_line_restored(line)
        await self._order_repo.save(order)
        try:
            await self._ledger.restore(
                line.product_id,
                line.quantity.value,
                reason,
                order_id=order.id,
                movement_type=MovementType.ORDER_CANCEL,
            )
        except DomainException:
            try:
                await self._release_claim(order.id, index)  # type: ignore[arg-type]
            except DomainException:
                logger.exception(
                    "Could not release the claim on %d x %s for order #%s; "
                    "that stock must be restored by hand",
                    line.quantity.value,
                    line.product_id,
                    order.id,
                )
            raise

    async def _release_claim(self, order_id: int, index: int) -> None:
        """Put a claimed line back to pending after its restore failed."""
        for _ in range(MAX_SAVE_ATTEMPTS):
            order = await self.get(order_id)
            order.release_line(order.items[index])
            try:
                await self._order_repo.save(order)
            except ConcurrentModificationError:
                continue
            return
        raise ConcurrentModificationError(
            f"Order #{order_id} kept changing; line {index + 1} still claimed"
        )

    async def expire_stale_pending(
        self, max_age: timedelta, now: datetime | None = None
    ) -> list[Order]:
        """Cancel ``pending`` orders older than ``max_age``, restoring their stock.

        Failures on one order are logged and do not stop the sweep; the
        order stays pending and is picked up again on the next run.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - max_age
        stale = await self._order_repo.list_by_status_before(OrderStatus.PENDING, cutoff)

        expired: list[Order] = []
        for order in stale:
            try:
                change = await self.cancel(order.id, reason=EXPIRY_REASON)  # type: ignore[arg-type]
            except DomainException:
                logger.exception("Could not expire pending order #%s", order.id)
                continue
            expired.append(change.order)

        if expired:
            logger.info("Expired %d stale pending orders", len(expired))
        return expired
