"""Domain service: Stock Ledger.

The sole authority for changing a product's ``available_quantity``.

Reservation follows a two-phase shape:

  Phase 1, advisory read: load the product and reject requests that are
            already doomed (missing, inactive, short). Cheap, and it never
            establishes ordering against other writers.
  Phase 2, authoritative write: one atomic conditional decrement in the
            store, which re-checks the same predicates at write time.

If phase 2 matches nothing after phase 1 passed, another writer won the
race. The ledger re-reads and reports the fresh state; it does not retry,
the caller decides whether the whole checkout should be retried.

Correctness rests entirely on phase 2. Phase 1 only reduces contention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from stockkeeper.domain.exceptions import (
    ConcurrentModificationError,
    InsufficientStockError,
    ProductNotFoundError,
    ProductUnavailableError,
    ValidationError,
)
from stockkeeper.domain.model.movement import (
    MANUAL_MOVEMENT_DIRECTIONS,
    MovementType,
    StockMovement,
    validate_reason,
)
from stockkeeper.domain.model.product import Product
from stockkeeper.domain.repository.product_repository import ProductRepository
from stockkeeper.domain.service.movement_log import MovementLog

logger = logging.getLogger(__name__)

RESTORE_MOVEMENT_TYPES = frozenset(
    {MovementType.ORDER_CANCEL, MovementType.ADJUSTMENT, MovementType.RETURNED}
)
MAX_ADJUST_ATTEMPTS = 5


@dataclass(frozen=True)
class StockChange:
    """Outcome of a successful ledger mutation.

    ``movement`` is None when the change committed but its audit record
    could not be written (or when an adjustment changed nothing).
    ``product`` is the advisory snapshot read before a reservation, used
    for the name and price captured on order lines.
    """

    product_id: str
    movement_type: MovementType
    delta: int
    quantity_before: int
    quantity_after: int
    movement: StockMovement | None = None
    product: Product | None = None

    @property
    def audited(self) -> bool:
        return self.movement is not None


class StockLedger:

    def __init__(self, product_repo: ProductRepository, movement_log: MovementLog) -> None:
        self._product_repo = product_repo
        self._movement_log = movement_log

    # --- Reservation protocol -------------------------------------------------

    async def check_availability(self, product_id: str, quantity: int) -> Product:
        """Advisory check used before a reservation (e.g. when filling a cart).

        Raises the same errors as the fast path of ``reserve`` and changes
        nothing. Passing this check does not guarantee a later reservation.
        """
        _require_positive(quantity, "Reservation")
        product = await self._product_repo.get_by_id(product_id)
        return _classify(product_id, quantity, product)

    async def reserve(
        self,
        product_id: str,
        quantity: int,
        order_id: int | None = None,
        reason: str = "Stock reserved for order",
    ) -> StockChange:
        """Take ``quantity`` units from a product, or raise.

        Raises ProductNotFoundError, ProductUnavailableError or
        InsufficientStockError (carrying the current available quantity).
        """
        _require_positive(quantity, "Reservation")
        validate_reason(reason)
        logger.debug("Attempting to reserve %d units of product %s", quantity, product_id)

        # Phase 1: advisory read
        product = await self._product_repo.get_by_id(product_id)
        product = _classify(product_id, quantity, product)

        # Phase 2: authoritative conditional write
        after = await self._product_repo.decrement_if_available(product_id, quantity)
        if after is None:
            fresh = await self._product_repo.get_by_id(product_id)
            logger.warning(
                "Lost reservation race on product %s: wanted %d, now %s",
                product_id,
                quantity,
                "gone" if fresh is None else fresh.available_quantity,
            )
            if fresh is None:
                raise ProductNotFoundError(product_id)
            if not fresh.active:
                raise ProductUnavailableError(product_id, fresh.name)
            raise InsufficientStockError(
                product_id,
                requested=quantity,
                available=fresh.available_quantity,
                product_name=fresh.name,
                lost_race=True,
            )

        before = after + quantity
        logger.info(
            "Reserved %d units of product %s (%d -> %d)", quantity, product_id, before, after
        )
        change = await self._log_change(
            product_id, MovementType.SALE, before, after, reason, order_id
        )
        return replace(change, product=product)

    async def restore(
        self,
        product_id: str,
        quantity: int,
        reason: str,
        order_id: int | None = None,
        movement_type: MovementType = MovementType.ORDER_CANCEL,
    ) -> StockChange:
        """Give back ``quantity`` units. Always safe: stock only grows.

        The ledger does not deduplicate; callers make sure each reserved
        quantity is restored at most once.
        """
        _require_positive(quantity, "Restore")
        validate_reason(reason)
        if movement_type not in RESTORE_MOVEMENT_TYPES:
            raise ValidationError(
                f"{movement_type.value} cannot be used to restore stock"
            )

        after = await self._product_repo.increment(product_id, quantity)
        if after is None:
            raise ProductNotFoundError(product_id)

        before = after - quantity
        logger.info(
            "Restored %d units of product %s (%d -> %d)", quantity, product_id, before, after
        )
        return await self._log_change(
            product_id, movement_type, before, after, reason, order_id
        )

    # --- Operator corrections -------------------------------------------------

    async def manual_adjust(
        self,
        product_id: str,
        new_quantity: int,
        reason: str | None = None,
        movement_type: MovementType = MovementType.ADJUSTMENT,
    ) -> StockChange:
        """Set the quantity directly (restock, damage, corrections).

        Uses compare-and-swap so a concurrent reservation between the read
        and the write is never overwritten; the write is retried against
        the fresh value a bounded number of times.
        """
        if not isinstance(new_quantity, int) or isinstance(new_quantity, bool) or new_quantity < 0:
            raise ValidationError("Stock must be a non-negative integer")
        if movement_type not in MANUAL_MOVEMENT_DIRECTIONS:
            raise ValidationError(
                f"{movement_type.value} is not a manual adjustment type"
            )
        reason = validate_reason(reason or f"Manual stock {movement_type.value.lower()}")

        for attempt in range(1, MAX_ADJUST_ATTEMPTS + 1):
            product = await self._product_repo.get_by_id(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            before = product.available_quantity
            delta = new_quantity - before
            if delta == 0:
                return StockChange(product_id, movement_type, 0, before, before)
            _check_direction(movement_type, delta)

            restocked_at = datetime.now(timezone.utc) if delta > 0 else None
            swapped = await self._product_repo.set_quantity_if_unchanged(
                product_id, before, new_quantity, restocked_at=restocked_at
            )
            if swapped:
                logger.info(
                    "Adjusted product %s stock %d -> %d (%s)",
                    product_id,
                    before,
                    new_quantity,
                    movement_type.value,
                )
                return await self._log_change(
                    product_id, movement_type, before, new_quantity, reason, None
                )
            logger.debug(
                "Stock of product %s changed during adjustment (attempt %d)",
                product_id,
                attempt,
            )

        raise ConcurrentModificationError(
            f"Stock of product '{product_id}' kept changing; adjustment not applied"
        )

    # --- Internal helpers -----------------------------------------------------

    async def _log_change(
        self,
        product_id: str,
        movement_type: MovementType,
        before: int,
        after: int,
        reason: str,
        order_id: int | None,
    ) -> StockChange:
        # The stock write has committed by now; a movement that cannot be
        # built is an audit failure, same as one that cannot be stored.
        try:
            movement = StockMovement(
                product_id=product_id,
                movement_type=movement_type,
                delta=after - before,
                quantity_before=before,
                quantity_after=after,
                reason=reason,
                order_id=order_id,
            )
        except ValidationError:
            logger.exception(
                "Stock history logging failed for product %s (%s %+d, %d -> %d)",
                product_id,
                movement_type.value,
                after - before,
                before,
                after,
            )
            recorded = None
        else:
            recorded = await self._movement_log.record(movement)
        return StockChange(
            product_id=product_id,
            movement_type=movement_type,
            delta=after - before,
            quantity_before=before,
            quantity_after=after,
            movement=recorded,
        )


def _require_positive(quantity: int, what: str) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValidationError(f"{what} quantity must be positive")


def _classify(product_id: str, quantity: int, product: Product | None) -> Product:
    if product is None:
        raise ProductNotFoundError(product_id)
    if not product.active:
        raise ProductUnavailableError(product_id, product.name)
    if product.available_quantity < quantity:
        raise InsufficientStockError(
            product_id,
            requested=quantity,
            available=product.available_quantity,
            product_name=product.name,
        )
    return product


def _check_direction(movement_type: MovementType, delta: int) -> None:
    direction = MANUAL_MOVEMENT_DIRECTIONS[movement_type]
    if direction is not None and (delta > 0) != (direction > 0):
        expected = "increase" if direction > 0 else "decrease"
        raise ValidationError(
            f"{movement_type.value} must {expected} stock (change was {delta:+d})"
        )
