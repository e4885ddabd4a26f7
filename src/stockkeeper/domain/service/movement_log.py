"""Domain service: Movement Log.

Durable audit trail of every stock change. Recording is deliberately
non-fatal: by the time a movement is written the stock mutation has
already committed, and a lost audit record must never undo it. Failures
are logged at ERROR instead.
"""

from __future__ import annotations

import logging

from stockkeeper.domain.exceptions import AuditLogFailure
from stockkeeper.domain.model.movement import StockMovement
from stockkeeper.domain.model.product import Product
from stockkeeper.domain.repository.movement_repository import MovementRepository
from stockkeeper.domain.repository.product_repository import ProductRepository

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class MovementLog:

    def __init__(
        self,
        movement_repo: MovementRepository,
        product_repo: ProductRepository,
    ) -> None:
        self._movement_repo = movement_repo
        self._product_repo = product_repo

    async def record(self, movement: StockMovement) -> StockMovement | None:
        """Append a movement. Returns None if the store refused it."""
        try:
            return await self._movement_repo.append(movement)
        except AuditLogFailure:
            logger.exception(
                "Stock history logging failed for product %s (%s %+d, %d -> %d)",
                movement.product_id,
                movement.movement_type.value,
                movement.delta,
                movement.quantity_before,
                movement.quantity_after,
            )
            return None

    async def list_for_product(
        self, product_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[StockMovement]:
        if limit <= 0:
            return []
        return await self._movement_repo.list_for_product(product_id, limit)

    async def list_for_order(self, order_id: int) -> list[StockMovement]:
        return await self._movement_repo.list_for_order(order_id)

    async def low_stock_products(self) -> list[Product]:
        """Active products at or below their minimum threshold."""
        return await self._product_repo.list_low_stock()
