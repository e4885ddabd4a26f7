"""Abstract repository for stock movements (append-only)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from stockkeeper.domain.model.movement import StockMovement


class MovementRepository(ABC):

    @abstractmethod
    async def append(self, movement: StockMovement) -> StockMovement:
        """Store a movement and return it with its id assigned.

        Raises AuditLogFailure when the store cannot record it.
        """

    @abstractmethod
    async def list_for_product(self, product_id: str, limit: int) -> list[StockMovement]:
        """Return up to ``limit`` movements for a product, newest first."""

    @abstractmethod
    async def list_for_order(self, order_id: int) -> list[StockMovement]:
        """Return every movement linked to an order, oldest first."""
