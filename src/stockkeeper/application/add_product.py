"""Application service: Add Product use case."""

from __future__ import annotations

import logging

from stockkeeper.application.dto import ProductStockDTO, product_to_dto
from stockkeeper.domain.model.movement import MovementType, StockMovement
from stockkeeper.domain.model.product import (
    DEFAULT_MAX_THRESHOLD,
    DEFAULT_MIN_THRESHOLD,
    Product,
)
from stockkeeper.domain.model.value_objects import Money
from stockkeeper.domain.repository.product_repository import ProductRepository
from stockkeeper.domain.service.movement_log import MovementLog

logger = logging.getLogger(__name__)


class AddProductHandler:

    def __init__(self, product_repo: ProductRepository, movement_log: MovementLog) -> None:
        self._product_repo = product_repo
        self._movement_log = movement_log

    async def handle(
        self,
        name: str,
        price: str,
        initial_quantity: int = 0,
        min_threshold: int = DEFAULT_MIN_THRESHOLD,
        max_threshold: int = DEFAULT_MAX_THRESHOLD,
        product_id: str | None = None,
    ) -> ProductStockDTO:
        """Add a product to the catalog with its opening stock."""
        if product_id is None:
            # Auto-assign the next numeric id
            existing = await self._product_repo.list_all()
            numeric = [int(p.id) for p in existing if p.id.isdigit()]
            product_id = str(max(numeric) + 1) if numeric else "1"

        product = Product.create(
            product_id=product_id,
            name=name,
            price=Money.of(price),
            initial_quantity=initial_quantity,
            min_threshold=min_threshold,
            max_threshold=max_threshold,
        )
        await self._product_repo.add(product)
        logger.info("Product %s (%s) added with %d units", product.id, product.name, initial_quantity)

        if initial_quantity > 0:
            await self._movement_log.record(
                StockMovement(
                    product_id=product.id,
                    movement_type=MovementType.INITIAL_STOCK,
                    delta=initial_quantity,
                    quantity_before=0,
                    quantity_after=initial_quantity,
                    reason="Initial stock",
                )
            )
        return product_to_dto(product)
