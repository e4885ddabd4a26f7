"""Application services: product flag and threshold updates.

Neither touches stock. Products referenced by orders are never deleted;
deactivation is how a product leaves the catalog.
"""

from __future__ import annotations

import logging

from stockkeeper.application.dto import ProductStockDTO, product_to_dto
from stockkeeper.domain.exceptions import ProductNotFoundError
from stockkeeper.domain.model.product import validate_thresholds
from stockkeeper.domain.repository.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class SetProductActiveHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    async def handle(self, product_id: str, active: bool) -> ProductStockDTO:
        product = await self._product_repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        product.is_active = active
        await self._product_repo.update_details(product)
        logger.info("Product %s %s", product_id, "activated" if active else "deactivated")
        return product_to_dto(product)


class UpdateThresholdsHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    async def handle(
        self,
        product_id: str,
        min_threshold: int | None = None,
        max_threshold: int | None = None,
    ) -> ProductStockDTO:
        product = await self._product_repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        new_min = product.min_threshold if min_threshold is None else min_threshold
        new_max = product.max_threshold if max_threshold is None else max_threshold
        validate_thresholds(new_min, new_max)

        product.min_threshold = new_min
        product.max_threshold = new_max
        await self._product_repo.update_details(product)
        return product_to_dto(product)
