"""Application service: Movement History query."""

from __future__ import annotations

from dataclasses import dataclass

from stockkeeper.application.dto import (
    MovementDTO,
    ProductStockDTO,
    movement_to_dto,
    product_to_dto,
)
from stockkeeper.domain.exceptions import ProductNotFoundError
from stockkeeper.domain.repository.product_repository import ProductRepository
from stockkeeper.domain.service.movement_log import DEFAULT_HISTORY_LIMIT, MovementLog


@dataclass(frozen=True)
class MovementHistoryDTO:
    product: ProductStockDTO
    movements: list[MovementDTO]


class MovementHistoryHandler:

    def __init__(self, product_repo: ProductRepository, movement_log: MovementLog) -> None:
        self._product_repo = product_repo
        self._movement_log = movement_log

    async def handle(
        self, product_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> MovementHistoryDTO:
        product = await self._product_repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        movements = await self._movement_log.list_for_product(product_id, limit)
        return MovementHistoryDTO(
            product=product_to_dto(product),
            movements=[movement_to_dto(m) for m in movements],
        )
