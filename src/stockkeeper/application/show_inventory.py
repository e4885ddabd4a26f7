"""Application services: stock reporting queries.

All read-only; none of them take part in the write path.
"""

from __future__ import annotations

from dataclasses import dataclass

from stockkeeper.application.dto import ProductStockDTO, product_to_dto
from stockkeeper.domain.model.product import StockStatus
from stockkeeper.domain.model.value_objects import Money
from stockkeeper.domain.repository.product_repository import ProductRepository
from stockkeeper.domain.service.movement_log import MovementLog


class ShowInventoryHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    async def handle(self, include_inactive: bool = False) -> list[ProductStockDTO]:
        products = await self._product_repo.list_all()
        return [
            product_to_dto(product)
            for product in products
            if include_inactive or product.active
        ]


class LowStockReportHandler:

    def __init__(self, movement_log: MovementLog) -> None:
        self._movement_log = movement_log

    async def handle(self) -> list[ProductStockDTO]:
        products = await self._movement_log.low_stock_products()
        return [product_to_dto(product) for product in products]


@dataclass(frozen=True)
class StockStatisticsDTO:
    total_products: int
    total_stock: int
    out_of_stock: int
    low_stock: int
    average_stock: float
    total_value: str


class StockStatisticsHandler:
    """Aggregate figures over active products."""

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    async def handle(self) -> StockStatisticsDTO:
        products = [p for p in await self._product_repo.list_all() if p.active]
        if not products:
            return StockStatisticsDTO(0, 0, 0, 0, 0.0, str(Money.zero()))

        total_stock = sum(p.available_quantity for p in products)
        total_value = Money.zero()
        for product in products:
            total_value = total_value + product.stock_value

        return StockStatisticsDTO(
            total_products=len(products),
            total_stock=total_stock,
            out_of_stock=sum(
                1 for p in products if p.stock_status == StockStatus.OUT_OF_STOCK
            ),
            low_stock=sum(1 for p in products if p.is_low_stock),
            average_stock=round(total_stock / len(products), 2),
            total_value=str(total_value),
        )
