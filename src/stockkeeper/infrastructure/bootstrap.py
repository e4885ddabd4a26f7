"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stockkeeper.application.add_product import AddProductHandler
from stockkeeper.application.adjust_stock import AdjustStockHandler
from stockkeeper.application.cancel_order import CancelOrderHandler
from stockkeeper.application.expire_pending_orders import ExpirePendingOrdersHandler
from stockkeeper.application.movement_history import MovementHistoryHandler
from stockkeeper.application.place_order import PlaceOrderHandler
from stockkeeper.application.show_inventory import (
    LowStockReportHandler,
    ShowInventoryHandler,
    StockStatisticsHandler,
)
from stockkeeper.application.show_order import ListOrdersHandler, ShowOrderHandler
from stockkeeper.application.update_order_status import UpdateOrderStatusHandler
from stockkeeper.application.update_product import (
    SetProductActiveHandler,
    UpdateThresholdsHandler,
)
from stockkeeper.domain.service.checkout_coordinator import CheckoutCoordinator
from stockkeeper.domain.service.movement_log import MovementLog
from stockkeeper.domain.service.order_lifecycle import OrderLifecycle
from stockkeeper.domain.service.stock_ledger import StockLedger
from stockkeeper.infrastructure.config import Settings, load_settings
from stockkeeper.infrastructure.persistence.database import (
    create_engine,
    create_session_factory,
    init_db,
)
from stockkeeper.infrastructure.persistence.sql_movement_repository import (
    SqlMovementRepository,
)
from stockkeeper.infrastructure.persistence.sql_order_repository import (
    SqlOrderRepository,
)
from stockkeeper.infrastructure.persistence.sql_product_repository import (
    SqlProductRepository,
)


@dataclass
class Container:
    """Repositories and domain services sharing one engine."""

    settings: Settings
    engine: AsyncEngine
    product_repo: SqlProductRepository
    movement_repo: SqlMovementRepository
    order_repo: SqlOrderRepository
    movement_log: MovementLog
    ledger: StockLedger
    lifecycle: OrderLifecycle
    coordinator: CheckoutCoordinator

    # --- Handlers -------------------------------------------------------------

    def place_order(self) -> PlaceOrderHandler:
        return PlaceOrderHandler(self.coordinator)

    def update_order_status(self) -> UpdateOrderStatusHandler:
        return UpdateOrderStatusHandler(self.lifecycle)

    def cancel_order(self) -> CancelOrderHandler:
        return CancelOrderHandler(self.lifecycle)

    def show_order(self) -> ShowOrderHandler:
        return ShowOrderHandler(self.order_repo)

    def list_orders(self) -> ListOrdersHandler:
        return ListOrdersHandler(self.order_repo)

    def expire_pending_orders(self) -> ExpirePendingOrdersHandler:
        return ExpirePendingOrdersHandler(self.lifecycle, self.settings.pending_order_ttl_minutes)

    def add_product(self) -> AddProductHandler:
        return AddProductHandler(self.product_repo, self.movement_log)

    def set_product_active(self) -> SetProductActiveHandler:
        return SetProductActiveHandler(self.product_repo)

    def update_thresholds(self) -> UpdateThresholdsHandler:
        return UpdateThresholdsHandler(self.product_repo)

    def adjust_stock(self) -> AdjustStockHandler:
        return AdjustStockHandler(self.ledger)

    def show_inventory(self) -> ShowInventoryHandler:
        return ShowInventoryHandler(self.product_repo)

    def low_stock_report(self) -> LowStockReportHandler:
        return LowStockReportHandler(self.movement_log)

    def stock_statistics(self) -> StockStatisticsHandler:
        return StockStatisticsHandler(self.product_repo)

    def movement_history(self) -> MovementHistoryHandler:
        return MovementHistoryHandler(self.product_repo, self.movement_log)


def build_container(settings: Settings, engine: AsyncEngine) -> Container:
    session_factory: async_sessionmaker[AsyncSession] = create_session_factory(engine)

    product_repo = SqlProductRepository(session_factory)
    movement_repo = SqlMovementRepository(session_factory)
    order_repo = SqlOrderRepository(session_factory)

    movement_log = MovementLog(movement_repo, product_repo)
    ledger = StockLedger(product_repo, movement_log)
    lifecycle = OrderLifecycle(order_repo, ledger)
    coordinator = CheckoutCoordinator(ledger, lifecycle, timeout=settings.checkout_timeout)

    return Container(
        settings=settings,
        engine=engine,
        product_repo=product_repo,
        movement_repo=movement_repo,
        order_repo=order_repo,
        movement_log=movement_log,
        ledger=ledger,
        lifecycle=lifecycle,
        coordinator=coordinator,
    )


@asynccontextmanager
async def open_container(settings: Settings | None = None) -> AsyncIterator[Container]:
    """Create the schema if needed, yield a wired container, dispose the engine."""
    settings = settings or load_settings()
    engine = create_engine(settings.database_url)
    try:
        await init_db(engine)
        yield build_container(settings, engine)
    finally:
        await engine.dispose()
