"""Integration tests for the order status, cancel, query and expiry use cases."""

from datetime import datetime, timedelta, timezone

import pytest

from stockkeeper.application.cancel_order import CancelOrderHandler
from stockkeeper.application.expire_pending_orders import ExpirePendingOrdersHandler
from stockkeeper.application.show_order import ListOrdersHandler, ShowOrderHandler
from stockkeeper.application.update_order_status import (
    UpdateOrderStatusHandler,
    parse_status,
)
from stockkeeper.domain.exceptions import (
    InvalidTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from stockkeeper.domain.model.order import Order, OrderLineItem, OrderStatus
from stockkeeper.domain.model.product import Product
from stockkeeper.domain.model.value_objects import Money, Quantity
from stockkeeper.domain.service.movement_log import MovementLog
from stockkeeper.domain.service.order_lifecycle import OrderLifecycle
from stockkeeper.domain.service.stock_ledger import StockLedger
from tests.fakes import FakeMovementRepository, FakeOrderRepository, FakeProductRepository


async def _setup(
    orders: int = 1,
) -> tuple[OrderLifecycle, FakeOrderRepository, FakeProductRepository]:
    """A lifecycle with ``orders`` pending orders of 2 x Widget (stock already taken)."""
    product_repo = FakeProductRepository(
        [Product(id="1", name="Widget", price=Money.of("15.00"), available_quantity=10)]
    )
    order_repo = FakeOrderRepository()
    ledger = StockLedger(product_repo, MovementLog(FakeMovementRepository(), product_repo))
    lifecycle = OrderLifecycle(order_repo, ledger)
    for n in range(orders):
        await ledger.reserve("1", 2)
        await lifecycle.open_order(
            f"cust-{n + 1}",
            [OrderLineItem("1", "Widget", Quantity(2), Money.of("15.00"))],
            "1 Elm Rd",
        )
    return lifecycle, order_repo, product_repo


class TestUpdateOrderStatus:

    @pytest.mark.asyncio
    async def test_updates_status(self):
        lifecycle, _, _ = await _setup()
        handler = UpdateOrderStatusHandler(lifecycle)

        result = await handler.handle(1, "Confirmed")

        assert result.status_changed
        assert result.order.status == "confirmed"
        assert result.message == "Order confirmed"

    @pytest.mark.asyncio
    async def test_sets_agent_and_eta(self):
        lifecycle, _, _ = await _setup()
        handler = UpdateOrderStatusHandler(lifecycle)
        eta = datetime(2030, 5, 1, 9, 30, tzinfo=timezone.utc)

        result = await handler.handle(1, "out_for_delivery", delivery_agent="agent-3", estimated_delivery=eta)

        assert result.order.delivery_agent == "agent-3"
        assert result.order.estimated_delivery == "2030-05-01 09:30 UTC"

    @pytest.mark.asyncio
    async def test_backwards_move_rejected(self):
        lifecycle, _, _ = await _setup()
        handler = UpdateOrderStatusHandler(lifecycle)
        await handler.handle(1, "preparing")

        with pytest.raises(InvalidTransitionError):
            await handler.handle(1, "confirmed")

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self):
        lifecycle, _, _ = await _setup()
        with pytest.raises(ValidationError, match="Invalid order status 'shipped'"):
            await UpdateOrderStatusHandler(lifecycle).handle(1, "shipped")

    def test_parse_status_is_case_insensitive(self):
        assert parse_status(" DELIVERED ") == OrderStatus.DELIVERED


class TestCancelOrder:

    @pytest.mark.asyncio
    async def test_cancel_restores_stock(self):
        lifecycle, _, product_repo = await _setup()

        result = await CancelOrderHandler(lifecycle).handle(1)

        assert result.status_changed
        assert result.order.status == "cancelled"
        assert not result.order.stock_deducted
        assert product_repo.quantity_of("1") == 10

    @pytest.mark.asyncio
    async def test_second_cancel_is_a_no_op(self):
        lifecycle, _, product_repo = await _setup()
        handler = CancelOrderHandler(lifecycle)
        await handler.handle(1)

        result = await handler.handle(1)

        assert not result.status_changed
        assert product_repo.quantity_of("1") == 10

    @pytest.mark.asyncio
    async def test_unknown_order(self):
        lifecycle, _, _ = await _setup(orders=0)
        with pytest.raises(OrderNotFoundError):
            await CancelOrderHandler(lifecycle).handle(5)


class TestOrderQueries:

    @pytest.mark.asyncio
    async def test_show_order(self):
        _, order_repo, _ = await _setup()
        dto = await ShowOrderHandler(order_repo).handle(1)
        assert dto.total == "$30.00"
        assert dto.items[0].product_name == "Widget"

    @pytest.mark.asyncio
    async def test_show_missing_order(self):
        _, order_repo, _ = await _setup(orders=0)
        with pytest.raises(OrderNotFoundError, match="Order #3 not found"):
            await ShowOrderHandler(order_repo).handle(3)

    @pytest.mark.asyncio
    async def test_list_filters(self):
        lifecycle, order_repo, _ = await _setup(orders=3)
        await lifecycle.update_status(2, OrderStatus.OUT_FOR_DELIVERY, delivery_agent="agent-1")
        handler = ListOrdersHandler(order_repo)

        everything = await handler.handle()
        mine = await handler.handle(customer_id="cust-3")
        assigned = await handler.handle(delivery_agent="agent-1")

        assert sorted(o.id for o in everything) == [1, 2, 3]
        assert [o.id for o in mine] == [3]
        assert [o.id for o in assigned] == [2]


class TestExpirePendingOrders:

    @pytest.mark.asyncio
    async def test_disabled_without_ttl(self):
        lifecycle, _, _ = await _setup()
        with pytest.raises(ValidationError, match="not configured"):
            await ExpirePendingOrdersHandler(lifecycle, None).handle()

    @pytest.mark.asyncio
    async def test_expires_stale_orders(self):
        lifecycle, order_repo, product_repo = await _setup(orders=2)
        stale: Order = await order_repo.get_by_id(1)
        stale.created_at = datetime.now(timezone.utc) - timedelta(hours=2)
        await order_repo.save(stale)

        expired = await ExpirePendingOrdersHandler(lifecycle, ttl_minutes=60).handle()

        assert [o.id for o in expired] == [1]
        assert expired[0].status == "cancelled"
        assert product_repo.quantity_of("1") == 8
