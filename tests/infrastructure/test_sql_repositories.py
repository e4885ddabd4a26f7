"""Integration tests for the SQL repositories against SQLite (aiosqlite)."""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from stockkeeper.domain.exceptions import (
    ConcurrentModificationError,
    InsufficientStockError,
    InvalidTransitionError,
    ProductNotFoundError,
    ValidationError,
)
from stockkeeper.domain.model.movement import MovementType, StockMovement
from stockkeeper.domain.model.order import Order, OrderLineItem, OrderStatus
from stockkeeper.domain.model.product import Product
from stockkeeper.domain.model.value_objects import Money, Quantity
from stockkeeper.domain.service.checkout_coordinator import CheckoutItem
from stockkeeper.infrastructure.bootstrap import build_container
from stockkeeper.infrastructure.config import Settings
from stockkeeper.infrastructure.persistence.database import (
    create_engine,
    create_session_factory,
    init_db,
)
from stockkeeper.infrastructure.persistence.sql_movement_repository import SqlMovementRepository
from stockkeeper.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from stockkeeper.infrastructure.persistence.sql_product_repository import SqlProductRepository

pytestmark = pytest.mark.asyncio

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    engine = create_engine(MEMORY_URL)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def products(engine):
    repo = SqlProductRepository(create_session_factory(engine))
    await repo.add(Product(id="1", name="Rice", price=Money.of("2.50"), available_quantity=10))
    await repo.add(Product(id="2", name="Oil", price=Money.of("7.25"), available_quantity=3))
    return repo


def _line(product_id: str, qty: int) -> OrderLineItem:
    return OrderLineItem(product_id, f"P{product_id}", Quantity(qty), Money.of("1.10"))


class TestSqlProductRepository:

    async def test_round_trip(self, products):
        rice = await products.get_by_id("1")

        assert rice.name == "Rice"
        assert rice.price == Money(Decimal("2.50"))
        assert rice.available_quantity == 10
        assert rice.active
        assert rice.created_at.tzinfo is not None

    async def test_missing_product(self, products):
        assert await products.get_by_id("nope") is None

    async def test_duplicate_id_rejected(self, products):
        with pytest.raises(ValidationError, match="already exists"):
            await products.add(Product(id="1", name="Rice 2", price=Money.of("1")))

    async def test_conditional_decrement(self, products):
        assert await products.decrement_if_available("1", 4) == 6
        assert await products.decrement_if_available("1", 7) is None
        assert await products.decrement_if_available("ghost", 1) is None

        rice = await products.get_by_id("1")
        assert rice.available_quantity == 6
        assert rice.total_reserved == 4

    async def test_decrement_skips_inactive_but_not_unset_flag(self, products):
        oil = await products.get_by_id("2")
        oil.is_active = False
        await products.update_details(oil)
        assert await products.decrement_if_available("2", 1) is None

        oil.is_active = None
        await products.update_details(oil)
        assert await products.decrement_if_available("2", 1) == 2

    async def test_increment(self, products):
        assert await products.increment("2", 5) == 8
        assert await products.increment("ghost", 5) is None

    async def test_compare_and_swap(self, products):
        restocked = datetime(2030, 1, 1, tzinfo=timezone.utc)

        assert not await products.set_quantity_if_unchanged("1", 9, 50)
        assert await products.set_quantity_if_unchanged("1", 10, 50, restocked_at=restocked)

        rice = await products.get_by_id("1")
        assert rice.available_quantity == 50
        assert rice.last_restocked == restocked

    async def test_update_details_never_writes_stock(self, products):
        stale = await products.get_by_id("1")
        await products.decrement_if_available("1", 3)

        stale.name = "Basmati"
        stale.min_threshold = 8
        await products.update_details(stale)

        rice = await products.get_by_id("1")
        assert rice.name == "Basmati"
        assert rice.min_threshold == 8
        assert rice.available_quantity == 7

    async def test_update_missing_product(self, products):
        with pytest.raises(ProductNotFoundError):
            await products.update_details(Product(id="9", name="X", price=Money.of("1")))

    async def test_low_stock(self, products):
        assert [p.id for p in await products.list_low_stock()] == ["2"]


class TestSqlMovementRepository:

    async def test_append_and_query(self, engine):
        repo = SqlMovementRepository(create_session_factory(engine))
        first = await repo.append(
            StockMovement("1", MovementType.INITIAL_STOCK, 10, 0, 10, reason="Initial stock")
        )
        await repo.append(StockMovement("1", MovementType.SALE, -4, 10, 6))
        await repo.append(StockMovement("1", MovementType.ORDER_CANCEL, 4, 6, 10, order_id=3))
        await repo.append(StockMovement("2", MovementType.SALE, -1, 5, 4))

        history = await repo.list_for_product("1", limit=2)

        assert first.id is not None
        assert [m.movement_type for m in history] == [MovementType.ORDER_CANCEL, MovementType.SALE]
        assert history[0].created_at.tzinfo is not None
        assert [m.delta for m in await repo.list_for_order(3)] == [4]


class TestSqlOrderRepository:

    async def test_save_and_reload_with_lines(self, engine):
        repo = SqlOrderRepository(create_session_factory(engine))
        order = Order.place("alice", [_line("1", 2), _line("2", 1)], "1 Elm Rd", "leave at door")

        await repo.save(order)
        loaded = await repo.get_by_id(order.id)

        assert order.id == 1
        assert loaded.status == OrderStatus.PENDING
        assert loaded.stock_deducted
        assert [(i.product_id, i.quantity.value) for i in loaded.items] == [("1", 2), ("2", 1)]
        assert loaded.total == Money.of("3.30")
        assert loaded.notes == "leave at door"

    async def test_restored_markers_and_status_persist(self, engine):
        repo = SqlOrderRepository(create_session_factory(engine))
        order = Order.place("alice", [_line("1", 2), _line("2", 1)], "1 Elm Rd")
        await repo.save(order)

        order.mark_line_restored(order.items[0])
        await repo.save(order)
        loaded = await repo.get_by_id(order.id)
        assert [i.restored for i in loaded.items] == [True, False]

        loaded.mark_line_restored(loaded.items[1])
        loaded.cancel()
        await repo.save(loaded)
        final = await repo.get_by_id(order.id)
        assert final.status == OrderStatus.CANCELLED
        assert not final.stock_deducted

    async def test_list_queries(self, engine):
        repo = SqlOrderRepository(create_session_factory(engine))
        first = Order.place("alice", [_line("1", 1)], "1 Elm Rd")
        first.created_at = datetime.now(timezone.utc) - timedelta(hours=3)
        await repo.save(first)
        second = Order.place("bob", [_line("1", 1)], "2 Elm Rd")
        second.advance_to(OrderStatus.OUT_FOR_DELIVERY, delivery_agent="agent-1")
        await repo.save(second)

        assert [o.id for o in await repo.list_all()] == [second.id, first.id]
        assert [o.id for o in await repo.list_for_customer("alice")] == [first.id]
        assert [o.id for o in await repo.list_for_delivery_agent("agent-1")] == [second.id]
        cutoff = datetime.now(timezone.utc) - timedelta(hours=1)
        assert [o.id for o in await repo.list_by_status_before(OrderStatus.PENDING, cutoff)] == [first.id]

    async def test_save_from_a_stale_read_is_refused(self, engine):
        repo = SqlOrderRepository(create_session_factory(engine))
        order = Order.place("alice", [_line("1", 2)], "1 Elm Rd")
        await repo.save(order)
        first = await repo.get_by_id(order.id)
        second = await repo.get_by_id(order.id)

        first.advance_to(OrderStatus.CONFIRMED)
        await repo.save(first)
        second.mark_line_restored(second.items[0])
        second.cancel()
        with pytest.raises(ConcurrentModificationError):
            await repo.save(second)

        stored = await repo.get_by_id(order.id)
        assert stored.status == OrderStatus.CONFIRMED
        assert stored.stock_deducted
        assert [line.restored for line in stored.items] == [False]
        assert stored.version == first.version == 2

    async def test_save_of_unknown_order_is_refused(self, engine):
        repo = SqlOrderRepository(create_session_factory(engine))
        ghost = Order.place("alice", [_line("1", 1)], "1 Elm Rd")
        ghost.id = 404
        with pytest.raises(ConcurrentModificationError):
            await repo.save(ghost)

    async def test_missing_order(self, engine):
        repo = SqlOrderRepository(create_session_factory(engine))
        assert await repo.get_by_id(404) is None


class TestWiredServicesOnSql:

    async def test_checkout_and_cancel_keep_ledger_balanced(self, engine, products):
        container = build_container(Settings(database_url=MEMORY_URL), engine)

        order = await container.coordinator.place_order(
            "alice", [CheckoutItem("1", 4), CheckoutItem("2", 3)], "1 Elm Rd"
        )
        assert (await products.get_by_id("2")).available_quantity == 0

        await container.lifecycle.cancel(order.id)

        for product_id, initial in (("1", 10), ("2", 3)):
            product = await products.get_by_id(product_id)
            movements = await container.movement_log.list_for_product(product_id)
            assert product.available_quantity == initial
            assert sum(m.delta for m in movements) == 0

    async def test_concurrent_reservations_on_a_file_database(self, tmp_path):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
        await init_db(engine)
        try:
            container = build_container(Settings(database_url=str(engine.url)), engine)
            await container.product_repo.add(
                Product(id="1", name="Last few", price=Money.of("1"), available_quantity=5)
            )

            results = await asyncio.gather(
                *(container.ledger.reserve("1", 1) for _ in range(10)),
                return_exceptions=True,
            )

            successes = [r for r in results if not isinstance(r, Exception)]
            assert len(successes) == 5
            assert all(isinstance(r, InsufficientStockError) for r in results if r not in successes)
            assert (await container.product_repo.get_by_id("1")).available_quantity == 0
        finally:
            await engine.dispose()

    async def test_status_update_from_before_a_cancellation_cannot_undo_it(self, engine, products):
        container = build_container(Settings(database_url=MEMORY_URL), engine)
        order = await container.coordinator.place_order("alice", [CheckoutItem("1", 4)], "1 Elm Rd")
        stale = await container.order_repo.get_by_id(order.id)

        await container.lifecycle.cancel(order.id)
        stale.advance_to(OrderStatus.CONFIRMED)
        with pytest.raises(ConcurrentModificationError):
            await container.order_repo.save(stale)
        with pytest.raises(InvalidTransitionError):
            await container.lifecycle.update_status(order.id, OrderStatus.CONFIRMED)

        again = await container.lifecycle.cancel(order.id)
        assert not again.changed
        assert (await products.get_by_id("1")).available_quantity == 10

    async def test_cancel_racing_a_status_update_on_a_file_database(self, tmp_path):
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
        await init_db(engine)
        try:
            container = build_container(Settings(database_url=str(engine.url)), engine)
            await container.product_repo.add(
                Product(id="1", name="Rice", price=Money.of("2.50"), available_quantity=10)
            )
            order = await container.coordinator.place_order(
                "alice", [CheckoutItem("1", 4)], "1 Elm Rd"
            )

            cancelled, updated = await asyncio.gather(
                container.lifecycle.cancel(order.id),
                container.lifecycle.update_status(order.id, OrderStatus.CONFIRMED),
                return_exceptions=True,
            )

            assert cancelled.changed
            assert not isinstance(updated, Exception) or isinstance(updated, InvalidTransitionError)
            final = await container.order_repo.get_by_id(order.id)
            assert final.status == OrderStatus.CANCELLED
            assert final.stock_deducted is False

            await container.lifecycle.cancel(order.id)
            assert (await container.product_repo.get_by_id("1")).available_quantity == 10
            restores = await container.movement_log.list_for_order(order.id)
            assert [m.delta for m in restores] == [4]
        finally:
            await engine.dispose()
