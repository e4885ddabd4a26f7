"""SQL implementation of OrderRepository.

An order and its lines are written in one transaction. Lines are never
rewritten after creation except for their ``restored`` marker. Updates
are guarded by the ``version`` column: a save based on a stale read
changes nothing and raises ConcurrentModificationError.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockkeeper.domain.exceptions import ConcurrentModificationError
from stockkeeper.domain.model.order import Order, OrderLineItem, OrderStatus
from stockkeeper.domain.model.value_objects import Money, Quantity
from stockkeeper.domain.repository.order_repository import OrderRepository
from stockkeeper.infrastructure.persistence.database import as_utc, session_scope
from stockkeeper.infrastructure.persistence.tables import OrderLineRow, OrderRow

orders = OrderRow.__table__
order_lines = OrderLineRow.__table__


class SqlOrderRepository(OrderRepository):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, order_id: int) -> Order | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(OrderRow, order_id)
            return self._to_domain(row) if row is not None else None

    async def save(self, order: Order) -> None:
        if order.id is None:
            await self._insert(order)
            return

        stmt = (
            update(orders)
            .where(orders.c.id == order.id, orders.c.version == order.version)
            .values(**self._order_values(order), version=orders.c.version + 1)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            if result.rowcount != 1:
                raise ConcurrentModificationError(
                    f"Order #{order.id} was changed by another writer or no longer exists"
                )
            for position, item in enumerate(order.items):
                await session.execute(
                    update(order_lines)
                    .where(
                        order_lines.c.order_id == order.id,
                        order_lines.c.position == position,
                    )
                    .values(restored=item.restored)
                )
            await session.commit()
        order.version += 1

    async def _insert(self, order: Order) -> None:
        row = OrderRow(version=1, **self._order_values(order))
        row.lines = [
            OrderLineRow(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity.value,
                unit_price=item.unit_price.amount,
                currency=item.unit_price.currency,
                restored=item.restored,
            )
            for position, item in enumerate(order.items)
        ]
        async with session_scope(self._session_factory) as session:
            session.add(row)
            await session.commit()
            order.id = row.id
        order.version = 1

    async def list_all(self) -> list[Order]:
        return await self._list(select(OrderRow))

    async def list_for_customer(self, customer_id: str) -> list[Order]:
        return await self._list(select(OrderRow).where(OrderRow.customer_id == customer_id))

    async def list_for_delivery_agent(self, agent_id: str) -> list[Order]:
        return await self._list(select(OrderRow).where(OrderRow.delivery_agent == agent_id))

    async def list_by_status_before(
        self, status: OrderStatus, created_before: datetime
    ) -> list[Order]:
        stmt = select(OrderRow).where(
            OrderRow.status == status,
            OrderRow.created_at < created_before,
        )
        return await self._list(stmt)

    async def _list(self, stmt) -> list[Order]:
        stmt = stmt.order_by(OrderRow.created_at.desc(), OrderRow.id.desc())
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            return [self._to_domain(row) for row in result.scalars().all()]

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _order_values(order: Order) -> dict:
        return {
            "customer_id": order.customer_id,
            "status": order.status,
            "stock_deducted": order.stock_deducted,
            "delivery_address": order.delivery_address,
            "notes": order.notes,
            "delivery_agent": order.delivery_agent,
            "estimated_delivery": order.estimated_delivery,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }

    @staticmethod
    def _to_domain(row: OrderRow) -> Order:
        return Order(
            id=row.id,
            customer_id=row.customer_id,
            items=[
                OrderLineItem(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=Quantity(line.quantity),
                    unit_price=Money.of(line.unit_price, line.currency),
                    restored=line.restored,
                )
                for line in row.lines
            ],
            delivery_address=row.delivery_address,
            notes=row.notes or "",
            status=row.status,
            stock_deducted=row.stock_deducted,
            delivery_agent=row.delivery_agent,
            estimated_delivery=as_utc(row.estimated_delivery),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
            version=row.version,
        )
