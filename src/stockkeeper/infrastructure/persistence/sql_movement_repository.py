"""SQL implementation of MovementRepository (insert-only)."""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockkeeper.domain.exceptions import AuditLogFailure
from stockkeeper.domain.model.movement import MovementType, StockMovement
from stockkeeper.domain.repository.movement_repository import MovementRepository
from stockkeeper.infrastructure.persistence.database import as_utc, session_scope
from stockkeeper.infrastructure.persistence.tables import MovementRow


class SqlMovementRepository(MovementRepository):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, movement: StockMovement) -> StockMovement:
        row = MovementRow(
            product_id=movement.product_id,
            movement_type=movement.movement_type.value,
            delta=movement.delta,
            quantity_before=movement.quantity_before,
            quantity_after=movement.quantity_after,
            reason=movement.reason,
            order_id=movement.order_id,
            created_at=movement.created_at,
        )
        async with session_scope(self._session_factory, error=AuditLogFailure) as session:
            session.add(row)
            await session.commit()
        return replace(movement, id=row.id)

    async def list_for_product(self, product_id: str, limit: int) -> list[StockMovement]:
        stmt = (
            select(MovementRow)
            .where(MovementRow.product_id == product_id)
            .order_by(MovementRow.created_at.desc(), MovementRow.id.desc())
            .limit(limit)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            return [self._to_domain(row) for row in result.scalars().all()]

    async def list_for_order(self, order_id: int) -> list[StockMovement]:
        stmt = (
            select(MovementRow)
            .where(MovementRow.order_id == order_id)
            .order_by(MovementRow.id)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            return [self._to_domain(row) for row in result.scalars().all()]

    @staticmethod
    def _to_domain(row: MovementRow) -> StockMovement:
        return StockMovement(
            id=row.id,
            product_id=row.product_id,
            movement_type=MovementType(row.movement_type),
            delta=row.delta,
            quantity_before=row.quantity_before,
            quantity_after=row.quantity_after,
            reason=row.reason or "",
            order_id=row.order_id,
            created_at=as_utc(row.created_at),
        )
