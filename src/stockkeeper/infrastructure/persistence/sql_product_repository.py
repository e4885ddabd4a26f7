"""SQL implementation of ProductRepository.

Every stock change is a single UPDATE whose WHERE clause carries the
precondition; the affected row (or its absence) is the answer. Nothing
here reads a quantity and then writes it back.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockkeeper.domain.exceptions import ProductNotFoundError, ValidationError
from stockkeeper.domain.model.product import Product
from stockkeeper.domain.model.value_objects import Money
from stockkeeper.domain.repository.product_repository import ProductRepository
from stockkeeper.infrastructure.persistence.database import as_utc, session_scope
from stockkeeper.infrastructure.persistence.tables import ProductRow, utcnow

products = ProductRow.__table__


class SqlProductRepository(ProductRepository):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # --- Reads ----------------------------------------------------------------

    async def get_by_id(self, product_id: str) -> Product | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(ProductRow, product_id)
            return self._to_domain(row) if row is not None else None

    async def list_all(self) -> list[Product]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(ProductRow).order_by(ProductRow.name))
            return [self._to_domain(row) for row in result.scalars().all()]

    async def list_low_stock(self) -> list[Product]:
        stmt = (
            select(ProductRow)
            .where(
                ProductRow.available_quantity <= ProductRow.min_threshold,
                or_(ProductRow.is_active.is_(True), ProductRow.is_active.is_(None)),
            )
            .order_by(ProductRow.available_quantity, ProductRow.name)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            return [self._to_domain(row) for row in result.scalars().all()]

    # --- Catalog writes -------------------------------------------------------

    async def add(self, product: Product) -> None:
        async with session_scope(self._session_factory) as session:
            if await session.get(ProductRow, product.id) is not None:
                raise ValidationError(f"Product '{product.id}' already exists")
            session.add(self._to_row(product))
            try:
                await session.commit()
            except IntegrityError as exc:
                raise ValidationError(f"Product '{product.id}' already exists") from exc

    async def update_details(self, product: Product) -> None:
        stmt = (
            update(products)
            .where(products.c.id == product.id)
            .values(
                name=product.name,
                price=product.price.amount,
                currency=product.price.currency,
                is_active=product.is_active,
                min_threshold=product.min_threshold,
                max_threshold=product.max_threshold,
                updated_at=utcnow(),
            )
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            await session.commit()
        if result.rowcount == 0:
            raise ProductNotFoundError(product.id)

    # --- Atomic stock updates -------------------------------------------------

    async def decrement_if_available(self, product_id: str, quantity: int) -> int | None:
        stmt = (
            update(products)
            .where(
                products.c.id == product_id,
                products.c.available_quantity >= quantity,
                or_(products.c.is_active.is_(True), products.c.is_active.is_(None)),
            )
            .values(
                available_quantity=products.c.available_quantity - quantity,
                total_reserved=products.c.total_reserved + quantity,
                updated_at=utcnow(),
            )
            .returning(products.c.available_quantity)
        )
        return await self._execute_returning(stmt)

    async def increment(self, product_id: str, quantity: int) -> int | None:
        stmt = (
            update(products)
            .where(products.c.id == product_id)
            .values(
                available_quantity=products.c.available_quantity + quantity,
                total_reserved=products.c.total_reserved - quantity,
                updated_at=utcnow(),
            )
            .returning(products.c.available_quantity)
        )
        return await self._execute_returning(stmt)

    async def set_quantity_if_unchanged(
        self,
        product_id: str,
        expected: int,
        new_quantity: int,
        restocked_at: datetime | None = None,
    ) -> bool:
        values: dict = {"available_quantity": new_quantity, "updated_at": utcnow()}
        if restocked_at is not None:
            values["last_restocked"] = restocked_at
        stmt = (
            update(products)
            .where(
                products.c.id == product_id,
                products.c.available_quantity == expected,
            )
            .values(**values)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount == 1

    async def _execute_returning(self, stmt) -> int | None:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            after = result.scalar_one_or_none()
            await session.commit()
        return after

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_row(product: Product) -> ProductRow:
        return ProductRow(
            id=product.id,
            name=product.name,
            price=product.price.amount,
            currency=product.price.currency,
            available_quantity=product.available_quantity,
            total_reserved=product.total_reserved,
            is_active=product.is_active,
            min_threshold=product.min_threshold,
            max_threshold=product.max_threshold,
            last_restocked=product.last_restocked,
            created_at=product.created_at,
        )

    @staticmethod
    def _to_domain(row: ProductRow) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            price=Money.of(row.price, row.currency),
            available_quantity=row.available_quantity,
            total_reserved=row.total_reserved,
            is_active=row.is_active,
            min_threshold=row.min_threshold,
            max_threshold=row.max_threshold,
            last_restocked=as_utc(row.last_restocked),
            created_at=as_utc(row.created_at),
        )
