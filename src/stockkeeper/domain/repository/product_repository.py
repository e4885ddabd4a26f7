"""Abstract repository for the Product aggregate and its stock counter.

Defined in the domain layer so the domain never depends on
infrastructure. The three stock methods are the ONLY way to change
``available_quantity``; each one must be a single atomic operation in the
backing store, never a read followed by a separate write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from stockkeeper.domain.model.product import Product


class ProductRepository(ABC):

    @abstractmethod
    async def get_by_id(self, product_id: str) -> Product | None:
        """Return a snapshot of a product, or None if not found."""

    @abstractmethod
    async def list_all(self) -> list[Product]:
        """Return every product, active or not."""

    @abstractmethod
    async def list_low_stock(self) -> list[Product]:
        """Return active products whose quantity is at or below their minimum."""

    @abstractmethod
    async def add(self, product: Product) -> None:
        """Persist a new product. Raises ValidationError if the id is taken."""

    @abstractmethod
    async def update_details(self, product: Product) -> None:
        """Persist non-stock fields (name, price, flags, thresholds).

        Never writes ``available_quantity`` or ``total_reserved``.
        """

    @abstractmethod
    async def decrement_if_available(self, product_id: str, quantity: int) -> int | None:
        """Atomically take ``quantity`` units from an active product.

        Matches only when the product exists, ``available_quantity >=
        quantity`` and the product is active (or the flag is unset). On a
        match, ``available_quantity`` drops and ``total_reserved`` grows by
        ``quantity``. Returns the quantity *after* the update, or None when
        nothing matched.
        """

    @abstractmethod
    async def increment(self, product_id: str, quantity: int) -> int | None:
        """Atomically give back ``quantity`` units, unconditionally.

        ``available_quantity`` grows and ``total_reserved`` drops by
        ``quantity``. Returns the quantity after the update, or None if the
        product does not exist.
        """

    @abstractmethod
    async def set_quantity_if_unchanged(
        self,
        product_id: str,
        expected: int,
        new_quantity: int,
        restocked_at: datetime | None = None,
    ) -> bool:
        """Compare-and-swap: set the quantity only if it still equals ``expected``.

        ``restocked_at``, when given, is written to ``last_restocked`` in
        the same update.
        """
