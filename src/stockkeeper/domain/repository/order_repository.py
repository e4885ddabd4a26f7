"""Abstract repository for the Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from stockkeeper.domain.model.order import Order, OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    async def save(self, order: Order) -> None:
        """Persist a new or updated order together with its line items.

        New orders (``id is None``) get their id assigned here.

        Updates are conditional on ``order.version`` still matching the
        stored one; on success the version is bumped on both sides. Raises
        ConcurrentModificationError when another writer saved the order
        since it was read (or it no longer exists) and nothing is written.
        """

    @abstractmethod
    async def list_all(self) -> list[Order]:
        """Return every order, newest first."""

    @abstractmethod
    async def list_for_customer(self, customer_id: str) -> list[Order]:
        """Return a customer's orders, newest first."""

    @abstractmethod
    async def list_for_delivery_agent(self, agent_id: str) -> list[Order]:
        """Return the orders assigned to a delivery agent, newest first."""

    @abstractmethod
    async def list_by_status_before(
        self, status: OrderStatus, created_before: datetime
    ) -> list[Order]:
        """Return orders in ``status`` created before the given instant."""
