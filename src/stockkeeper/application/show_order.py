"""Application services: order queries (read-only)."""

from __future__ import annotations

from stockkeeper.application.dto import OrderDTO, order_to_dto
from stockkeeper.domain.exceptions import OrderNotFoundError
from stockkeeper.domain.repository.order_repository import OrderRepository


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    async def handle(self, order_id: int) -> OrderDTO:
        order = await self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order_to_dto(order)


class ListOrdersHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    async def handle(
        self,
        customer_id: str | None = None,
        delivery_agent: str | None = None,
    ) -> list[OrderDTO]:
        """List orders newest first, optionally for one customer or agent."""
        if customer_id:
            orders = await self._order_repo.list_for_customer(customer_id)
        elif delivery_agent:
            orders = await self._order_repo.list_for_delivery_agent(delivery_agent)
        else:
            orders = await self._order_repo.list_all()
        return [order_to_dto(order) for order in orders]
