"""Application service: Expire Pending Orders use case.

Stock is held from the moment an order is placed, so an abandoned
``pending`` order holds it until cancelled. This sweep is opt-in: it only
runs when a time-to-live is configured.
"""

from __future__ import annotations

from datetime import timedelta

from stockkeeper.application.dto import OrderDTO, order_to_dto
from stockkeeper.domain.exceptions import ValidationError
from stockkeeper.domain.service.order_lifecycle import OrderLifecycle


class ExpirePendingOrdersHandler:

    def __init__(self, lifecycle: OrderLifecycle, ttl_minutes: int | None) -> None:
        self._lifecycle = lifecycle
        self._ttl_minutes = ttl_minutes

    async def handle(self) -> list[OrderDTO]:
        if not self._ttl_minutes:
            raise ValidationError(
                "Pending order expiry is not configured "
                "(set STOCKKEEPER_PENDING_ORDER_TTL_MINUTES)"
            )
        expired = await self._lifecycle.expire_stale_pending(
            timedelta(minutes=self._ttl_minutes)
        )
        return [order_to_dto(order) for order in expired]
