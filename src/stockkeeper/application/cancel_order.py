"""Application service: Cancel Order use case.

Gives back the stock of every line if the order still holds it. Running
it again on a cancelled order changes nothing.
"""

from __future__ import annotations

from stockkeeper.application.dto import order_to_dto
from stockkeeper.application.update_order_status import StatusUpdateDTO
from stockkeeper.domain.service.order_lifecycle import OrderLifecycle


class CancelOrderHandler:

    def __init__(self, lifecycle: OrderLifecycle) -> None:
        self._lifecycle = lifecycle

    async def handle(self, order_id: int) -> StatusUpdateDTO:
        change = await self._lifecycle.cancel(order_id)
        return StatusUpdateDTO(
            order=order_to_dto(change.order),
            message=change.message,
            status_changed=change.changed,
        )
