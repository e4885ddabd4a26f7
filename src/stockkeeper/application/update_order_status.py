"""Application service: Update Order Status use case.

Used by the delivery/admin side. The target status is validated against
the known statuses; whether the move is allowed is the Order's call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from stockkeeper.application.dto import OrderDTO, order_to_dto
from stockkeeper.domain.exceptions import ValidationError
from stockkeeper.domain.model.order import OrderStatus
from stockkeeper.domain.service.order_lifecycle import OrderLifecycle


@dataclass(frozen=True)
class StatusUpdateDTO:
    order: OrderDTO
    message: str
    status_changed: bool


class UpdateOrderStatusHandler:

    def __init__(self, lifecycle: OrderLifecycle) -> None:
        self._lifecycle = lifecycle

    async def handle(
        self,
        order_id: int,
        status: str,
        delivery_agent: str | None = None,
        estimated_delivery: datetime | None = None,
    ) -> StatusUpdateDTO:
        target = parse_status(status)
        change = await self._lifecycle.update_status(
            order_id, target, delivery_agent, estimated_delivery
        )
        return StatusUpdateDTO(
            order=order_to_dto(change.order),
            message=change.message,
            status_changed=change.changed,
        )


def parse_status(raw: str) -> OrderStatus:
    try:
        return OrderStatus((raw or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(
            f"Invalid order status '{raw}'. Expected one of: {allowed}"
        ) from None
