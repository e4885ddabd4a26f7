"""Application service: Place Order use case.

Entry point for checkout. Checks each cart line, merges repeated lines
for the same product, then hands the request to the CheckoutCoordinator
which reserves every line or none of them.
"""

from __future__ import annotations

from stockkeeper.application.dto import OrderDTO, OrderItemSpec, order_to_dto
from stockkeeper.domain.exceptions import ValidationError
from stockkeeper.domain.model.value_objects import Quantity
from stockkeeper.domain.service.checkout_coordinator import (
    CheckoutCoordinator,
    CheckoutItem,
)


class PlaceOrderHandler:

    def __init__(self, coordinator: CheckoutCoordinator) -> None:
        self._coordinator = coordinator

    async def handle(
        self,
        customer_id: str,
        item_specs: list[OrderItemSpec],
        delivery_address: str,
        notes: str = "",
    ) -> OrderDTO:
        order = await self._coordinator.place_order(
            customer_id=customer_id,
            items=merge_items(item_specs),
            delivery_address=delivery_address,
            notes=notes,
        )
        return order_to_dto(order)


def merge_items(item_specs: list[OrderItemSpec]) -> list[CheckoutItem]:
    """Sum quantities of repeated products, keeping first-seen order.

    Every line is checked on its own first, so a negative line can never
    hide inside a positive total.
    """
    merged: dict[str, int] = {}
    for spec in item_specs:
        product_id = spec.product_id.strip()
        try:
            quantity = Quantity(spec.quantity)
        except ValidationError as exc:
            raise ValidationError(f"{exc} (product '{product_id}')") from None
        merged[product_id] = merged.get(product_id, 0) + quantity.value
    return [CheckoutItem(product_id=pid, quantity=qty) for pid, qty in merged.items()]
