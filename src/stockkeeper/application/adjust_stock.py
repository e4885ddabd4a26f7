"""Application service: Adjust Stock use case (operator corrections)."""

from __future__ import annotations

from stockkeeper.application.dto import StockChangeDTO, change_to_dto
from stockkeeper.domain.exceptions import ValidationError
from stockkeeper.domain.model.movement import MovementType
from stockkeeper.domain.service.stock_ledger import StockLedger


class AdjustStockHandler:

    def __init__(self, ledger: StockLedger) -> None:
        self._ledger = ledger

    async def handle(
        self,
        product_id: str,
        new_quantity: int,
        reason: str | None = None,
        movement_type: str = MovementType.ADJUSTMENT.value,
    ) -> StockChangeDTO:
        """Set a product's stock to ``new_quantity`` and log the difference."""
        try:
            kind = MovementType(movement_type.strip().upper())
        except ValueError:
            raise ValidationError(f"Unknown movement type '{movement_type}'") from None

        change = await self._ledger.manual_adjust(product_id, new_quantity, reason, kind)
        return change_to_dto(change)
