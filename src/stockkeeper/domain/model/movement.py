"""StockMovement: one immutable audit record of a quantity change."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from stockkeeper.domain.exceptions import ValidationError

MAX_REASON_LENGTH = 200


class MovementType(Enum):
    INITIAL_STOCK = "INITIAL_STOCK"
    RESTOCK = "RESTOCK"
    SALE = "SALE"
    ORDER_CANCEL = "ORDER_CANCEL"
    ADJUSTMENT = "ADJUSTMENT"
    EXPIRED = "EXPIRED"
    DAMAGED = "DAMAGED"
    RETURNED = "RETURNED"


# Types an operator may pick for a manual correction, and the direction
# each one implies (None = either way).
MANUAL_MOVEMENT_DIRECTIONS: dict[MovementType, int | None] = {
    MovementType.RESTOCK: 1,
    MovementType.RETURNED: 1,
    MovementType.ADJUSTMENT: None,
    MovementType.EXPIRED: -1,
    MovementType.DAMAGED: -1,
}


def validate_reason(reason: str) -> str:
    """Reject a reason the movement log would not accept."""
    if not isinstance(reason, str):
        raise ValidationError("Reason must be text")
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f"Reason cannot exceed {MAX_REASON_LENGTH} characters")
    return reason


@dataclass(frozen=True)
class StockMovement:
    """Append-only record of a single ledger mutation.

    Invariants:
    - ``delta`` is a non-zero integer
    - ``quantity_after == quantity_before + delta``
    - neither quantity is negative
    """

    product_id: str
    movement_type: MovementType
    delta: int
    quantity_before: int
    quantity_after: int
    reason: str = ""
    order_id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.delta, int) or self.delta == 0:
            raise ValidationError("Movement quantity must be a non-zero integer")
        if self.quantity_after != self.quantity_before + self.delta:
            raise ValidationError(
                f"Movement does not balance: {self.quantity_before} "
                f"{self.delta:+d} != {self.quantity_after}"
            )
        if self.quantity_before < 0 or self.quantity_after < 0:
            raise ValidationError("Movement quantities cannot be negative")
        validate_reason(self.reason)

    @property
    def is_increase(self) -> bool:
        return self.delta > 0
