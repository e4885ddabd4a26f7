"""Product aggregate: the stock-bearing entity.

``available_quantity`` is the single shared counter the ledger protects.
A Product instance is a *snapshot*: mutating it never changes stock. All
stock changes go through ``StockLedger`` and the repository's atomic
updates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from stockkeeper.domain.exceptions import ValidationError
from stockkeeper.domain.model.value_objects import Money

DEFAULT_MIN_THRESHOLD = 5
DEFAULT_MAX_THRESHOLD = 1000
MAX_NAME_LENGTH = 100


class StockStatus(Enum):
    OUT_OF_STOCK = "OUT_OF_STOCK"
    LOW_STOCK = "LOW_STOCK"
    IN_STOCK = "IN_STOCK"
    OVERSTOCK = "OVERSTOCK"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Product:
    """A catalog product and its stock counters.

    ``is_active`` may be ``None`` for records written before the flag
    existed; ``None`` counts as active.
    """

    id: str
    name: str
    price: Money
    available_quantity: int = 0
    total_reserved: int = 0
    is_active: bool | None = True
    min_threshold: int = DEFAULT_MIN_THRESHOLD
    max_threshold: int = DEFAULT_MAX_THRESHOLD
    last_restocked: datetime | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @staticmethod
    def create(
        product_id: str,
        name: str,
        price: Money,
        initial_quantity: int = 0,
        min_threshold: int = DEFAULT_MIN_THRESHOLD,
        max_threshold: int = DEFAULT_MAX_THRESHOLD,
    ) -> Product:
        """Create a new product, enforcing catalog rules."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        if len(name.strip()) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"Product name cannot exceed {MAX_NAME_LENGTH} characters"
            )
        if not isinstance(initial_quantity, int) or initial_quantity < 0:
            raise ValidationError("Stock must be a non-negative integer")
        validate_thresholds(min_threshold, max_threshold)

        now = _utcnow()
        return Product(
            id=product_id,
            name=name.strip(),
            price=price,
            available_quantity=initial_quantity,
            min_threshold=min_threshold,
            max_threshold=max_threshold,
            last_restocked=now,
            created_at=now,
        )

    @property
    def active(self) -> bool:
        return self.is_active is not False

    @property
    def stock_status(self) -> StockStatus:
        return classify_stock(
            self.available_quantity, self.min_threshold, self.max_threshold
        )

    @property
    def is_available(self) -> bool:
        return self.active and self.available_quantity > 0

    @property
    def is_low_stock(self) -> bool:
        return self.active and self.available_quantity <= self.min_threshold

    @property
    def stock_value(self) -> Money:
        return self.price * self.available_quantity


def classify_stock(quantity: int, min_threshold: int, max_threshold: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= min_threshold:
        return StockStatus.LOW_STOCK
    if quantity >= max_threshold:
        return StockStatus.OVERSTOCK
    return StockStatus.IN_STOCK


def validate_thresholds(min_threshold: int, max_threshold: int) -> None:
    if min_threshold < 0:
        raise ValidationError("Minimum stock level cannot be negative")
    if max_threshold < 1:
        raise ValidationError("Maximum stock level must be at least 1")
    if min_threshold > max_threshold:
        raise ValidationError(
            "Minimum stock level cannot be greater than maximum stock level"
        )
