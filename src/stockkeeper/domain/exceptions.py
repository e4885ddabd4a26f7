"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.

Stock failures carry enough context (product, requested and available
quantities) for a caller to offer an adjusted quantity instead of giving up.
"""

from __future__ import annotations

from dataclasses import dataclass


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class ProductNotFoundError(EntityNotFoundError):

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product '{product_id}' not found")
        self.product_id = product_id


class OrderNotFoundError(EntityNotFoundError):

    def __init__(self, order_id: int) -> None:
        super().__init__(f"Order #{order_id} not found")
        self.order_id = order_id


class StockError(DomainException):
    """A reservation was refused for a single product."""

    def __init__(self, message: str, product_id: str) -> None:
        super().__init__(message)
        self.product_id = product_id


class ProductUnavailableError(StockError):
    """The product is deactivated and cannot be reserved."""

    def __init__(self, product_id: str, product_name: str | None = None) -> None:
        label = product_name or product_id
        super().__init__(f"{label} is no longer available", product_id)


class InsufficientStockError(StockError):
    """Not enough stock, either a genuine shortage or a lost race."""

    def __init__(
        self,
        product_id: str,
        requested: int,
        available: int,
        product_name: str | None = None,
        lost_race: bool = False,
    ) -> None:
        label = product_name or product_id
        if lost_race:
            message = (
                f"Stock changed during checkout. {label} now has {available} "
                f"available, but {requested} was requested. Please try again."
            )
        elif available <= 0:
            message = f"{label} is out of stock"
        else:
            message = (
                f"Insufficient stock for {label}. "
                f"Available: {available}, Requested: {requested}"
            )
        super().__init__(message, product_id)
        self.requested = requested
        self.available = available
        self.lost_race = lost_race


class InvalidTransitionError(DomainException):
    """An order status change is not allowed from the current status."""


class StorageError(DomainException):
    """The backing store failed while reading or writing."""


class ConcurrentModificationError(StorageError):
    """A compare-and-swap write kept losing to concurrent writers."""


class AuditLogFailure(StorageError):
    """A stock movement could not be recorded.

    Never rolls back the stock mutation that produced the movement.
    """


class ConfigurationError(DomainException):
    """A configuration value is missing or malformed."""


@dataclass(frozen=True)
class CompensationFailure:
    """A restoration that failed while rolling back a checkout."""

    product_id: str
    quantity: int
    error: str


class CheckoutError(DomainException):
    """A checkout was aborted and every committed reservation compensated.

    ``reason`` is the original failure. ``compensation_failures`` lists the
    restorations that could not be applied during rollback; they are
    reported here and in the logs but never replace ``reason``.
    """

    def __init__(
        self,
        product_id: str | None,
        quantity: int | None,
        reason: BaseException,
        compensation_failures: tuple[CompensationFailure, ...] = (),
    ) -> None:
        if product_id is None:
            message = f"Checkout failed: {reason}"
        else:
            message = f"Checkout failed on product '{product_id}' (qty {quantity}): {reason}"
        super().__init__(message)
        self.product_id = product_id
        self.quantity = quantity
        self.reason = reason
        self.compensation_failures = compensation_failures

    @property
    def available(self) -> int | None:
        """Current stock for the failed product, when the failure was a shortage."""
        if isinstance(self.reason, InsufficientStockError):
            return self.reason.available
        return None

    @property
    def is_retryable(self) -> bool:
        # A shortage needs a different quantity; everything else may succeed on retry.
        return not isinstance(self.reason, InsufficientStockError)


class CheckoutTimeoutError(CheckoutError):
    """The checkout did not finish in time; reservations were compensated."""
