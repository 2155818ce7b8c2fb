"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Stock errors are shown to shoppers ("out of stock"), retried by checkout
(lock timeouts), or escalated to operators (ledger corruption). Callers must
tell these apart by TYPE and CODE, never by parsing message text:

    try:
        orchestrator.reserve(lines)
    except InsufficientStockError as e:
        return {"error": e.code, "lines": [s.product_id for s in e.shortfalls]}
    except LockTimeoutError:
        retry_later()

Every exception:
  1. Has a ``code`` class attribute (machine-readable, API-safe)
  2. Stores its context as attributes (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- StockError
    |   +-- NotFoundError
    |   +-- InsufficientStockError
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidMovementTypeError
    |   +-- EmptyReservationError
    |   +-- InvalidStockKeyError
    |
    +-- ConcurrencyError
    |   +-- LockTimeoutError
    |
    +-- InvariantError
    |   +-- ReservationUnderflowError
    |   +-- LedgerReplayError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                    | When Raised
-------------|-------------------------|----------------------------------------
Stock        | INVENTORY_NOT_FOUND     | No row for (product, variant, location)
             | INSUFFICIENT_STOCK      | On-hand would go negative / below
             |                         | reserved, or available < requested
-------------|-------------------------|----------------------------------------
Validation   | INVALID_QUANTITY        | Zero delta, non-positive line quantity
             | INVALID_MOVEMENT_TYPE   | Unknown or wrong-kind movement type
             | EMPTY_RESERVATION       | reserve/release called with no lines
             | INVALID_STOCK_KEY       | Product, variant or location id missing
             |                         | or not a non-empty string
-------------|-------------------------|----------------------------------------
Concurrency  | LOCK_TIMEOUT            | Row lock not acquired in time, or the
             |                         | database chose this txn as deadlock victim
-------------|-------------------------|----------------------------------------
Invariant    | RESERVATION_UNDERFLOW   | Release/commit more than is reserved
             | LEDGER_REPLAY_MISMATCH  | Movement chain does not reproduce row
-------------|-------------------------|----------------------------------------
Immutability | IMMUTABILITY_VIOLATION  | UPDATE/DELETE of a stock movement

===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Stock-related exceptions


class StockError(InventoryKernelError):
    """Base exception for stock-level errors."""

    code: str = "STOCK_ERROR"


class NotFoundError(StockError):
    """No inventory row exists for the requested key."""

    code: str = "INVENTORY_NOT_FOUND"

    def __init__(self, product_id: str, variant_id: str, location_id: str):
        self.product_id = product_id
        self.variant_id = variant_id
        self.location_id = location_id
        super().__init__(
            f"Inventory item not found: product={product_id} "
            f"variant={variant_id} location={location_id}"
        )


@dataclass(frozen=True)
class StockShortfall:
    """One line that could not be satisfied."""

    product_id: str
    variant_id: str
    location_id: str
    requested: int
    available: int


class InsufficientStockError(StockError):
    """
    Requested change cannot be satisfied by current stock.

    ``product_id`` names the first offending line.  ``shortfalls`` lists every
    offending line so checkout can tell the shopper which cart items to fix,
    even though the batch was rejected as a whole.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: str,
        requested: int,
        available: int,
        shortfalls: tuple[StockShortfall, ...] = (),
    ):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.shortfalls = shortfalls
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


# Validation exceptions


class ValidationError(InventoryKernelError):
    """Base exception for malformed requests."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity or delta is not acceptable for the operation."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class InvalidMovementTypeError(ValidationError):
    """Movement type is unknown or not allowed for the operation."""

    code: str = "INVALID_MOVEMENT_TYPE"

    def __init__(self, movement_type: str, allowed: tuple[str, ...]):
        self.movement_type = movement_type
        self.allowed = allowed
        super().__init__(
            f"Invalid movement type {movement_type!r}; "
            f"expected one of {', '.join(allowed)}"
        )


class EmptyReservationError(ValidationError):
    """A reservation operation was called without any lines."""

    code: str = "EMPTY_RESERVATION"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation} requires at least one line")


class InvalidStockKeyError(ValidationError):
    """A stock key component is missing or not a non-empty string."""

    code: str = "INVALID_STOCK_KEY"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a non-empty string, got {value!r}")


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class LockTimeoutError(ConcurrencyError):
    """
    Row locks could not be acquired within the configured window.

    The transaction was rolled back in full; nothing was written.  Callers
    may retry with backoff.
    """

    code: str = "LOCK_TIMEOUT"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"Lock wait failed during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Invariant exceptions


class InvariantError(InventoryKernelError):
    """Base exception for internal invariant violations."""

    code: str = "INVARIANT_ERROR"


class ReservationUnderflowError(InvariantError):
    """Release or commit would drive quantity_reserved below zero."""

    code: str = "RESERVATION_UNDERFLOW"

    def __init__(self, product_id: str, reserved: int, requested: int):
        self.product_id = product_id
        self.reserved = reserved
        self.requested = requested
        super().__init__(
            f"Cannot release {requested} units of product {product_id}: "
            f"only {reserved} reserved"
        )


class LedgerReplayError(InvariantError):
    """Movement chain does not reproduce the recorded quantities."""

    code: str = "LEDGER_REPLAY_MISMATCH"

    def __init__(self, inventory_item_id: str, reason: str):
        self.inventory_item_id = inventory_item_id
        self.reason = reason
        super().__init__(
            f"Ledger replay failed for inventory item {inventory_item_id}: {reason}"
        )


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
