"""
Values -- immutable stock value objects.

Responsibility:
    Defines the small, hashable value types every other layer speaks in:
    MovementType (what kind of change), StockKey (which row) and
    ReservationLine (one requested quantity at one row).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Models, services and
    selectors import from here; this module imports nothing from the kernel.

Invariants enforced:
    - StockKey ordering is the canonical lock order for multi-row operations.
    - ReservationLine.quantity is a positive int (checked in __post_init__).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from inventory_kernel.exceptions import InvalidQuantityError, InvalidStockKeyError


class MovementType(str, Enum):
    """Classification of a stock movement."""

    RECEIVE = "receive"
    SELL = "sell"
    ADJUST = "adjust"
    RETURN = "return"
    DAMAGE = "damage"
    RESERVE = "reserve"
    RELEASE = "release"

    @property
    def affects_reserved(self) -> bool:
        """True for movements recorded against quantity_reserved."""
        return self in RESERVATION_MOVEMENT_TYPES


# Movement types accepted by AdjustmentEngine (act on quantity_on_hand)
ADJUSTMENT_MOVEMENT_TYPES: frozenset[MovementType] = frozenset({
    MovementType.RECEIVE,
    MovementType.SELL,
    MovementType.ADJUST,
    MovementType.RETURN,
    MovementType.DAMAGE,
})

# Movement types written by ReservationEngine (act on quantity_reserved)
RESERVATION_MOVEMENT_TYPES: frozenset[MovementType] = frozenset({
    MovementType.RESERVE,
    MovementType.RELEASE,
})


def _require_ids(product_id: object, variant_id: object, location_id: object) -> None:
    """Ids must be non-empty strings; keys are compared and sorted as strings."""
    for field, value in (
        ("product_id", product_id),
        ("variant_id", variant_id),
        ("location_id", location_id),
    ):
        if not isinstance(value, str) or not value:
            raise InvalidStockKeyError(field, value)


@dataclass(frozen=True, order=True)
class StockKey:
    """
    Identity of one inventory row.

    Field order defines the sort order, which is the global lock order.
    """

    product_id: str
    variant_id: str
    location_id: str

    def __post_init__(self) -> None:
        _require_ids(self.product_id, self.variant_id, self.location_id)

    def __str__(self) -> str:
        return f"{self.product_id}/{self.variant_id}@{self.location_id}"


@dataclass(frozen=True)
class ReservationLine:
    """One requested quantity of a variant at a location."""

    product_id: str
    variant_id: str
    location_id: str
    quantity: int

    def __post_init__(self) -> None:
        _require_ids(self.product_id, self.variant_id, self.location_id)
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise InvalidQuantityError(self.quantity, "line quantity must be an integer")
        if self.quantity <= 0:
            raise InvalidQuantityError(self.quantity, "line quantity must be positive")

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.variant_id, self.location_id)

    @classmethod
    def from_dict(cls, data: dict) -> ReservationLine:
        """Build a line from a cart-style mapping (snake or camel case)."""
        return cls(
            product_id=data.get("product_id", data.get("productId")),
            variant_id=data.get("variant_id", data.get("variantId")),
            location_id=data.get("location_id", data.get("locationId")),
            quantity=data.get("quantity"),
        )
