"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable snapshots of inventory rows and movements, handed out of the
    service and selector layers so callers never hold live ORM instances
    after the session closes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters invoked only from
    services and selectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from inventory_kernel.domain.values import MovementType, StockKey

if TYPE_CHECKING:
    from inventory_kernel.models.inventory_item import InventoryItem
    from inventory_kernel.models.stock_movement import StockMovement


@dataclass(frozen=True)
class InventoryItemSnapshot:
    """Point-in-time copy of an InventoryItem row."""

    id: UUID
    product_id: str
    variant_id: str
    location_id: str
    quantity_on_hand: int
    quantity_reserved: int
    low_stock_threshold: int

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.variant_id, self.location_id)

    @property
    def quantity_available(self) -> int:
        return self.quantity_on_hand - self.quantity_reserved

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_on_hand <= self.low_stock_threshold

    @classmethod
    def from_model(cls, item: InventoryItem) -> InventoryItemSnapshot:
        return cls(
            id=item.id,
            product_id=item.product_id,
            variant_id=item.variant_id,
            location_id=item.location_id,
            quantity_on_hand=item.quantity_on_hand,
            quantity_reserved=item.quantity_reserved,
            low_stock_threshold=item.low_stock_threshold,
        )


@dataclass(frozen=True)
class MovementRecord:
    """Immutable copy of a StockMovement row."""

    id: UUID
    inventory_item_id: UUID
    sequence: int
    movement_type: MovementType
    quantity: int
    previous_quantity: int
    new_quantity: int
    reason: str | None
    reference_id: str | None
    user_id: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, movement: StockMovement) -> MovementRecord:
        return cls(
            id=movement.id,
            inventory_item_id=movement.inventory_item_id,
            sequence=movement.sequence,
            movement_type=MovementType(movement.movement_type),
            quantity=movement.quantity,
            previous_quantity=movement.previous_quantity,
            new_quantity=movement.new_quantity,
            reason=movement.reason,
            reference_id=movement.reference_id,
            user_id=movement.user_id,
            created_at=movement.created_at,
        )


@dataclass(frozen=True)
class LedgerVerification:
    """Outcome of replaying an item's movements against its current row."""

    inventory_item_id: UUID
    movement_count: int
    replayed_on_hand: int | None
    replayed_reserved: int | None
    actual_on_hand: int
    actual_reserved: int
    errors: tuple[str, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not self.errors
