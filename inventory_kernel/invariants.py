"""
Kernel Invariants Contract.

These invariants are structural law for stock data. No configuration value
or caller flag may switch them off.

This module exists solely to declare them explicitly. The enforcement is
distributed across the engines, the models' CHECK constraints, the
immutability listeners and the PostgreSQL triggers.
"""

from enum import Enum, unique


@unique
class StockInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_ON_HAND = "non_negative_on_hand"
    """quantity_on_hand never goes below zero. Enforced by AdjustmentEngine
    before flush and by a CHECK constraint on inventory_items."""

    RESERVATION_BOUND = "reservation_bound"
    """0 <= quantity_reserved <= quantity_on_hand for every row at all times.
    Enforced by both engines and by CHECK constraints."""

    MOVEMENT_ARITHMETIC = "movement_arithmetic"
    """previous_quantity + quantity == new_quantity on every movement.
    Enforced by MovementLog and by a CHECK constraint."""

    MOVEMENT_IMMUTABILITY = "movement_immutability"
    """Stock movements are append-only. No UPDATE or DELETE. Enforced by
    ORM listeners (inventory_kernel.db.immutability) and DB triggers."""

    BATCH_ATOMICITY = "batch_atomicity"
    """A multi-line reservation either applies every line or none.
    Enforced by StockOrchestrator owning a single transaction."""

    CANONICAL_LOCK_ORDER = "canonical_lock_order"
    """Multi-row operations lock rows sorted by (product_id, variant_id,
    location_id), independent of caller order. Enforced by InventoryStore."""

    POST_COMMIT_NOTIFICATION = "post_commit_notification"
    """Threshold events are published only after a successful commit and
    never roll back stock. Enforced by StockOrchestrator."""


ALL_STOCK_INVARIANTS: frozenset[StockInvariant] = frozenset(StockInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "inventory_config",
)
