"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The movement log is the compliance record of every unit of regulated product
that entered or left a location. It must be tamper-proof: a mistaken
movement is corrected by a new, compensating movement, never by editing or
deleting the old one.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (PostgreSQL triggers)
    - Catches raw SQL, bulk UPDATE statements, direct psql access

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity         | Rule                                  | Why
---------------|---------------------------------------|-----------------------------
StockMovement  | No UPDATE, no DELETE, ever            | Audit trail / replay log
InventoryItem  | No DELETE; identity triple frozen     | Movements must keep a parent

Quantities on InventoryItem are of course mutable -- but only through the
engines, which is a code-review rule rather than something a listener can
check.

===============================================================================
USAGE
===============================================================================

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Identity fields frozen for the row's lifetime
INVENTORY_IDENTITY_FIELDS = frozenset({"product_id", "variant_id", "location_id"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_stock_movement_update(mapper, connection, target):
    """Stock movements are always immutable."""
    raise _blocked(
        "StockMovement", target.id, "UPDATE",
        "Stock movements are immutable and cannot be modified",
    )


def _check_stock_movement_delete(mapper, connection, target):
    """Stock movements cannot be deleted."""
    raise _blocked(
        "StockMovement", target.id, "DELETE",
        "Stock movements cannot be deleted",
    )


def _check_inventory_item_identity(mapper, connection, target):
    """The (product, variant, location) triple never changes."""
    state = inspect(target)
    changed = sorted(
        name for name in INVENTORY_IDENTITY_FIELDS
        if state.attrs[name].history.has_changes()
    )
    if changed:
        raise _blocked(
            "InventoryItem", target.id, "UPDATE",
            f"Identity fields cannot change: {', '.join(changed)}",
        )


def _check_inventory_item_delete(mapper, connection, target):
    """Inventory rows are never physically deleted."""
    raise _blocked(
        "InventoryItem", target.id, "DELETE",
        "Inventory items are kept for audit continuity and cannot be deleted",
    )


_LISTENERS = (
    ("StockMovement", "before_update", _check_stock_movement_update),
    ("StockMovement", "before_delete", _check_stock_movement_delete),
    ("InventoryItem", "before_update", _check_inventory_item_identity),
    ("InventoryItem", "before_delete", _check_inventory_item_delete),
)


def _models():
    from inventory_kernel.models import InventoryItem, StockMovement

    return {"InventoryItem": InventoryItem, "StockMovement": StockMovement}


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call after models are importable but before any database writes.
    Registering twice is harmless.
    """
    models = _models()
    for model_name, event_name, listener in _LISTENERS:
        target = models[model_name]
        if not event.contains(target, event_name, listener):
            event.listen(target, event_name, listener)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that deliberately violate the rules.
    """
    models = _models()
    for model_name, event_name, listener in _LISTENERS:
        target = models[model_name]
        if event.contains(target, event_name, listener):
            event.remove(target, event_name, listener)
