"""
AdjustmentEngine -- one signed on-hand delta on one inventory row.

Responsibility:
    Applies a receive / sell / adjust / return / damage delta to a single
    InventoryItem's quantity_on_hand and writes the paired movement.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only: StockOrchestrator
    owns the transaction and publishes the returned crossings after commit.

Invariants enforced:
    - Non-negative on-hand: a delta that would take on-hand below zero is
      rejected before anything is written.
    - Reservation bound: a delta that would take on-hand below
      quantity_reserved is rejected too; reserved units belong to pending
      orders and can only leave through ReservationEngine.
    - Exactly one movement per successful adjustment, with on-hand
      before/after.

Failure modes:
    - InvalidQuantityError: delta is zero or not an int.
    - InvalidMovementTypeError: type is not an adjustment type.
    - NotFoundError: no row for the key.
    - InsufficientStockError: on-hand would go negative or below reserved.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import InventoryItemSnapshot, MovementRecord
from inventory_kernel.domain.thresholds import ThresholdCrossing, detect_crossings
from inventory_kernel.domain.values import (
    ADJUSTMENT_MOVEMENT_TYPES,
    MovementType,
    StockKey,
)
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidMovementTypeError,
    InvalidQuantityError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryStore
from inventory_kernel.services.movement_log import MovementLog

logger = get_logger("services.adjustment_engine")

_ALLOWED_TYPE_VALUES = tuple(sorted(t.value for t in ADJUSTMENT_MOVEMENT_TYPES))


@dataclass(frozen=True)
class AdjustmentResult:
    item: InventoryItemSnapshot
    movement: MovementRecord
    crossings: tuple[ThresholdCrossing, ...]


def coerce_adjustment_type(movement_type: MovementType | str) -> MovementType:
    """Accept a MovementType or its string value; reject reservation types."""
    try:
        resolved = MovementType(movement_type)
    except ValueError:
        raise InvalidMovementTypeError(str(movement_type), _ALLOWED_TYPE_VALUES) from None
    if resolved not in ADJUSTMENT_MOVEMENT_TYPES:
        raise InvalidMovementTypeError(resolved.value, _ALLOWED_TYPE_VALUES)
    return resolved


def validate_delta(delta: int) -> None:
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidQuantityError(delta, "delta must be an integer")
    if delta == 0:
        raise InvalidQuantityError(delta, "delta must be non-zero")


class AdjustmentEngine(BaseService):
    """Single-row on-hand adjustments."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._store = InventoryStore(session)
        self._log = MovementLog(session, clock)

    def adjust(
        self,
        key: StockKey,
        delta: int,
        movement_type: MovementType | str,
        reason: str | None = None,
        user_id: str | None = None,
        reference_id: str | None = None,
    ) -> AdjustmentResult:
        """
        Apply ``delta`` to the on-hand quantity of the row at ``key``.

        Preconditions:
            - Called inside a transaction the caller will commit or roll back.

        Postconditions:
            - On success the row is updated and one movement is flushed.
            - On failure nothing has been written by this call.
        """
        resolved_type = coerce_adjustment_type(movement_type)
        validate_delta(delta)

        item = self._store.lock(key)
        previous = item.quantity_on_hand
        new_quantity = previous + delta

        if new_quantity < 0:
            logger.info(
                "adjustment_rejected",
                extra={"key": str(key), "delta": delta, "on_hand": previous},
            )
            raise InsufficientStockError(
                product_id=key.product_id,
                requested=-delta,
                available=previous,
            )
        if new_quantity < item.quantity_reserved:
            logger.info(
                "adjustment_rejected",
                extra={
                    "key": str(key),
                    "delta": delta,
                    "on_hand": previous,
                    "reserved": item.quantity_reserved,
                },
            )
            raise InsufficientStockError(
                product_id=key.product_id,
                requested=-delta,
                available=item.quantity_available,
            )

        item.quantity_on_hand = new_quantity
        movement = self._log.append(
            item,
            resolved_type,
            quantity=delta,
            previous_quantity=previous,
            new_quantity=new_quantity,
            reason=reason,
            reference_id=reference_id,
            user_id=user_id,
        )

        crossings = detect_crossings(key, previous, new_quantity, item.low_stock_threshold)
        logger.info(
            "stock_adjusted",
            extra={
                "key": str(key),
                "movement_type": resolved_type.value,
                "delta": delta,
                "previous_quantity": previous,
                "new_quantity": new_quantity,
                "crossings": [c.kind.value for c in crossings],
            },
        )
        return AdjustmentResult(
            item=InventoryItemSnapshot.from_model(item),
            movement=MovementRecord.from_model(movement),
            crossings=crossings,
        )
