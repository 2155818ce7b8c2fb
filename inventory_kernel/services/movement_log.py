"""
MovementLog -- append-only writer for stock movements.

Responsibility:
    Writes one StockMovement per quantity change, numbering it from the
    owning item's locked movement_count.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the engines while the
    item row is locked; never called on an unlocked row.

Invariants enforced:
    - previous_quantity + quantity == new_quantity (asserted before insert,
      also a CHECK constraint).
    - Per-item sequence is gap-free: it increments a counter on the locked
      row instead of reading MAX(sequence) + 1.
    - Insert only.  There is no update or delete method, and the
      immutability listeners reject them anyway.
"""

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.values import MovementType
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.stock_movement import StockMovement
from inventory_kernel.services.base import BaseService

logger = get_logger("services.movement_log")


class MovementLog(BaseService):
    """Append-only writer for the stock movement log."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def append(
        self,
        item: InventoryItem,
        movement_type: MovementType,
        quantity: int,
        previous_quantity: int,
        new_quantity: int,
        reason: str | None = None,
        reference_id: str | None = None,
        user_id: str | None = None,
    ) -> StockMovement:
        """
        Record one movement against a locked item.

        Preconditions:
            - ``item`` was obtained through InventoryStore.lock*() in the
              current transaction.
        """
        assert previous_quantity + quantity == new_quantity, (
            f"movement arithmetic violated: {previous_quantity} {quantity:+d} "
            f"!= {new_quantity}"
        )

        item.movement_count += 1
        movement = StockMovement(
            inventory_item_id=item.id,
            sequence=item.movement_count,
            movement_type=movement_type.value,
            quantity=quantity,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reason=reason,
            reference_id=reference_id,
            user_id=user_id,
            created_at=self._clock.now(),
        )
        self.session.add(movement)
        self.session.flush()

        logger.debug(
            "movement_appended",
            extra={
                "inventory_item_id": str(item.id),
                "sequence": movement.sequence,
                "movement_type": movement_type.value,
                "quantity": quantity,
                "previous_quantity": previous_quantity,
                "new_quantity": new_quantity,
            },
        )
        return movement
