"""
StockSelector -- read-only queries over inventory rows and movements.

Responsibility:
    Availability lookups, low-stock listings for dashboards, movement
    history, and replay verification of the movement log against the
    current row.

Architecture position:
    Kernel > Selectors.  Never locks, never writes.  Results are snapshots;
    they may be stale by the time the caller acts on them, which is why the
    engines re-read under lock.
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import (
    InventoryItemSnapshot,
    LedgerVerification,
    MovementRecord,
)
from inventory_kernel.domain.replay import replay_movements
from inventory_kernel.domain.values import StockKey
from inventory_kernel.exceptions import LedgerReplayError, NotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.stock_movement import StockMovement
from inventory_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.stock")


class StockSelector(BaseSelector):
    """Queries for stock levels and the movement log."""

    def get_item(self, key: StockKey) -> InventoryItemSnapshot | None:
        item = self.session.execute(
            select(InventoryItem).where(
                InventoryItem.product_id == key.product_id,
                InventoryItem.variant_id == key.variant_id,
                InventoryItem.location_id == key.location_id,
            )
        ).scalar_one_or_none()
        return InventoryItemSnapshot.from_model(item) if item is not None else None

    def require_item(self, key: StockKey) -> InventoryItemSnapshot:
        snapshot = self.get_item(key)
        if snapshot is None:
            raise NotFoundError(key.product_id, key.variant_id, key.location_id)
        return snapshot

    def get_availability(self, key: StockKey) -> int:
        """Units a new reservation could claim right now (0 if no row)."""
        snapshot = self.get_item(key)
        return snapshot.quantity_available if snapshot is not None else 0

    def list_for_product(self, product_id: str) -> list[InventoryItemSnapshot]:
        rows = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.product_id == product_id)
            .order_by(InventoryItem.variant_id, InventoryItem.location_id)
        ).scalars()
        return [InventoryItemSnapshot.from_model(row) for row in rows]

    def list_low_stock(self, location_id: str | None = None) -> list[InventoryItemSnapshot]:
        """Rows at or below their low-stock threshold, lowest stock first."""
        query = select(InventoryItem).where(
            InventoryItem.quantity_on_hand <= InventoryItem.low_stock_threshold
        )
        if location_id is not None:
            query = query.where(InventoryItem.location_id == location_id)
        query = query.order_by(
            InventoryItem.quantity_on_hand,
            InventoryItem.product_id,
            InventoryItem.variant_id,
            InventoryItem.location_id,
        )
        return [InventoryItemSnapshot.from_model(row) for row in self.session.execute(query).scalars()]

    def movement_history(self, inventory_item_id: UUID) -> list[MovementRecord]:
        rows = self.session.execute(
            select(StockMovement)
            .where(StockMovement.inventory_item_id == inventory_item_id)
            .order_by(StockMovement.sequence)
        ).scalars()
        return [MovementRecord.from_model(row) for row in rows]

    def movements_for_reference(self, reference_id: str) -> list[MovementRecord]:
        rows = self.session.execute(
            select(StockMovement)
            .where(StockMovement.reference_id == reference_id)
            .order_by(StockMovement.created_at, StockMovement.sequence)
        ).scalars()
        return [MovementRecord.from_model(row) for row in rows]

    def verify_ledger(self, inventory_item_id: UUID) -> LedgerVerification:
        """
        Replay the item's movements and compare with the stored row.

        A stream with no movements is not compared (its value was set at
        provisioning).
        """
        item = self.session.get(InventoryItem, inventory_item_id, populate_existing=True)
        if item is None:
            raise LedgerReplayError(str(inventory_item_id), "inventory item does not exist")

        movements = self.movement_history(inventory_item_id)
        replay = replay_movements(movements)

        errors = list(replay.errors)
        if len(movements) != item.movement_count:
            errors.append(
                f"movement_count is {item.movement_count} but {len(movements)} movements exist"
            )
        if replay.on_hand is not None and replay.on_hand != item.quantity_on_hand:
            errors.append(
                f"on_hand replays to {replay.on_hand}, row has {item.quantity_on_hand}"
            )
        if replay.reserved is not None and replay.reserved != item.quantity_reserved:
            errors.append(
                f"reserved replays to {replay.reserved}, row has {item.quantity_reserved}"
            )

        result = LedgerVerification(
            inventory_item_id=item.id,
            movement_count=replay.movement_count,
            replayed_on_hand=replay.on_hand,
            replayed_reserved=replay.reserved,
            actual_on_hand=item.quantity_on_hand,
            actual_reserved=item.quantity_reserved,
            errors=tuple(errors),
        )
        if not result.is_consistent:
            logger.error(
                "ledger_replay_mismatch",
                extra={"inventory_item_id": str(item.id), "errors": list(errors)},
            )
        return result

    def assert_ledger_consistent(self, inventory_item_id: UUID) -> LedgerVerification:
        """verify_ledger(), raising LedgerReplayError on any mismatch."""
        result = self.verify_ledger(inventory_item_id)
        if not result.is_consistent:
            raise LedgerReplayError(str(inventory_item_id), "; ".join(result.errors))
        return result
