"""
InventoryStore -- row-locked access to current stock state.

Responsibility:
    Looks up InventoryItem rows by (product_id, variant_id, location_id) and
    takes the exclusive row locks the engines need for read-modify-write.

Architecture position:
    Kernel > Services -- imperative shell.  Used by AdjustmentEngine and
    ReservationEngine only.

Invariants enforced:
    - Every quantity read that feeds a write happens under
      ``SELECT ... FOR UPDATE`` with ``populate_existing`` so the identity
      map never serves a stale copy.
    - lock_many() acquires locks one key at a time in sorted StockKey order,
      whatever order the caller supplied.  Two transactions locking
      overlapping rows therefore always queue in the same direction and
      cannot deadlock on each other.

Failure modes:
    - NotFoundError from lock() when the row does not exist.
    - DBAPIError (lock_not_available / deadlock / database is locked) when
      the lock wait is cut short; StockOrchestrator translates these.
"""

from collections.abc import Iterable

from sqlalchemy import select

from inventory_kernel.domain.values import StockKey
from inventory_kernel.exceptions import NotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.services.base import BaseService

logger = get_logger("services.inventory_store")


class InventoryStore(BaseService):
    """Keyed, lockable access to InventoryItem rows."""

    def _select(self, key: StockKey):
        return select(InventoryItem).where(
            InventoryItem.product_id == key.product_id,
            InventoryItem.variant_id == key.variant_id,
            InventoryItem.location_id == key.location_id,
        )

    def get(self, key: StockKey) -> InventoryItem | None:
        """Unlocked read.  Not to be used as the basis of a write."""
        return self.session.execute(self._select(key)).scalar_one_or_none()

    def lock_optional(self, key: StockKey) -> InventoryItem | None:
        """Lock and return the row for ``key``, or None if it does not exist."""
        item = self.session.execute(
            self._select(key)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        logger.debug(
            "inventory_row_locked",
            extra={"key": str(key), "found": item is not None},
        )
        return item

    def lock(self, key: StockKey) -> InventoryItem:
        """Lock and return the row for ``key``; raise NotFoundError if absent."""
        item = self.lock_optional(key)
        if item is None:
            raise NotFoundError(key.product_id, key.variant_id, key.location_id)
        return item

    def lock_many(self, keys: Iterable[StockKey]) -> dict[StockKey, InventoryItem | None]:
        """
        Lock every distinct key in canonical order.

        Returns a mapping from key to row (None for keys with no row).  All
        locks are held until the surrounding transaction ends.
        """
        ordered = sorted(set(keys))
        return {key: self.lock_optional(key) for key in ordered}
