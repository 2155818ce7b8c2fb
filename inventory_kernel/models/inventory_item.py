"""
Module: inventory_kernel.models.inventory_item
Responsibility: ORM persistence for current stock state, one row per
    (product_id, variant_id, location_id).
Architecture position: Kernel > Models.  May import from db/ and domain/values
    only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - Identity triple is unique (uq_inventory_item_key).
    - quantity_on_hand >= 0, 0 <= quantity_reserved <= quantity_on_hand and
      low_stock_threshold >= 0 (CHECK constraints; the engines check first
      and raise typed errors, the constraints are the backstop).
    - movement_count is the locked per-row counter that numbers movements.
      It only grows.

Failure modes:
    - IntegrityError on duplicate key triple or CHECK violation.

Audit relevance:
    Rows are never deleted.  Quantity can fall to zero; the row stays so the
    movement chain that references it stays complete.
"""

from sqlalchemy import CheckConstraint, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TimestampedBase
from inventory_kernel.domain.values import StockKey


class InventoryItem(TimestampedBase):
    """
    Current stock for one variant at one location.

    Mutated only by AdjustmentEngine and ReservationEngine, always under a
    row lock taken by InventoryStore.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        UniqueConstraint(
            "product_id", "variant_id", "location_id",
            name="uq_inventory_item_key",
        ),
        CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_on_hand_non_negative"),
        CheckConstraint("quantity_reserved >= 0", name="ck_inventory_reserved_non_negative"),
        CheckConstraint(
            "quantity_reserved <= quantity_on_hand",
            name="ck_inventory_reserved_within_on_hand",
        ),
        CheckConstraint("low_stock_threshold >= 0", name="ck_inventory_threshold_non_negative"),
        Index("idx_inventory_item_location", "location_id"),
    )

    product_id: Mapped[str] = mapped_column(String(100), nullable=False)
    variant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    location_id: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity_on_hand: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity_reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    movement_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    movements = relationship(
        "StockMovement",
        back_populates="inventory_item",
        order_by="StockMovement.sequence",
        viewonly=True,
    )

    @property
    def key(self) -> StockKey:
        return StockKey(self.product_id, self.variant_id, self.location_id)

    @property
    def quantity_available(self) -> int:
        return self.quantity_on_hand - self.quantity_reserved

    def __repr__(self) -> str:
        return (
            f"<InventoryItem {self.key} on_hand={self.quantity_on_hand} "
            f"reserved={self.quantity_reserved}>"
        )
