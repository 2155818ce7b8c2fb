"""
Module: inventory_kernel.models.stock_movement
Responsibility: ORM persistence for the movement log -- one immutable row per
    successful stock mutation.
Architecture position: Kernel > Models.  May import from db/ and domain/values
    only.

Invariants enforced:
    - previous_quantity + quantity == new_quantity (CHECK constraint).
    - (inventory_item_id, sequence) is unique; sequence comes from the
      owning row's locked movement_count, so it is gap-free per item.
    - movement_type is one of MovementType (CHECK constraint).
    - Immutable: ORM listeners (db/immutability.py) and PostgreSQL triggers
      (db/triggers.py) reject UPDATE and DELETE.

Audit relevance:
    Ordered by sequence, the movements of one item form a complete replay log
    of its on-hand quantity (adjustment types) and reserved quantity
    (reserve/release).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString
from inventory_kernel.domain.values import MovementType

_TYPE_LIST = ", ".join(f"'{t.value}'" for t in MovementType)


class StockMovement(Base):
    """
    Append-only record of one quantity change.

    ``quantity`` is signed and applies to the quantity the movement type
    affects: on-hand for receive/sell/adjust/return/damage, reserved for
    reserve/release.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        UniqueConstraint("inventory_item_id", "sequence", name="uq_stock_movement_item_seq"),
        CheckConstraint(
            "previous_quantity + quantity = new_quantity",
            name="ck_stock_movement_arithmetic",
        ),
        CheckConstraint(f"type IN ({_TYPE_LIST})", name="ck_stock_movement_type"),
        Index("idx_stock_movement_reference", "reference_id"),
        Index("idx_stock_movement_created_at", "created_at"),
    )

    inventory_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=False,
        index=True,
    )

    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    movement_type: Mapped[str] = mapped_column("type", String(20), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    new_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    inventory_item = relationship("InventoryItem", back_populates="movements")

    @property
    def type(self) -> MovementType:
        return MovementType(self.movement_type)

    def __repr__(self) -> str:
        return (
            f"<StockMovement #{self.sequence} {self.movement_type} "
            f"{self.previous_quantity}{self.quantity:+d}={self.new_quantity}>"
        )
