"""
ReservationEngine -- all-or-nothing multi-row reservations.

Responsibility:
    Reserves, releases and commits (converts into sales) stock for a list of
    ReservationLines that may span many inventory rows.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only: StockOrchestrator
    owns the single transaction that makes a batch atomic.

Invariants enforced:
    - Canonical lock order: every distinct row is locked, sorted by
      StockKey, before any quantity is read (InventoryStore.lock_many).
    - Batch atomicity: every line is checked before the first write.  Any
      failure raises before anything is flushed, and the orchestrator rolls
      back the transaction.
    - Reservation bound: reserve never takes reserved above on-hand;
      release and commit never take reserved below zero.
    - Duplicate lines for the same row are checked cumulatively.

Failure modes:
    - EmptyReservationError: no lines.
    - InsufficientStockError (reserve): any line's available quantity is
      short.  A row that does not exist counts as available = 0.  The error
      names the first offending line in caller order and carries all of them.
    - NotFoundError (release / commit): a line's row does not exist.
    - ReservationUnderflowError (release / commit): more than is reserved.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import InventoryItemSnapshot
from inventory_kernel.domain.thresholds import ThresholdCrossing, detect_crossings
from inventory_kernel.domain.values import MovementType, ReservationLine, StockKey
from inventory_kernel.exceptions import (
    EmptyReservationError,
    InsufficientStockError,
    NotFoundError,
    ReservationUnderflowError,
    StockShortfall,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_store import InventoryStore
from inventory_kernel.services.movement_log import MovementLog

logger = get_logger("services.reservation_engine")


@dataclass(frozen=True)
class ReservationResult:
    items: tuple[InventoryItemSnapshot, ...]
    crossings: tuple[ThresholdCrossing, ...] = ()


class ReservationEngine(BaseService):
    """Multi-row reserve / release / commit."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._store = InventoryStore(session)
        self._log = MovementLog(session, clock)

    # ------------------------------------------------------------------
    # reserve
    # ------------------------------------------------------------------

    def reserve(
        self,
        lines: Sequence[ReservationLine],
        reference_id: str | None = None,
        user_id: str | None = None,
        reason: str | None = "reservation",
    ) -> ReservationResult:
        """Reserve every line or none."""
        if not lines:
            raise EmptyReservationError("reserve")

        rows = self._store.lock_many(line.key for line in lines)

        claimed: dict[StockKey, int] = defaultdict(int)
        shortfalls: list[StockShortfall] = []
        for line in lines:
            item = rows[line.key]
            if item is None:
                available = 0
            else:
                available = item.quantity_available - claimed[line.key]
            if available < line.quantity:
                shortfalls.append(StockShortfall(
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    location_id=line.location_id,
                    requested=line.quantity,
                    available=max(available, 0),
                ))
            else:
                claimed[line.key] += line.quantity

        if shortfalls:
            first = shortfalls[0]
            logger.info(
                "reservation_rejected",
                extra={
                    "line_count": len(lines),
                    "shortfalls": [
                        {"product_id": s.product_id, "requested": s.requested,
                         "available": s.available}
                        for s in shortfalls
                    ],
                },
            )
            raise InsufficientStockError(
                product_id=first.product_id,
                requested=first.requested,
                available=first.available,
                shortfalls=tuple(shortfalls),
            )

        for line in lines:
            item = rows[line.key]
            previous = item.quantity_reserved
            item.quantity_reserved = previous + line.quantity
            self._log.append(
                item,
                MovementType.RESERVE,
                quantity=line.quantity,
                previous_quantity=previous,
                new_quantity=item.quantity_reserved,
                reason=reason,
                reference_id=reference_id,
                user_id=user_id,
            )

        logger.info(
            "stock_reserved",
            extra={"line_count": len(lines), "row_count": len(rows)},
        )
        return ReservationResult(items=self._snapshots(rows))

    # ------------------------------------------------------------------
    # release
    # ------------------------------------------------------------------

    def release(
        self,
        lines: Sequence[ReservationLine],
        reference_id: str | None = None,
        user_id: str | None = None,
        reason: str | None = "reservation_released",
    ) -> ReservationResult:
        """Give reserved units back to available stock."""
        if not lines:
            raise EmptyReservationError("release")

        rows = self._lock_existing(lines)
        self._check_reserved(lines, rows)

        for line in lines:
            self._decrement_reserved(line, rows[line.key], reason, reference_id, user_id)

        logger.info(
            "stock_released",
            extra={"line_count": len(lines), "row_count": len(rows)},
        )
        return ReservationResult(items=self._snapshots(rows))

    # ------------------------------------------------------------------
    # commit
    # ------------------------------------------------------------------

    def commit(
        self,
        lines: Sequence[ReservationLine],
        reference_id: str | None = None,
        user_id: str | None = None,
        reason: str | None = "reservation_committed",
    ) -> ReservationResult:
        """
        Convert reserved units into sales.

        Each line lowers quantity_reserved and quantity_on_hand by the same
        amount, writing a release movement and then a sell movement.  Reserved
        drops first so the reservation bound holds at every flush.
        """
        if not lines:
            raise EmptyReservationError("commit")

        rows = self._lock_existing(lines)
        self._check_reserved(lines, rows)

        on_hand_before = {key: item.quantity_on_hand for key, item in rows.items()}

        for line in lines:
            item = rows[line.key]
            self._decrement_reserved(line, item, reason, reference_id, user_id)

            previous = item.quantity_on_hand
            item.quantity_on_hand = previous - line.quantity
            self._log.append(
                item,
                MovementType.SELL,
                quantity=-line.quantity,
                previous_quantity=previous,
                new_quantity=item.quantity_on_hand,
                reason=reason,
                reference_id=reference_id,
                user_id=user_id,
            )

        crossings: list[ThresholdCrossing] = []
        for key, item in rows.items():
            crossings.extend(detect_crossings(
                key, on_hand_before[key], item.quantity_on_hand, item.low_stock_threshold,
            ))

        logger.info(
            "reservation_committed",
            extra={
                "line_count": len(lines),
                "row_count": len(rows),
                "crossings": [c.kind.value for c in crossings],
            },
        )
        return ReservationResult(items=self._snapshots(rows), crossings=tuple(crossings))

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _lock_existing(
        self, lines: Sequence[ReservationLine],
    ) -> dict[StockKey, InventoryItem]:
        rows = self._store.lock_many(line.key for line in lines)
        for line in lines:
            if rows[line.key] is None:
                raise NotFoundError(line.product_id, line.variant_id, line.location_id)
        return rows

    def _check_reserved(
        self,
        lines: Sequence[ReservationLine],
        rows: dict[StockKey, InventoryItem],
    ) -> None:
        pending: dict[StockKey, int] = defaultdict(int)
        for line in lines:
            item = rows[line.key]
            pending[line.key] += line.quantity
            if pending[line.key] > item.quantity_reserved:
                logger.error(
                    "reservation_underflow_blocked",
                    extra={
                        "key": str(line.key),
                        "reserved": item.quantity_reserved,
                        "requested": pending[line.key],
                    },
                )
                raise ReservationUnderflowError(
                    product_id=line.product_id,
                    reserved=item.quantity_reserved,
                    requested=pending[line.key],
                )

    def _decrement_reserved(
        self,
        line: ReservationLine,
        item: InventoryItem,
        reason: str | None,
        reference_id: str | None,
        user_id: str | None,
    ) -> None:
        previous = item.quantity_reserved
        item.quantity_reserved = previous - line.quantity
        self._log.append(
            item,
            MovementType.RELEASE,
            quantity=-line.quantity,
            previous_quantity=previous,
            new_quantity=item.quantity_reserved,
            reason=reason,
            reference_id=reference_id,
            user_id=user_id,
        )

    @staticmethod
    def _snapshots(rows: dict) -> tuple[InventoryItemSnapshot, ...]:
        return tuple(
            InventoryItemSnapshot.from_model(item)
            for item in rows.values()
            if item is not None
        )
