"""
Thresholds -- edge-triggered stock notifications.

Responsibility:
    Decides, from an on-hand quantity before and after a change, which
    threshold notifications are due.  Pure: no I/O, no ORM.

Architecture position:
    Kernel > Domain -- pure functional core.  Called by AdjustmentEngine and
    ReservationEngine.commit(); the resulting crossings are published by
    StockOrchestrator after commit.

Rules:
    low_stock  fires when  new <= threshold < previous   (downward crossing)
    restocked  fires when  previous <= 0 < new           (depleted -> available)

Both are edges, not levels: a change that starts and ends on the same side
of the boundary produces nothing, so repeated small adjustments below the
threshold do not produce an alert storm.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from inventory_kernel.domain.values import StockKey


class CrossingKind(str, Enum):
    LOW_STOCK = "low_stock"
    RESTOCKED = "restocked"


@dataclass(frozen=True)
class ThresholdCrossing:
    """One notification owed to the threshold publisher."""

    kind: CrossingKind
    key: StockKey
    previous_quantity: int
    current_quantity: int
    threshold: int


def crossed_low_stock(previous: int, current: int, threshold: int) -> bool:
    return current <= threshold < previous


def crossed_restock(previous: int, current: int) -> bool:
    return previous <= 0 < current


def detect_crossings(
    key: StockKey,
    previous: int,
    current: int,
    threshold: int,
) -> tuple[ThresholdCrossing, ...]:
    """Return the crossings produced by moving on-hand from previous to current."""
    crossings: list[ThresholdCrossing] = []
    if crossed_low_stock(previous, current, threshold):
        crossings.append(
            ThresholdCrossing(CrossingKind.LOW_STOCK, key, previous, current, threshold)
        )
    if crossed_restock(previous, current):
        crossings.append(
            ThresholdCrossing(CrossingKind.RESTOCKED, key, previous, current, threshold)
        )
    return tuple(crossings)
