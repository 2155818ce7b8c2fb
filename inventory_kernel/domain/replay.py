"""
Replay -- reconstruct quantities from the movement log.

Responsibility:
    Folds an item's movements, in sequence order, into the on-hand and
    reserved quantities they imply, checking the chain as it goes.

Architecture position:
    Kernel > Domain -- pure functional core.  Used by StockSelector.verify_ledger
    and by the property tests.

Chain rules, applied separately to the on-hand and the reserved stream:
    - every movement satisfies previous_quantity + quantity == new_quantity
    - every movement's previous_quantity equals the preceding movement's
      new_quantity in the same stream
    - sequence numbers are 1..n without gaps

A stream with no movements replays to None: the row's starting value was
set at provisioning and is not part of the log.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from inventory_kernel.domain.dtos import MovementRecord


@dataclass(frozen=True)
class ReplayResult:
    on_hand: int | None
    reserved: int | None
    movement_count: int
    errors: tuple[str, ...]


def replay_movements(movements: Iterable[MovementRecord]) -> ReplayResult:
    """Replay movements (any order; sorted by sequence here)."""
    ordered = sorted(movements, key=lambda m: m.sequence)
    errors: list[str] = []
    current: dict[bool, int | None] = {False: None, True: None}

    for expected_seq, movement in enumerate(ordered, start=1):
        if movement.sequence != expected_seq:
            errors.append(
                f"sequence gap: expected {expected_seq}, found {movement.sequence}"
            )
        if movement.previous_quantity + movement.quantity != movement.new_quantity:
            errors.append(
                f"movement {movement.sequence}: {movement.previous_quantity} "
                f"{movement.quantity:+d} != {movement.new_quantity}"
            )

        stream = movement.movement_type.affects_reserved
        prior = current[stream]
        if prior is not None and movement.previous_quantity != prior:
            label = "reserved" if stream else "on_hand"
            errors.append(
                f"movement {movement.sequence}: {label} chain broken "
                f"(previous {movement.previous_quantity}, expected {prior})"
            )
        current[stream] = movement.new_quantity

    return ReplayResult(
        on_hand=current[False],
        reserved=current[True],
        movement_count=len(ordered),
        errors=tuple(errors),
    )
