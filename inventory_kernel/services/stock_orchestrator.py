"""
StockOrchestrator -- the public entry point for stock mutations.

Responsibility:
    Wraps AdjustmentEngine and ReservationEngine in exactly one database
    transaction per call, bounds lock waits, translates lock failures, and
    publishes threshold notifications once the transaction has committed.

Architecture position:
    Kernel > Services -- imperative shell.  Called by checkout, receiving,
    returns and write-off flows (all outside the kernel).

Invariants enforced:
    - One transaction per call.  Commits on success; on any error rolls back
      in full and re-raises, so there is never a partial adjustment or a
      partial reservation.
    - Notifications are published only after commit.  A publisher failure
      is logged and swallowed: it never rolls back committed stock and never
      reaches the caller.
    - No retries.  A LockTimeoutError goes back to the caller, who decides
      whether to retry; retrying here could hide a real shortfall behind a
      timeout.

Failure modes:
    - NotFoundError, InsufficientStockError, ReservationUnderflowError,
      validation errors: raised by the engines, rolled back here.
    - LockTimeoutError: the database gave up waiting for a lock
      (lock_timeout, deadlock victim, or SQLite busy timeout).
    - Any other DBAPIError propagates unchanged after rollback.
"""

import time
from collections.abc import Callable, Iterable, Mapping
from typing import TypeVar
from uuid import uuid4

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from inventory_kernel.db.engine import DEFAULT_LOCK_TIMEOUT_MS
from inventory_kernel.db.locking import apply_lock_timeout, is_lock_failure
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import InventoryItemSnapshot
from inventory_kernel.domain.thresholds import CrossingKind, ThresholdCrossing
from inventory_kernel.domain.values import MovementType, ReservationLine, StockKey
from inventory_kernel.exceptions import LockTimeoutError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.adjustment_engine import AdjustmentEngine
from inventory_kernel.services.reservation_engine import ReservationEngine
from inventory_kernel.services.threshold_publisher import (
    LoggingThresholdPublisher,
    ThresholdEventPublisher,
)

logger = get_logger("services.stock_orchestrator")

T = TypeVar("T")

LineInput = ReservationLine | Mapping


def to_reservation_lines(items: Iterable[LineInput]) -> list[ReservationLine]:
    """Accept ReservationLine objects or cart-style mappings."""
    return [
        item if isinstance(item, ReservationLine) else ReservationLine.from_dict(dict(item))
        for item in items
    ]


class StockOrchestrator:
    """
    Transaction owner for adjust / reserve / release / commit_reservation.

    One orchestrator wraps one session.  For concurrent callers give each
    thread its own session (see db.engine.get_session_factory()).
    """

    def __init__(
        self,
        session: Session,
        publisher: ThresholdEventPublisher | None = None,
        clock: Clock | None = None,
        lock_timeout_ms: int | None = DEFAULT_LOCK_TIMEOUT_MS,
    ):
        """
        Args:
            session: SQLAlchemy session; committed or rolled back by every call.
            publisher: Threshold notification sink.  Defaults to logging only.
            clock: Clock for movement timestamps.  Defaults to SystemClock.
            lock_timeout_ms: Upper bound on lock waits per transaction
                (PostgreSQL).  None waits indefinitely.
        """
        self._session = session
        self._publisher = publisher or LoggingThresholdPublisher()
        self._clock = clock or SystemClock()
        self._lock_timeout_ms = lock_timeout_ms

        self._adjustments = AdjustmentEngine(session, self._clock)
        self._reservations = ReservationEngine(session, self._clock)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def adjust(
        self,
        product_id: str,
        variant_id: str,
        location_id: str,
        delta: int,
        movement_type: MovementType | str,
        reason: str | None = None,
        user_id: str | None = None,
        reference_id: str | None = None,
    ) -> InventoryItemSnapshot:
        """
        Apply one signed delta to one row's on-hand quantity.

        Raises:
            NotFoundError, InsufficientStockError, InvalidQuantityError,
            InvalidMovementTypeError, InvalidStockKeyError, LockTimeoutError.
        """
        key = StockKey(product_id, variant_id, location_id)
        result = self._run(
            "adjust",
            lambda: self._adjustments.adjust(
                key, delta, movement_type,
                reason=reason, user_id=user_id, reference_id=reference_id,
            ),
            actor_id=user_id,
            reference_id=reference_id,
        )
        self._publish(result.crossings)
        return result.item

    def reserve(
        self,
        items: Iterable[LineInput],
        reference_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        """
        Reserve every line or none.

        Raises:
            InsufficientStockError (with every shortfall), EmptyReservationError,
            InvalidQuantityError, InvalidStockKeyError, LockTimeoutError.
        """
        lines = to_reservation_lines(items)
        self._run(
            "reserve",
            lambda: self._reservations.reserve(
                lines, reference_id=reference_id, user_id=user_id,
            ),
            actor_id=user_id,
            reference_id=reference_id,
        )

    def release(
        self,
        items: Iterable[LineInput],
        reference_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        """
        Return reserved units to available stock (cancelled / expired orders).

        Raises:
            NotFoundError, ReservationUnderflowError, EmptyReservationError,
            LockTimeoutError.
        """
        lines = to_reservation_lines(items)
        self._run(
            "release",
            lambda: self._reservations.release(
                lines, reference_id=reference_id, user_id=user_id,
            ),
            actor_id=user_id,
            reference_id=reference_id,
        )

    def commit_reservation(
        self,
        items: Iterable[LineInput],
        reference_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        """
        Turn reserved units into sold units (order confirmed).

        Lowers both quantity_reserved and quantity_on_hand per line and
        publishes any on-hand threshold crossings after commit.
        """
        lines = to_reservation_lines(items)
        result = self._run(
            "commit_reservation",
            lambda: self._reservations.commit(
                lines, reference_id=reference_id, user_id=user_id,
            ),
            actor_id=user_id,
            reference_id=reference_id,
        )
        self._publish(result.crossings)

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        work: Callable[[], T],
        actor_id: str | None,
        reference_id: str | None,
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=actor_id,
            reference_id=reference_id,
            operation=operation,
        ):
            t0 = time.monotonic()
            try:
                apply_lock_timeout(self._session, self._lock_timeout_ms)
                result = work()
                self._session.commit()
            except DBAPIError as exc:
                self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if is_lock_failure(exc):
                    logger.warning(
                        "lock_wait_failed",
                        extra={"duration_ms": duration_ms},
                    )
                    raise LockTimeoutError(operation, str(exc.orig)) from exc
                logger.error(
                    "transaction_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise
            except Exception:
                self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.info(
                    "transaction_rolled_back",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info("transaction_committed", extra={"duration_ms": duration_ms})
            return result

    # ------------------------------------------------------------------
    # Post-commit notifications
    # ------------------------------------------------------------------

    def _publish(self, crossings: Iterable[ThresholdCrossing]) -> None:
        for crossing in crossings:
            try:
                if crossing.kind is CrossingKind.LOW_STOCK:
                    self._publisher.publish_low_stock(
                        crossing.key.product_id,
                        crossing.current_quantity,
                        crossing.threshold,
                    )
                else:
                    self._publisher.publish_restocked(
                        crossing.key.product_id,
                        crossing.key.variant_id,
                    )
            except Exception:
                # Stock is already committed; the notification is best-effort.
                logger.error(
                    "threshold_publish_failed",
                    extra={
                        "kind": crossing.kind.value,
                        "key": str(crossing.key),
                    },
                    exc_info=True,
                )
