"""
Tests for single-row adjustments through StockOrchestrator.adjust().

Covers:
- non-negativity and the reservation bound
- one movement per successful adjustment, none per rejected one
- edge-triggered low-stock / restock notifications after commit
- publisher failures never reaching the caller
"""

import pytest

from inventory_kernel.domain.values import MovementType, StockKey
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidMovementTypeError,
    InvalidQuantityError,
    NotFoundError,
)
from inventory_kernel.services.stock_orchestrator import StockOrchestrator
from inventory_kernel.services.threshold_publisher import (
    CallbackThresholdPublisher,
    InMemoryThresholdPublisher,
)

KEY = StockKey("prod-1", "var-1", "loc-1")


def adjust(orchestrator, delta, movement_type="adjust", **kwargs):
    return orchestrator.adjust(
        KEY.product_id, KEY.variant_id, KEY.location_id, delta, movement_type, **kwargs
    )


class TestAdjustQuantities:

    def test_receive_increases_on_hand(self, orchestrator, create_item, stock_selector):
        create_item(on_hand=5)

        snapshot = adjust(orchestrator, 3, MovementType.RECEIVE)

        assert snapshot.quantity_on_hand == 8
        assert stock_selector.require_item(KEY).quantity_on_hand == 8

    def test_movement_type_accepts_plain_string(self, orchestrator, create_item):
        create_item(on_hand=5)

        snapshot = adjust(orchestrator, -2, "damage")

        assert snapshot.quantity_on_hand == 3

    def test_decrease_to_exactly_zero_is_allowed(self, orchestrator, create_item):
        create_item(on_hand=4)

        snapshot = adjust(orchestrator, -4, MovementType.SELL)

        assert snapshot.quantity_on_hand == 0

    def test_decrease_below_zero_is_rejected(self, orchestrator, create_item, stock_selector):
        create_item(on_hand=3)

        with pytest.raises(InsufficientStockError) as exc_info:
            adjust(orchestrator, -5, MovementType.SELL)

        assert exc_info.value.product_id == "prod-1"
        assert exc_info.value.requested == 5
        assert exc_info.value.available == 3
        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        item = stock_selector.require_item(KEY)
        assert item.quantity_on_hand == 3
        assert stock_selector.movement_history(item.id) == []

    def test_decrease_below_reserved_is_rejected(self, orchestrator, create_item, stock_selector):
        create_item(on_hand=10, reserved=8)

        with pytest.raises(InsufficientStockError) as exc_info:
            adjust(orchestrator, -5, MovementType.SELL)

        assert exc_info.value.available == 2
        item = stock_selector.require_item(KEY)
        assert item.quantity_on_hand == 10
        assert item.quantity_reserved == 8

    def test_missing_row_raises_not_found(self, orchestrator):
        with pytest.raises(NotFoundError) as exc_info:
            adjust(orchestrator, 1, MovementType.RECEIVE)

        assert exc_info.value.code == "INVENTORY_NOT_FOUND"
        assert exc_info.value.location_id == "loc-1"

    def test_zero_delta_is_rejected(self, orchestrator, create_item):
        create_item(on_hand=5)

        with pytest.raises(InvalidQuantityError):
            adjust(orchestrator, 0)

    @pytest.mark.parametrize("movement_type", ["reserve", "release", "teleport"])
    def test_non_adjustment_type_is_rejected(self, orchestrator, create_item, movement_type):
        create_item(on_hand=5)

        with pytest.raises(InvalidMovementTypeError):
            adjust(orchestrator, 1, movement_type)


class TestAdjustMovements:

    def test_each_adjustment_appends_one_movement(
        self, orchestrator, create_item, stock_selector,
    ):
        create_item(on_hand=10)

        adjust(orchestrator, -3, MovementType.SELL, reason="order", user_id="u-1",
               reference_id="order-1")
        adjust(orchestrator, 5, MovementType.RETURN)

        item = stock_selector.require_item(KEY)
        history = stock_selector.movement_history(item.id)
        assert [m.sequence for m in history] == [1, 2]
        first, second = history
        assert first.movement_type is MovementType.SELL
        assert (first.previous_quantity, first.quantity, first.new_quantity) == (10, -3, 7)
        assert first.reason == "order"
        assert first.user_id == "u-1"
        assert first.reference_id == "order-1"
        assert (second.previous_quantity, second.quantity, second.new_quantity) == (7, 5, 12)

    def test_movement_timestamp_comes_from_clock(
        self, orchestrator, create_item, stock_selector, deterministic_clock,
    ):
        create_item(on_hand=1)

        adjust(orchestrator, 1, MovementType.RECEIVE)

        item = stock_selector.require_item(KEY)
        created = stock_selector.movement_history(item.id)[0].created_at
        assert created.tzinfo is not None
        assert created == deterministic_clock.now()

    def test_ledger_replays_to_current_row(self, orchestrator, create_item, stock_selector):
        create_item(on_hand=10)

        for delta in (-3, 4, -6, 2):
            adjust(orchestrator, delta)

        item = stock_selector.require_item(KEY)
        verification = stock_selector.assert_ledger_consistent(item.id)
        assert verification.replayed_on_hand == 7
        assert verification.movement_count == 4


class TestThresholdNotifications:

    def test_crossing_below_threshold_publishes_low_stock(
        self, orchestrator, create_item, publisher,
    ):
        create_item(on_hand=10, threshold=5)

        adjust(orchestrator, -6, MovementType.SELL)

        events = publisher.named(InMemoryThresholdPublisher.LOW_STOCK)
        assert len(events) == 1
        assert events[0].payload == {"product_id": "prod-1", "current": 4, "threshold": 5}
        assert publisher.named(InMemoryThresholdPublisher.RESTOCKED) == []

    def test_further_decrease_below_threshold_publishes_nothing(
        self, orchestrator, create_item, publisher,
    ):
        create_item(on_hand=4, threshold=5)

        adjust(orchestrator, -1, MovementType.SELL)

        assert publisher.events == []

    def test_receipt_from_zero_publishes_restocked(
        self, orchestrator, create_item, publisher,
    ):
        create_item(on_hand=0, threshold=5)

        adjust(orchestrator, 5, MovementType.RECEIVE)

        events = publisher.named(InMemoryThresholdPublisher.RESTOCKED)
        assert len(events) == 1
        assert events[0].payload == {"product_id": "prod-1", "variant_id": "var-1"}
        assert publisher.named(InMemoryThresholdPublisher.LOW_STOCK) == []

    def test_receipt_above_zero_publishes_nothing(self, orchestrator, create_item, publisher):
        create_item(on_hand=5, threshold=5)

        adjust(orchestrator, 2, MovementType.RECEIVE)

        assert publisher.events == []

    def test_rejected_adjustment_publishes_nothing(self, orchestrator, create_item, publisher):
        create_item(on_hand=6, threshold=5)

        with pytest.raises(InsufficientStockError):
            adjust(orchestrator, -7, MovementType.SELL)

        assert publisher.events == []

    def test_publisher_failure_does_not_undo_adjustment(
        self, session, create_item, stock_selector, deterministic_clock, captured_logs,
    ):
        def explode(product_id, current_quantity, threshold):
            raise RuntimeError("event bus down")

        orchestrator = StockOrchestrator(
            session,
            publisher=CallbackThresholdPublisher(on_low_stock=explode),
            clock=deterministic_clock,
        )
        create_item(on_hand=10, threshold=5)

        snapshot = adjust(orchestrator, -6, MovementType.SELL)

        assert snapshot.quantity_on_hand == 4
        assert stock_selector.require_item(KEY).quantity_on_hand == 4
        failures = [r for r in captured_logs() if r["message"] == "threshold_publish_failed"]
        assert len(failures) == 1
        assert failures[0]["kind"] == "low_stock"
        assert failures[0]["exc_type"] == "RuntimeError"


class TestAdjustLogging:

    def test_logs_carry_operation_context(self, orchestrator, create_item, captured_logs):
        create_item(on_hand=2)

        adjust(orchestrator, 1, MovementType.RECEIVE, user_id="clerk-7", reference_id="po-9")

        logs = captured_logs()
        adjusted = next(r for r in logs if r["message"] == "stock_adjusted")
        assert adjusted["operation"] == "adjust"
        assert adjusted["actor_id"] == "clerk-7"
        assert adjusted["reference_id"] == "po-9"
        assert adjusted["new_quantity"] == 3
        assert any(r["message"] == "transaction_committed" for r in logs)

    def test_rejection_logs_rollback(self, orchestrator, create_item, captured_logs):
        create_item(on_hand=1)

        with pytest.raises(InsufficientStockError):
            adjust(orchestrator, -2, MovementType.SELL)

        messages = [r["message"] for r in captured_logs()]
        assert "adjustment_rejected" in messages
        assert "transaction_rolled_back" in messages
