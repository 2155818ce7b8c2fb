"""Kernel services: store, movement log, engines and the orchestrator."""

from inventory_kernel.services.adjustment_engine import AdjustmentEngine, AdjustmentResult
from inventory_kernel.services.inventory_store import InventoryStore
from inventory_kernel.services.movement_log import MovementLog
from inventory_kernel.services.reservation_engine import ReservationEngine, ReservationResult
from inventory_kernel.services.stock_orchestrator import StockOrchestrator
from inventory_kernel.services.threshold_publisher import (
    CallbackThresholdPublisher,
    InMemoryThresholdPublisher,
    LoggingThresholdPublisher,
    ThresholdEventPublisher,
)

__all__ = [
    "AdjustmentEngine",
    "AdjustmentResult",
    "CallbackThresholdPublisher",
    "InMemoryThresholdPublisher",
    "InventoryStore",
    "LoggingThresholdPublisher",
    "MovementLog",
    "ReservationEngine",
    "ReservationResult",
    "StockOrchestrator",
    "ThresholdEventPublisher",
]
