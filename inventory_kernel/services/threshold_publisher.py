"""
Threshold event publishers.

The kernel depends only on the ThresholdEventPublisher protocol.  Any
transport -- in-process callback, queue, message bus -- can satisfy it.
StockOrchestrator calls it after commit and treats every failure as
logged-and-swallowed, so an implementation may raise freely.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from inventory_kernel.logging_config import get_logger

logger = get_logger("services.threshold_publisher")


@runtime_checkable
class ThresholdEventPublisher(Protocol):
    """Receives edge-triggered stock notifications."""

    def publish_low_stock(
        self, product_id: str, current_quantity: int, threshold: int,
    ) -> None: ...

    def publish_restocked(self, product_id: str, variant_id: str) -> None: ...


class LoggingThresholdPublisher:
    """Default publisher: writes each notification to the structured log."""

    def publish_low_stock(self, product_id: str, current_quantity: int, threshold: int) -> None:
        logger.warning(
            "inventory_low_stock",
            extra={
                "product_id": product_id,
                "current_quantity": current_quantity,
                "threshold": threshold,
            },
        )

    def publish_restocked(self, product_id: str, variant_id: str) -> None:
        logger.info(
            "inventory_restocked",
            extra={"product_id": product_id, "variant_id": variant_id},
        )


@dataclass(frozen=True)
class PublishedEvent:
    name: str
    payload: dict


class InMemoryThresholdPublisher:
    """Records notifications in order.  Safe to share across threads."""

    LOW_STOCK = "inventory.low_stock"
    RESTOCKED = "inventory.restocked"

    def __init__(self) -> None:
        self._events: list[PublishedEvent] = []
        self._lock = threading.Lock()

    def publish_low_stock(self, product_id: str, current_quantity: int, threshold: int) -> None:
        self._record(self.LOW_STOCK, {
            "product_id": product_id,
            "current": current_quantity,
            "threshold": threshold,
        })

    def publish_restocked(self, product_id: str, variant_id: str) -> None:
        self._record(self.RESTOCKED, {"product_id": product_id, "variant_id": variant_id})

    def _record(self, name: str, payload: dict) -> None:
        with self._lock:
            self._events.append(PublishedEvent(name, payload))

    @property
    def events(self) -> list[PublishedEvent]:
        with self._lock:
            return list(self._events)

    def named(self, name: str) -> list[PublishedEvent]:
        return [e for e in self.events if e.name == name]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class CallbackThresholdPublisher:
    """Adapts two plain callables to the publisher protocol."""

    def __init__(
        self,
        on_low_stock: Callable[[str, int, int], None] | None = None,
        on_restocked: Callable[[str, str], None] | None = None,
    ) -> None:
        self._on_low_stock = on_low_stock
        self._on_restocked = on_restocked

    def publish_low_stock(self, product_id: str, current_quantity: int, threshold: int) -> None:
        if self._on_low_stock is not None:
            self._on_low_stock(product_id, current_quantity, threshold)

    def publish_restocked(self, product_id: str, variant_id: str) -> None:
        if self._on_restocked is not None:
            self._on_restocked(product_id, variant_id)
