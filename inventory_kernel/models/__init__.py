"""ORM models for the inventory kernel."""

from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.stock_movement import StockMovement

__all__ = [
    "InventoryItem",
    "StockMovement",
]
