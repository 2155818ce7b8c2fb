"""
Shared base for the write side: InventoryStore, MovementLog and the
adjustment / reservation engines.

Each service works inside whatever transaction its session is in and only
ever flushes.  A reservation touching five rows is atomic because none of
the five engine calls can end the transaction; StockOrchestrator does.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Holds the caller's session.  Reads for display go through selectors."""

    def __init__(self, session: Session):
        self.session = session
