"""
Read side of the kernel.

Selectors query stock rows and movement history without locking or writing
and hand back frozen snapshots from ``inventory_kernel.domain.dtos``, so
callers cannot mutate a live row by accident.  They may import db/, models/
and domain/, never services/.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):

    def __init__(self, session: Session):
        self.session = session
