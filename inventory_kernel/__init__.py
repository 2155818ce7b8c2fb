"""
Inventory Kernel

Stock ledger and reservation engine with:
- Row-locked current state per (product, variant, location)
- Append-only movement log with replay verification
- All-or-nothing multi-line reservations in canonical lock order
- Edge-triggered low-stock / restock notifications after commit
"""

__version__ = "0.1.0"
