"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product, resolve_reorder_level
from .stock_batch import FIFO_ORDERING, StockBatch

__all__ = [
    "FIFO_ORDERING",
    "Product",
    "StockBatch",
    "resolve_reorder_level",
]
