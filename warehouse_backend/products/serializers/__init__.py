# products/serializers/__init__.py

from .product import ProductSerializer
from .stock_batch import StockBatchSerializer

__all__ = [
    "ProductSerializer",
    "StockBatchSerializer",
]
