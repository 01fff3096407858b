from .stock_fifo import (
    Allocation,
    BatchNotFoundError,
    InsufficientStockError,
    allocate_stock,
    restore_stock,
)

__all__ = [
    "Allocation",
    "BatchNotFoundError",
    "InsufficientStockError",
    "allocate_stock",
    "restore_stock",
]
