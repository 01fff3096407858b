# products/services/stock_fifo.py

"""
FIFO ALLOCATION ENGINE

Purpose:
- Allocate stock for a sale from priced lots in arrival order
  (received_date, manufacturing_date, created_at).
- Every allocation records the batch cost actually charged.
- Credit stock back to lots when a sale is reduced or removed.

HARD RULES:
- Batches are the ground truth for what is available; Product.quantity is a
  cached total that is kept in step but never trusted for availability.
- Allocation is all-or-nothing: a request that cannot be covered raises
  InsufficientStockError before any row is written.
- A pinned batch must cover the whole request on its own.
- Rows are locked with select_for_update(); products are always locked in
  ascending id order (see lock_products).
- Integer-only quantities.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction

from products.models import FIFO_ORDERING, Product, StockBatch

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class InsufficientStockError(Exception):
    """
    Raised when a product (or a pinned batch) cannot cover a request.
    """

    def __init__(self, *, product_name: str, requested: int, available: int, batch_number: Optional[str] = None):
        self.product_name = product_name
        self.requested = int(requested)
        self.available = int(available)
        self.batch_number = batch_number

        if batch_number:
            message = (
                f"Insufficient stock in batch '{batch_number}' for product '{product_name}'. "
                f"Available: {self.available}"
            )
        else:
            message = f"Insufficient stock for product '{product_name}'. Available: {self.available}"
        super().__init__(message)


class BatchNotFoundError(Exception):
    def __init__(self, *, product_name: str, batch_number: str):
        self.product_name = product_name
        self.batch_number = batch_number
        super().__init__(f"Batch '{batch_number}' not found for product '{product_name}'")


# ============================================================
# VALUE TYPES
# ============================================================

@dataclass(frozen=True)
class Allocation:
    """One slice of a sale drawn from a single batch."""

    batch_id: uuid.UUID
    batch_number: str
    unit_cost: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_cost * self.quantity


def to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise ValueError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)

    if isinstance(value, float) and value.is_integer():
        return int(value)

    if isinstance(value, str):
        s = value.strip()
        if s.lstrip("-").isdigit():
            return int(s)

    raise ValueError("quantity must be a whole integer unit")


# ============================================================
# QUERIES
# ============================================================

def fifo_batches(product):
    """Batches with stock on hand, oldest first."""
    return StockBatch.objects.filter(product=product, quantity__gt=0).order_by(*FIFO_ORDERING)


def oldest_batch(product) -> Optional[StockBatch]:
    return fifo_batches(product).first()


def newest_batch(product) -> Optional[StockBatch]:
    return StockBatch.objects.filter(product=product).order_by(*FIFO_ORDERING).last()


def available_quantity(product) -> int:
    return sum(int(b.quantity or 0) for b in fifo_batches(product))


def lock_products(product_ids: Iterable) -> dict:
    """
    Lock product rows and return them keyed by id.

    Rows are locked in the order the query returns them (ascending id), so
    two bills touching the same products never deadlock each other.
    """
    ids = {pid for pid in product_ids if pid is not None}
    if not ids:
        return {}
    products = Product.objects.select_for_update().filter(pk__in=ids).order_by("id")
    return {p.pk: p for p in products}


# ============================================================
# BATCH-LEVEL MUTATIONS (product aggregate untouched)
# ============================================================

def _save_batch_quantity(batch: StockBatch, quantity: int) -> None:
    batch.quantity = int(quantity)
    batch.save(update_fields=["quantity", "updated_at"])


def _draw_pinned(*, product, quantity: int, batch_number: str) -> list[Allocation]:
    batch = (
        StockBatch.objects.select_for_update()
        .filter(product=product, batch_number=batch_number)
        .first()
    )
    if batch is None:
        raise BatchNotFoundError(product_name=product.name, batch_number=batch_number)

    available = int(batch.quantity or 0)
    if available < quantity:
        raise InsufficientStockError(
            product_name=product.name,
            requested=quantity,
            available=available,
            batch_number=batch_number,
        )

    _save_batch_quantity(batch, available - quantity)
    return [
        Allocation(
            batch_id=batch.pk,
            batch_number=batch.batch_number,
            unit_cost=Decimal(batch.unit_cost),
            quantity=quantity,
        )
    ]


def _draw_fifo(*, product, quantity: int) -> list[Allocation]:
    batch_list = list(fifo_batches(product).select_for_update())
    total_available = sum(int(b.quantity or 0) for b in batch_list)

    if total_available < quantity:
        raise InsufficientStockError(
            product_name=product.name,
            requested=quantity,
            available=total_available,
        )

    remaining_qty = quantity
    allocations: list[Allocation] = []

    for batch in batch_list:
        if remaining_qty <= 0:
            break

        available = int(batch.quantity or 0)
        if available <= 0:
            continue

        consumed = available if available <= remaining_qty else remaining_qty

        _save_batch_quantity(batch, available - consumed)
        allocations.append(
            Allocation(
                batch_id=batch.pk,
                batch_number=batch.batch_number,
                unit_cost=Decimal(batch.unit_cost),
                quantity=consumed,
            )
        )

        remaining_qty -= consumed

    return allocations


@transaction.atomic
def take_from_batches(*, product, quantity, batch_number: Optional[str] = None) -> list[Allocation]:
    """
    Draw quantity from batches only (pinned batch or FIFO).

    Used directly when the product aggregate is adjusted separately
    (bill edits); allocate_stock() wraps it for sales.
    """
    qty = to_int_qty(quantity)
    if qty <= 0:
        return []

    bn = (batch_number or "").strip()
    if bn:
        return _draw_pinned(product=product, quantity=qty, batch_number=bn)
    return _draw_fifo(product=product, quantity=qty)


@transaction.atomic
def credit_batch(*, product, quantity, batch_number: Optional[str] = None) -> Optional[StockBatch]:
    """
    Return quantity to a batch.

    Target: the named batch when it still exists, else the product's newest
    batch. A product without any batch gets a RETURN lot priced at the
    product's unit price so returned units stay sellable.
    """
    qty = to_int_qty(quantity)
    if qty <= 0:
        return None

    batch = None
    bn = (batch_number or "").strip()
    if bn:
        batch = StockBatch.objects.select_for_update().filter(product=product, batch_number=bn).first()

    if batch is None:
        batch = (
            StockBatch.objects.select_for_update()
            .filter(product=product)
            .order_by(*FIFO_ORDERING)
            .last()
        )

    if batch is None:
        batch = StockBatch.objects.create(
            product=product,
            batch_number=f"RETURN-{uuid.uuid4().hex[:10].upper()}",
            unit_cost=Decimal(product.unit_price or 0),
            quantity=qty,
        )
        logger.info(
            "Created return batch",
            extra={"product_id": str(product.pk), "batch_number": batch.batch_number, "quantity": qty},
        )
        return batch

    _save_batch_quantity(batch, int(batch.quantity or 0) + qty)
    return batch


# ============================================================
# PRODUCT AGGREGATE
# ============================================================

def adjust_product_quantity(*, product, delta: int) -> Product:
    """
    Apply a signed delta to the cached product quantity.

    Rejects a result below zero. Caller must hold the product row lock.
    """
    current = int(product.quantity or 0)
    new_qty = current + int(delta)
    if new_qty < 0:
        raise InsufficientStockError(product_name=product.name, requested=-int(delta), available=current)

    product.quantity = new_qty
    product.save(update_fields=["quantity", "updated_at"])
    return product


def _decrement_product_after_sale(*, product, quantity: int) -> None:
    current = int(product.quantity or 0)
    if current < quantity:
        logger.warning(
            "Cached product quantity below allocated batches; clamping to zero",
            extra={"product_id": str(product.pk), "cached_quantity": current, "allocated": quantity},
        )
    product.quantity = max(current - quantity, 0)
    product.save(update_fields=["quantity", "updated_at"])


# ============================================================
# FIFO ALLOCATION
# ============================================================

@transaction.atomic
def allocate_stock(*, product, quantity, batch_number: Optional[str] = None) -> list[Allocation]:
    """
    Allocate `quantity` units of `product`.

    - batch_number given: that batch alone must cover the request.
    - otherwise: walk batches FIFO, one Allocation per batch touched.

    Batches and the cached product quantity are both decremented before
    returning. Nothing is written when the request cannot be covered.
    """
    if not product:
        raise ValueError("product is required")

    qty = to_int_qty(quantity)
    if qty <= 0:
        raise ValueError("quantity must be greater than zero")

    locked = Product.objects.select_for_update().get(pk=product.pk)

    allocations = take_from_batches(product=locked, quantity=qty, batch_number=batch_number)
    _decrement_product_after_sale(product=locked, quantity=qty)

    product.quantity = locked.quantity
    return allocations


@transaction.atomic
def restore_stock(*, product, quantity, batch_number: Optional[str] = None) -> Optional[StockBatch]:
    """
    Inverse of allocate_stock for a single line: credit the batch and the
    cached product quantity.
    """
    qty = to_int_qty(quantity)
    if qty <= 0:
        return None

    locked = Product.objects.select_for_update().get(pk=product.pk)
    batch = credit_batch(product=locked, quantity=qty, batch_number=batch_number)
    adjust_product_quantity(product=locked, delta=qty)

    product.quantity = locked.quantity
    return batch
