# products/services/stock_intake.py

"""
STOCK INTAKE (GOODS-RECEIVED INTERFACE)

Purpose:
- The single entry point a goods-received / inward workflow uses to put
  priced lots into the Batch Store.
- Product reference is a tagged variant:
    ExistingProduct(product_id) -> receive into that product
    NewProduct(name, ...)       -> receive into the product of that name,
                                   creating it when none exists
- Receiving into an existing (product, batch_number) tops that lot up; the
  unit cost must match, lots never change price.
- Product.quantity is incremented by the received amount and the stock
  notifier runs once the intake has been written.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from notifications.services.stock_notifier import notify_products
from products.models import Product, StockBatch, resolve_reorder_level
from products.services.stock_fifo import adjust_product_quantity, to_int_qty

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


# ============================================================
# PRODUCT REFERENCE (TAGGED VARIANT)
# ============================================================

@dataclass(frozen=True)
class ExistingProduct:
    product_id: Union[uuid.UUID, str]


@dataclass(frozen=True)
class NewProduct:
    name: str
    unit_price: Optional[Decimal] = None
    reorder_level: Optional[int] = None
    sku: Optional[str] = None


ProductRef = Union[ExistingProduct, NewProduct]


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError("unit_cost must be a valid decimal") from exc


def _resolve_product(product_ref: ProductRef) -> Product:
    if isinstance(product_ref, ExistingProduct):
        product = Product.objects.select_for_update().filter(pk=product_ref.product_id).first()
        if product is None:
            raise ValidationError(f"Product not found: {product_ref.product_id}")
        return product

    if isinstance(product_ref, NewProduct):
        name = (product_ref.name or "").strip()
        if not name:
            raise ValidationError("New product name is required")

        product = Product.objects.select_for_update().filter(name__iexact=name).order_by("created_at").first()
        if product is not None:
            return product

        product = Product(
            name=name,
            sku=(product_ref.sku or "").strip() or None,
            unit_price=_money(product_ref.unit_price),
            reorder_level=resolve_reorder_level(product_ref.reorder_level),
            quantity=0,
        )
        product.full_clean()
        product.save()
        logger.info("Created product from stock intake", extra={"product_id": str(product.pk), "name": name})
        return product

    raise ValidationError("product_ref must be ExistingProduct or NewProduct")


def receive_batch(
    *,
    product_ref: ProductRef,
    quantity,
    unit_cost,
    batch_number: Optional[str] = None,
    received_date=None,
    manufacturing_date=None,
    expiry_date=None,
    supplier_reference: str = "",
) -> StockBatch:
    try:
        qty = to_int_qty(quantity)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if qty <= 0:
        raise ValidationError("quantity must be greater than zero")

    unit_cost_dec = _money(unit_cost)
    if unit_cost_dec < Decimal("0.00"):
        raise ValidationError("unit_cost cannot be negative")

    bn = (batch_number or "").strip() or f"INTAKE-{uuid.uuid4().hex[:10].upper()}"

    with transaction.atomic():
        product = _resolve_product(product_ref)

        batch = StockBatch.objects.select_for_update().filter(product=product, batch_number=bn).first()

        if batch is not None:
            if Decimal(batch.unit_cost) != unit_cost_dec:
                raise ValidationError(
                    f"Batch '{bn}' for product '{product.name}' already exists at unit cost "
                    f"{batch.unit_cost}; received cost {unit_cost_dec} must match."
                )
            batch.quantity = int(batch.quantity or 0) + qty
            if expiry_date and not batch.expiry_date:
                batch.expiry_date = expiry_date
            batch.save(update_fields=["quantity", "expiry_date", "updated_at"])
        else:
            batch = StockBatch(
                product=product,
                batch_number=bn,
                unit_cost=unit_cost_dec,
                quantity=qty,
                received_date=received_date or timezone.now(),
                manufacturing_date=manufacturing_date,
                expiry_date=expiry_date,
                supplier_reference=(supplier_reference or "").strip(),
            )
            batch.full_clean()
            batch.save()

        adjust_product_quantity(product=product, delta=qty)

    logger.info(
        "Stock received",
        extra={"product_id": str(product.pk), "batch_number": bn, "quantity": qty},
    )

    notify_products([product.pk])
    return batch
