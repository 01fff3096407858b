# products/services/reconciliation.py

"""
STOCK RECONCILIATION

Purpose:
- Detect drift between Product.quantity (cached) and the sum of its
  batches' quantities (ground truth).
- Repair it in one of two ways:
    default            -> reset the cached quantity to the batch total
    create_sync_batch  -> when cached > batches, add a SYNC lot at the
                          product's unit price covering the difference
- Run the stock notifier for every product that changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from notifications.services.stock_notifier import notify_products
from products.models import Product, StockBatch

logger = logging.getLogger(__name__)

ACTION_NONE = "none"
ACTION_RESET = "reset"
ACTION_SYNC_BATCH = "sync_batch"


@dataclass(frozen=True)
class ReconciliationResult:
    product_id: object
    product_name: str
    cached_quantity: int
    batch_quantity: int
    action: str
    sync_batch_number: Optional[str] = None

    @property
    def difference(self) -> int:
        return self.cached_quantity - self.batch_quantity

    @property
    def changed(self) -> bool:
        return self.action != ACTION_NONE


def _batch_total(product) -> int:
    return int(StockBatch.objects.filter(product=product).aggregate(total=Sum("quantity")).get("total") or 0)


def _sync_batch_number(product) -> str:
    stamp = timezone.now().strftime("%Y%m%d%H%M%S")
    base = f"SYNC-{stamp}"
    candidate = base
    i = 1
    while StockBatch.objects.filter(product=product, batch_number=candidate).exists():
        i += 1
        candidate = f"{base}-{i}"
    return candidate


def _reconcile_locked(product, *, create_sync_batch: bool, dry_run: bool) -> ReconciliationResult:
    cached = int(product.quantity or 0)
    batches = _batch_total(product)

    if cached == batches:
        return ReconciliationResult(product.pk, product.name, cached, batches, ACTION_NONE)

    if create_sync_batch and cached > batches:
        batch_number = _sync_batch_number(product)
        if not dry_run:
            StockBatch.objects.create(
                product=product,
                batch_number=batch_number,
                unit_cost=Decimal(product.unit_price or 0),
                quantity=cached - batches,
                supplier_reference="stock reconciliation",
            )
        return ReconciliationResult(product.pk, product.name, cached, batches, ACTION_SYNC_BATCH, batch_number)

    if not dry_run:
        product.quantity = batches
        product.save(update_fields=["quantity", "updated_at"])
    return ReconciliationResult(product.pk, product.name, cached, batches, ACTION_RESET)


def reconcile_product_stock(product, *, create_sync_batch: bool = False, dry_run: bool = False) -> ReconciliationResult:
    with transaction.atomic():
        locked = Product.objects.select_for_update().get(pk=product.pk)
        result = _reconcile_locked(locked, create_sync_batch=create_sync_batch, dry_run=dry_run)

    if result.changed and not dry_run:
        logger.warning(
            "Product stock reconciled",
            extra={
                "product_id": str(result.product_id),
                "cached_quantity": result.cached_quantity,
                "batch_quantity": result.batch_quantity,
                "action": result.action,
            },
        )
        product.refresh_from_db(fields=["quantity"])
        notify_products([result.product_id])

    return result


def reconcile_all_products(*, create_sync_batch: bool = False, dry_run: bool = False) -> list[ReconciliationResult]:
    results = []
    for product in Product.objects.order_by("id").iterator():
        results.append(
            reconcile_product_stock(product, create_sync_batch=create_sync_batch, dry_run=dry_run)
        )
    return results
