# products/models/product.py

"""
PRODUCT AGGREGATE

Rules:
- quantity is a cached total of the product's batches (StockBatch.quantity).
- Batches are the ground truth for availability; quantity exists for fast reads.
- quantity is mutated only by the stock services (allocation, intake,
  reconciliation), never by API writes.
- reorder_level defaults to DEFAULT_REORDER_LEVEL and is resolved once here.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q, Sum


def resolve_reorder_level(value) -> int:
    """
    Normalize a reorder level.

    Unset, non-numeric or < 1 values fall back to settings.DEFAULT_REORDER_LEVEL.
    """
    default = int(getattr(settings, "DEFAULT_REORDER_LEVEL", 10) or 10)
    if value is None or isinstance(value, bool):
        return default
    try:
        level = int(value)
    except (TypeError, ValueError):
        return default
    return level if level >= 1 else default


def _default_reorder_level() -> int:
    return resolve_reorder_level(None)


class Product(models.Model):
    class StockStatus(models.TextChoices):
        IN_STOCK = "in-stock", "In stock"
        LOW_STOCK = "low-stock", "Low stock"
        OUT_OF_STOCK = "out-of-stock", "Out of stock"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, null=True, blank=True)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")

    # Informational list price; sales are priced from batch cost
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    quantity = models.PositiveIntegerField(default=0)
    reorder_level = models.PositiveIntegerField(default=_default_reorder_level)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="product_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(reorder_level__gte=1),
                name="chk_product_reorder_level_gte_one",
            ),
            models.CheckConstraint(
                condition=Q(unit_price__gte=0),
                name="chk_product_unit_price_gte_zero",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if self.unit_price is not None and Decimal(self.unit_price) < Decimal("0.00"):
            raise ValidationError({"unit_price": "unit_price cannot be negative"})
        self.reorder_level = resolve_reorder_level(self.reorder_level)

    def save(self, *args, **kwargs):
        self.reorder_level = resolve_reorder_level(self.reorder_level)
        super().save(*args, **kwargs)

    # -------------------------------------------------
    # READ-ONLY HELPERS
    # -------------------------------------------------

    @property
    def effective_reorder_level(self) -> int:
        return resolve_reorder_level(self.reorder_level)

    @property
    def stock_status(self) -> str:
        qty = int(self.quantity or 0)
        if qty == 0:
            return self.StockStatus.OUT_OF_STOCK
        if qty <= self.effective_reorder_level:
            return self.StockStatus.LOW_STOCK
        return self.StockStatus.IN_STOCK

    @property
    def batch_quantity_total(self) -> int:
        return int(self.stock_batches.aggregate(total=Sum("quantity")).get("total") or 0)
