# products/models/stock_batch.py

"""
STOCK BATCH (LOT)

Represents ONE received lot of a product at a fixed unit cost.

Rules:
- Identity is (product, batch_number).
- quantity is mutated ONLY via services (allocation, intake, restoration).
- A batch at zero quantity stays as a cost-history record; the core never
  deletes batches.
- FIFO order: received_date, then manufacturing_date (unset last), then
  created_at.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .product import Product


FIFO_ORDERING = (
    F("received_date").asc(),
    F("manufacturing_date").asc(nulls_last=True),
    F("created_at").asc(),
    F("id").asc(),
)


class StockBatch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="stock_batches",
    )

    batch_number = models.CharField(
        max_length=128,
        help_text="Supplier / delivery batch reference",
    )

    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Unit cost charged when this lot is sold",
    )

    quantity = models.PositiveIntegerField(default=0)

    received_date = models.DateTimeField(default=timezone.now)
    manufacturing_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    supplier_reference = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["received_date", "manufacturing_date", "created_at"]
        indexes = [
            models.Index(fields=["product", "received_date"], name="batch_product_received_idx"),
            models.Index(fields=["product", "quantity"], name="batch_product_quantity_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "batch_number"],
                name="unique_batch_per_product",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name="chk_stockbatch_quantity_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(unit_cost__gte=0),
                name="chk_stockbatch_unit_cost_gte_zero",
            ),
        ]

    def clean(self):
        if not (self.batch_number or "").strip():
            raise ValidationError({"batch_number": "batch_number is required"})

        if self.unit_cost is None or Decimal(self.unit_cost) < Decimal("0.00"):
            raise ValidationError({"unit_cost": "unit_cost cannot be negative"})

        if self.quantity is None or int(self.quantity) < 0:
            raise ValidationError({"quantity": "quantity cannot be negative"})

    def delete(self, *args, **kwargs):
        raise ValidationError("Stock batches are cost-history records and cannot be deleted.")

    @property
    def is_available(self) -> bool:
        return int(self.quantity or 0) > 0

    @property
    def remaining_value(self) -> Decimal:
        return Decimal(self.unit_cost or 0) * Decimal(int(self.quantity or 0))

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | Batch {self.batch_number}"
