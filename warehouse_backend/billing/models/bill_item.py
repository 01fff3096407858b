# billing/models/bill_item.py

"""
BILL ITEM (PRICE SNAPSHOT)

- unit_price is the batch cost at the time of sale, not the live product price.
- A FIFO sale spanning several batches produces one item per batch.
- line_total = unit_price * quantity, computed on save.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from django.db import models
from django.db.models import Q

from products.models import Product

from .bill import Bill


class BillItem(models.Model):
    bill = models.ForeignKey(
        Bill,
        on_delete=models.CASCADE,
        related_name="items",
    )

    position = models.PositiveIntegerField(default=0)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="bill_items",
    )

    batch_number = models.CharField(max_length=128, blank=True, null=True)

    name = models.CharField(max_length=255)

    quantity = models.PositiveIntegerField()

    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    line_total = models.DecimalField(max_digits=12, decimal_places=2, editable=False)

    class Meta:
        ordering = ["position", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gt=0),
                name="chk_billitem_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(unit_price__gte=0),
                name="chk_billitem_unit_price_gte_zero",
            ),
        ]

    def save(self, *args, **kwargs):
        self.line_total = (Decimal(self.unit_price) * int(self.quantity)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} x {self.quantity}"
