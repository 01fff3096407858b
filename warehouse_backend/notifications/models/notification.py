# notifications/models/notification.py

"""
STOCK NOTIFICATION

Rules:
- At most ONE unread notification per (product, type); enforced by a
  partial unique constraint and by the upsert in the stock notifier.
- low-stock and out-of-stock are mutually exclusive for a product.
- Read notifications are history; the notifier never touches them.
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone

from products.models import Product


class Notification(models.Model):
    class Type(models.TextChoices):
        LOW_STOCK = "low-stock", "Low stock"
        OUT_OF_STOCK = "out-of-stock", "Out of stock"

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=16, choices=Type.choices)
    message = models.CharField(max_length=500)
    is_read = models.BooleanField(default=False)

    # Refreshed on every upsert so the newest alert sorts first
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "type"],
                condition=Q(is_read=False),
                name="unique_unread_notification_per_product_type",
            ),
        ]

    def __str__(self):
        return f"{self.type}: {self.message}"
