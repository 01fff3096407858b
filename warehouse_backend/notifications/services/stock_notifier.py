# notifications/services/stock_notifier.py

"""
STOCK NOTIFIER

Derives low-stock / out-of-stock alerts from a product's cached quantity.

Bands:
- quantity == 0                 -> unread out-of-stock, low-stock cleared
- 0 < quantity <= reorder level -> unread low-stock, out-of-stock cleared
- otherwise                     -> both cleared

Rules:
- Idempotent: repeated calls refresh the existing unread row in place.
- Only unread notifications are cleared; read ones are history.
- notify_products() is best-effort: failures are logged and never
  propagate into the stock operation that triggered them.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from notifications.models import Notification
from products.models import Product

logger = logging.getLogger(__name__)


def _upsert(product, notification_type: str, message: str) -> Notification:
    now = timezone.now()
    try:
        with transaction.atomic():
            existing = (
                Notification.objects.select_for_update()
                .filter(product=product, type=notification_type, is_read=False)
                .first()
            )
            if existing is not None:
                existing.message = message
                existing.created_at = now
                existing.save(update_fields=["message", "created_at", "updated_at"])
                return existing

            return Notification.objects.create(
                product=product,
                type=notification_type,
                message=message,
                is_read=False,
                created_at=now,
            )
    except IntegrityError:
        # A concurrent upsert inserted the row first
        existing = Notification.objects.get(product=product, type=notification_type, is_read=False)
        existing.message = message
        existing.created_at = now
        existing.save(update_fields=["message", "created_at", "updated_at"])
        return existing


def _clear(product, types: Iterable[str]) -> int:
    deleted, _ = Notification.objects.filter(
        product=product,
        type__in=list(types),
        is_read=False,
    ).delete()
    return deleted


def notify_stock_level(product) -> Optional[str]:
    """
    Bring the product's unread notifications in line with its quantity.
    Returns the notification type now active, or None.
    """
    qty = int(product.quantity or 0)

    if qty == 0:
        _upsert(product, Notification.Type.OUT_OF_STOCK, f"{product.name} is out of stock")
        _clear(product, [Notification.Type.LOW_STOCK])
        return Notification.Type.OUT_OF_STOCK

    if qty <= product.effective_reorder_level:
        _upsert(
            product,
            Notification.Type.LOW_STOCK,
            f"{product.name} is low in stock ({qty} remaining)",
        )
        _clear(product, [Notification.Type.OUT_OF_STOCK])
        return Notification.Type.LOW_STOCK

    _clear(product, [Notification.Type.LOW_STOCK, Notification.Type.OUT_OF_STOCK])
    return None


def notify_products(product_ids: Iterable) -> None:
    """
    Run the notifier for each product id (fresh read). Never raises.
    """
    ids = list(dict.fromkeys(pid for pid in product_ids if pid is not None))
    if not ids:
        return

    for product in Product.objects.filter(pk__in=ids):
        try:
            notify_stock_level(product)
        except Exception:
            logger.exception(
                "Stock notification failed",
                extra={"product_id": str(product.pk)},
            )
