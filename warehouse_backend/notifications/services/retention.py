# notifications/services/retention.py

from __future__ import annotations

import logging
from datetime import timedelta

from django.utils import timezone

from notifications.models import Notification, NotificationSetting

logger = logging.getLogger(__name__)


def purge_expired_notifications(*, now=None) -> int:
    """
    Delete notifications older than the configured retention window.

    Returns the number of rows deleted; 0 when auto_delete_days is 0.
    """
    setting = NotificationSetting.get_solo()
    days = int(setting.auto_delete_days or 0)
    if days <= 0:
        return 0

    cutoff = (now or timezone.now()) - timedelta(days=days)
    deleted, _ = Notification.objects.filter(created_at__lt=cutoff).delete()

    if deleted:
        logger.info(
            "Expired notifications purged",
            extra={"deleted": deleted, "auto_delete_days": days},
        )
    return deleted
