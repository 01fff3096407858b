# notifications/models/setting.py

from django.conf import settings
from django.db import models


def _default_auto_delete_days() -> int:
    return int(getattr(settings, "NOTIFICATION_AUTO_DELETE_DAYS", 30))


class NotificationSetting(models.Model):
    """
    Singleton (pk=1) holding notification retention rules.

    auto_delete_days = 0 disables the purge.
    """

    SINGLETON_PK = 1

    auto_delete_days = models.PositiveIntegerField(default=_default_auto_delete_days)
    allow_manual_delete = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    @classmethod
    def get_solo(cls) -> "NotificationSetting":
        obj, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return obj

    def __str__(self):
        return f"Notification settings (auto delete: {self.auto_delete_days} days)"
