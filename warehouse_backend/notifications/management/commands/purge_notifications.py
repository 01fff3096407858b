# notifications/management/commands/purge_notifications.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from notifications.services.retention import purge_expired_notifications


class Command(BaseCommand):
    help = "Delete notifications older than the configured retention (run daily, e.g. 02:00 from cron)."

    def handle(self, *args, **options):
        deleted = purge_expired_notifications()
        self.stdout.write(self.style.SUCCESS(f"Removed {deleted} expired notifications."))
