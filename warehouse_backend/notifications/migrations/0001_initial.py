"""
======================================================
PATH: notifications/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Notification + NotificationSetting

Purpose:
- Stock notifications with at most one unread row per (product, type).
- Singleton retention settings.
"""

from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

import notifications.models.setting


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "auto_delete_days",
                    models.PositiveIntegerField(default=notifications.models.setting._default_auto_delete_days),
                ),
                ("allow_manual_delete", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[("low-stock", "Low stock"), ("out-of-stock", "Out of stock")],
                        max_length=16,
                    ),
                ),
                ("message", models.CharField(max_length=500)),
                ("is_read", models.BooleanField(default=False)),
                (
                    "created_at",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_read", False)),
                        fields=("product", "type"),
                        name="unique_unread_notification_per_product_type",
                    ),
                ],
            },
        ),
    ]
