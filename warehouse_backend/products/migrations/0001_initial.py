"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Product + StockBatch

Purpose:
- Product aggregate with cached quantity and reorder level.
- StockBatch lots keyed by (product, batch_number) with unit cost.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

import products.models.product


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("sku", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "unit_price",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                ("quantity", models.PositiveIntegerField(default=0)),
                (
                    "reorder_level",
                    models.PositiveIntegerField(default=products.models.product._default_reorder_level),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["name"], name="product_name_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("reorder_level__gte", 1)),
                        name="chk_product_reorder_level_gte_one",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("unit_price__gte", 0)),
                        name="chk_product_unit_price_gte_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockBatch",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                (
                    "batch_number",
                    models.CharField(help_text="Supplier / delivery batch reference", max_length=128),
                ),
                (
                    "unit_cost",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Unit cost charged when this lot is sold",
                        max_digits=12,
                    ),
                ),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("received_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("manufacturing_date", models.DateField(blank=True, null=True)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                ("supplier_reference", models.CharField(blank=True, default="", max_length=255)),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_batches",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["received_date", "manufacturing_date", "created_at"],
                "indexes": [
                    models.Index(fields=["product", "received_date"], name="batch_product_received_idx"),
                    models.Index(fields=["product", "quantity"], name="batch_product_quantity_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "batch_number"),
                        name="unique_batch_per_product",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0)),
                        name="chk_stockbatch_quantity_gte_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("unit_cost__gte", 0)),
                        name="chk_stockbatch_unit_cost_gte_zero",
                    ),
                ],
            },
        ),
    ]
