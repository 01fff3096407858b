# products/serializers/stock_batch.py
"""
======================================================
PATH: products/serializers/stock_batch.py
======================================================
STOCK BATCH SERIALIZER

Read-only lot view used by the FIFO preview endpoints.
Quantities are service-managed; there is no write path through the API.
"""

from __future__ import annotations

from rest_framework import serializers

from products.models import StockBatch


class StockBatchSerializer(serializers.ModelSerializer):
    product = serializers.UUIDField(source="product_id", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = StockBatch
        fields = [
            "id",
            "product",
            "product_name",
            "batch_number",
            "unit_cost",
            "quantity",
            "received_date",
            "manufacturing_date",
            "expiry_date",
            "supplier_reference",
            "created_at",
        ]
        read_only_fields = fields
