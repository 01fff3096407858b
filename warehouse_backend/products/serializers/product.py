# products/serializers/product.py

from __future__ import annotations

from rest_framework import serializers

from products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    Read-only product view.

    quantity is service-managed; stock_status is derived from quantity
    and the effective reorder level.
    """

    reorder_level = serializers.IntegerField(source="effective_reorder_level", read_only=True)
    stock_status = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "unit_price",
            "quantity",
            "reorder_level",
            "stock_status",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
