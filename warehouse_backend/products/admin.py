# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules:

- Product quantity is service-managed and shown read-only.
- Stock batches are cost-history records: visible, never edited or deleted
  here. Stock comes in through products.services.stock_intake.receive_batch().
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, StockBatch


class StockBatchInline(admin.TabularInline):
    model = StockBatch
    extra = 0
    can_delete = False
    show_change_link = False

    fields = (
        "batch_number",
        "unit_cost",
        "quantity",
        "received_date",
        "manufacturing_date",
        "expiry_date",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "sku",
        "unit_price",
        "quantity",
        "reorder_level",
        "stock_status",
        "is_active",
    )
    list_filter = ("is_active", "created_at")
    search_fields = ("sku", "name")
    ordering = ("name",)
    readonly_fields = ("quantity", "created_at", "updated_at")

    inlines = [StockBatchInline]


@admin.register(StockBatch)
class StockBatchAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "batch_number",
        "unit_cost",
        "quantity",
        "received_date",
        "expiry_date",
    )
    list_filter = ("received_date", "expiry_date")
    search_fields = ("batch_number", "product__name", "product__sku")
    ordering = ("received_date", "created_at")

    readonly_fields = (
        "product",
        "batch_number",
        "unit_cost",
        "quantity",
        "received_date",
        "manufacturing_date",
        "expiry_date",
        "supplier_reference",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False if obj else True

    def has_delete_permission(self, request, obj=None):
        return False
