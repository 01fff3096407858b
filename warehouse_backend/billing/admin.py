# billing/admin.py

"""
Bills are read-only in admin: every change must go through
billing.services.bill_service so stock and balances stay in step.
"""

from django.contrib import admin

from billing.models import Bill, BillItem, BillSequence


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0
    can_delete = False
    fields = ("product", "batch_number", "name", "quantity", "unit_price", "line_total")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = (
        "bill_number",
        "customer_name",
        "total_amount",
        "paid_amount",
        "due_amount",
        "payment_status",
        "payment_method",
        "bill_date",
    )
    list_filter = ("payment_status", "payment_method", "bill_date")
    search_fields = ("bill_number", "customer_name", "customer_email")
    ordering = ("-created_at",)
    inlines = [BillItemInline]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(BillSequence)
class BillSequenceAdmin(admin.ModelAdmin):
    list_display = ("last_number", "updated_at")
    readonly_fields = ("last_number", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
