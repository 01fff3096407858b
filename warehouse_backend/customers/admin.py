# customers/admin.py

from django.contrib import admin

from customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "customer_type", "status", "outstanding_balance")
    list_filter = ("customer_type", "status")
    search_fields = ("name", "email", "phone")
    ordering = ("name",)
    readonly_fields = ("outstanding_balance", "created_at", "updated_at")
