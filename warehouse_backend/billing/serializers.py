# billing/serializers.py

"""
BILLING SERIALIZERS

Read side: bill + items snapshot, invoice payload.
Write side: request shape only; business validation lives in
billing.services.bill_service so the same rules apply outside the API.

Frontend compatibility:
- Accepts snake_case and the camelCase keys older clients send
  (customerId, discountPercent, productId, batchNumber, ...).
"""

from __future__ import annotations

from rest_framework import serializers

from billing.models import Bill, BillItem


BILL_KEY_ALIASES = {
    "customerId": "customer_id",
    "discountPercent": "discount_percent",
    "taxPercent": "tax_percent",
    "paidAmount": "paid_amount",
    "paymentStatus": "payment_status",
    "paymentMethod": "payment_method",
    "billDate": "bill_date",
    "dueDate": "due_date",
}

ITEM_KEY_ALIASES = {
    "productId": "product_id",
    "batchNumber": "batch_number",
}


def _apply_aliases(data, aliases: dict):
    if not hasattr(data, "items"):
        return data
    normalized = {}
    for key, value in data.items():
        target = aliases.get(key, key)
        # explicit snake_case wins over its camelCase alias
        if target != key and target in data:
            continue
        normalized[target] = value
    return normalized


# ==========================================================
# READ
# ==========================================================

class BillItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source="product.id", read_only=True)

    class Meta:
        model = BillItem
        fields = [
            "id",
            "product_id",
            "batch_number",
            "name",
            "quantity",
            "unit_price",
            "line_total",
        ]
        read_only_fields = fields


class BillSerializer(serializers.ModelSerializer):
    items = BillItemSerializer(many=True, read_only=True)
    customer_id = serializers.UUIDField(source="customer.id", read_only=True)
    created_by = serializers.SerializerMethodField()

    class Meta:
        model = Bill
        fields = [
            "id",
            "bill_number",
            "customer_id",
            "customer_name",
            "customer_email",
            "customer_phone",
            "items",
            "subtotal",
            "discount_percent",
            "discount_amount",
            "tax_percent",
            "tax_amount",
            "total_amount",
            "paid_amount",
            "due_amount",
            "payment_method",
            "payment_status",
            "bill_date",
            "due_date",
            "notes",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_created_by(self, obj):
        user = getattr(obj, "created_by", None)
        if user is None:
            return None
        return {"id": str(user.pk), "email": user.email, "username": user.username}


class BillInvoiceSerializer(serializers.ModelSerializer):
    """Print-ready invoice payload."""

    items = BillItemSerializer(many=True, read_only=True)
    customer = serializers.SerializerMethodField()

    class Meta:
        model = Bill
        fields = [
            "bill_number",
            "bill_date",
            "due_date",
            "customer",
            "items",
            "subtotal",
            "discount_percent",
            "discount_amount",
            "tax_percent",
            "tax_amount",
            "total_amount",
            "paid_amount",
            "due_amount",
            "payment_method",
            "payment_status",
            "notes",
        ]
        read_only_fields = fields

    def get_customer(self, obj):
        return {
            "id": str(obj.customer_id),
            "name": obj.customer_name,
            "email": obj.customer_email,
            "phone": obj.customer_phone,
        }


class BillStatsSerializer(serializers.Serializer):
    total_bills = serializers.IntegerField()
    today_bills = serializers.IntegerField()
    monthly_bills = serializers.IntegerField()
    pending_payments = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)


# ==========================================================
# WRITE
# ==========================================================

class BillItemInputSerializer(serializers.Serializer):
    product_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    quantity = serializers.IntegerField(required=False, allow_null=True)
    batch_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    price = serializers.DecimalField(max_digits=14, decimal_places=4, required=False, allow_null=True)
    name = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_internal_value(self, data):
        return super().to_internal_value(_apply_aliases(data, ITEM_KEY_ALIASES))


class BillWriteSerializer(serializers.Serializer):
    customer_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    items = BillItemInputSerializer(many=True, required=False)

    discount_percent = serializers.DecimalField(max_digits=9, decimal_places=4, required=False, allow_null=True)
    tax_percent = serializers.DecimalField(max_digits=9, decimal_places=4, required=False, allow_null=True)
    paid_amount = serializers.DecimalField(max_digits=14, decimal_places=4, required=False, allow_null=True)

    payment_status = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    payment_method = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    bill_date = serializers.DateTimeField(required=False, allow_null=True)
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_internal_value(self, data):
        return super().to_internal_value(_apply_aliases(data, BILL_KEY_ALIASES))

    def service_kwargs(self) -> dict:
        data = self.validated_data
        return {
            "items": [dict(item) for item in data.get("items") or []],
            "discount_percent": data.get("discount_percent"),
            "tax_percent": data.get("tax_percent"),
            "paid_amount": data.get("paid_amount"),
            "payment_status": data.get("payment_status"),
            "payment_method": data.get("payment_method"),
            "bill_date": data.get("bill_date"),
            "due_date": data.get("due_date"),
            "notes": data.get("notes"),
        }
