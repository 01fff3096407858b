# notifications/serializers.py

from __future__ import annotations

from rest_framework import serializers

from notifications.models import Notification, NotificationSetting


class NotificationSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "product",
            "product_name",
            "type",
            "message",
            "is_read",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class NotificationSettingSerializer(serializers.ModelSerializer):
    auto_delete_days = serializers.IntegerField(min_value=0, required=False)
    allow_manual_delete = serializers.BooleanField(required=False)

    class Meta:
        model = NotificationSetting
        fields = ["auto_delete_days", "allow_manual_delete", "updated_at"]
        read_only_fields = ["updated_at"]

    def to_internal_value(self, data):
        # camelCase keys from older clients
        if hasattr(data, "get"):
            data = dict(data.items())
            if "autoDeleteDays" in data and "auto_delete_days" not in data:
                data["auto_delete_days"] = data.pop("autoDeleteDays")
            if "allowManualDelete" in data and "allow_manual_delete" not in data:
                data["allow_manual_delete"] = data.pop("allowManualDelete")
        return super().to_internal_value(data)
