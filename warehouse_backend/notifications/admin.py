# notifications/admin.py

from django.contrib import admin

from notifications.models import Notification, NotificationSetting


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("product", "type", "message", "is_read", "created_at")
    list_filter = ("type", "is_read")
    search_fields = ("message", "product__name")
    ordering = ("-created_at",)


@admin.register(NotificationSetting)
class NotificationSettingAdmin(admin.ModelAdmin):
    list_display = ("auto_delete_days", "allow_manual_delete", "updated_at")

    def has_add_permission(self, request):
        return not NotificationSetting.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
