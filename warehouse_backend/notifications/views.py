# notifications/views.py

"""
======================================================
PATH: notifications/views.py
======================================================
NOTIFICATION VIEWSET

Routes:
- GET    /api/notifications/                -> latest NOTIFICATION_LIST_LIMIT, newest first
- GET    /api/notifications/unread-count/   -> {"count": n}
- PATCH  /api/notifications/{id}/read/      -> mark one as read
- DELETE /api/notifications/{id}/           -> 403 when manual delete is disabled
- GET|PUT /api/notifications/settings/      -> retention settings (notifications.manage)
======================================================
"""

from __future__ import annotations

from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from notifications.models import Notification, NotificationSetting
from notifications.serializers import NotificationSerializer, NotificationSettingSerializer
from permissions.roles import (
    CAP_NOTIFICATIONS_MANAGE,
    CAP_NOTIFICATIONS_VIEW,
    HasCapability,
)


class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    required_capability = None

    def get_permissions(self):
        # reset per request so actions never inherit each other's capability
        if self.action == "retention_settings":
            self.required_capability = CAP_NOTIFICATIONS_MANAGE
        else:
            self.required_capability = CAP_NOTIFICATIONS_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        return Notification.objects.select_related("product").order_by("-created_at", "-id")

    def list(self, request, *args, **kwargs):
        limit = int(getattr(settings, "NOTIFICATION_LIST_LIMIT", 50))
        qs = self.get_queryset()[:limit]
        return Response(self.get_serializer(qs, many=True).data, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        if not NotificationSetting.get_solo().allow_manual_delete:
            return Response(
                {"detail": "Manual deletion of notifications is disabled."},
                status=status.HTTP_403_FORBIDDEN,
            )
        notification = self.get_object()
        notification.delete()
        return Response({"detail": "Notification deleted."}, status=status.HTTP_200_OK)

    @extend_schema(responses={200: serializers.DictField()})
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        count = Notification.objects.filter(is_read=False).count()
        return Response({"count": count}, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: NotificationSerializer})
    @action(detail=True, methods=["patch"], url_path="read")
    def read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)

    @extend_schema(
        methods=["GET"],
        responses={200: NotificationSettingSerializer},
    )
    @extend_schema(
        methods=["PUT"],
        request=NotificationSettingSerializer,
        responses={200: NotificationSettingSerializer},
    )
    @action(detail=False, methods=["get", "put"], url_path="settings")
    def retention_settings(self, request):
        setting = NotificationSetting.get_solo()

        if request.method == "GET":
            return Response(NotificationSettingSerializer(setting).data, status=status.HTTP_200_OK)

        ser = NotificationSettingSerializer(setting, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(ser.data, status=status.HTTP_200_OK)
