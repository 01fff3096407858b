from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from notifications.models import Notification, NotificationSetting
from products.models import Product

User = get_user_model()


class NotificationApiTests(TestCase):
    """
    Notification endpoints.

    GUARANTEES:
    - Newest first
    - Unread count and mark-as-read
    - Manual delete honors the retention setting
    - Settings writable by superadmin only
    """

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(email="admin@example.com", password="pass", role="superadmin")
        self.counter = User.objects.create_user(email="counter@example.com", password="pass", role="billcounter")

        product = Product.objects.create(name="Hinge", quantity=0)
        other = Product.objects.create(name="Latch", quantity=2)
        self.out = Notification.objects.create(
            product=product, type=Notification.Type.OUT_OF_STOCK, message="Hinge is out of stock"
        )
        self.low = Notification.objects.create(
            product=other, type=Notification.Type.LOW_STOCK, message="Latch is low in stock (2 remaining)"
        )

    def test_list_newest_first(self):
        self.client.force_authenticate(self.counter)
        res = self.client.get("/api/notifications/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual([row["id"] for row in res.data], [self.low.pk, self.out.pk])
        self.assertEqual(res.data[0]["product_name"], "Latch")

    def test_unread_count_and_mark_read(self):
        self.client.force_authenticate(self.counter)
        self.assertEqual(self.client.get("/api/notifications/unread-count/").data["count"], 2)

        res = self.client.patch(f"/api/notifications/{self.out.pk}/read/")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["is_read"])
        self.assertEqual(self.client.get("/api/notifications/unread-count/").data["count"], 1)

    def test_delete_allowed_by_default(self):
        self.client.force_authenticate(self.counter)
        res = self.client.delete(f"/api/notifications/{self.out.pk}/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["detail"], "Notification deleted.")
        self.assertFalse(Notification.objects.filter(pk=self.out.pk).exists())

    def test_delete_blocked_when_disabled(self):
        setting = NotificationSetting.get_solo()
        setting.allow_manual_delete = False
        setting.save()

        self.client.force_authenticate(self.admin)
        res = self.client.delete(f"/api/notifications/{self.out.pk}/")

        self.assertEqual(res.status_code, 403)
        self.assertTrue(Notification.objects.filter(pk=self.out.pk).exists())

    def test_settings_update_by_superadmin(self):
        self.client.force_authenticate(self.admin)
        res = self.client.put(
            "/api/notifications/settings/",
            {"autoDeleteDays": 7, "allowManualDelete": False},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        setting = NotificationSetting.get_solo()
        self.assertEqual(setting.auto_delete_days, 7)
        self.assertFalse(setting.allow_manual_delete)

    def test_settings_rejects_negative_days(self):
        self.client.force_authenticate(self.admin)
        res = self.client.put("/api/notifications/settings/", {"auto_delete_days": -1}, format="json")
        self.assertEqual(res.status_code, 400)

    def test_settings_forbidden_for_bill_counter(self):
        self.client.force_authenticate(self.counter)
        self.assertEqual(self.client.get("/api/notifications/settings/").status_code, 403)

    def test_unauthenticated_rejected(self):
        self.assertEqual(self.client.get("/api/notifications/").status_code, 401)
