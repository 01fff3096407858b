from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from billing.models import Bill
from customers.models import Customer
from products.models import Product, StockBatch

User = get_user_model()


class BillApiTests(TestCase):
    """
    Bill endpoints.

    GUARANTEES:
    - camelCase payloads accepted
    - Domain errors mapped to 400 / 404 with a detail message
    - Capabilities enforced per action
    - Filters, stats and invoice payloads
    """

    def setUp(self):
        self.client = APIClient()

        self.admin = User.objects.create_user(email="admin@example.com", password="pass", role="superadmin")
        self.counter = User.objects.create_user(email="counter@example.com", password="pass", role="billcounter")
        self.stock_manager = User.objects.create_user(
            email="stock@example.com", password="pass", role="stockmanager"
        )

        self.customer = Customer.objects.create(name="Contoso", email="billing@contoso.example")
        self.product = Product.objects.create(name="Angle Bracket", unit_price=Decimal("120.00"), quantity=20)
        StockBatch.objects.create(
            product=self.product,
            batch_number="AB1",
            unit_cost=Decimal("100.00"),
            quantity=20,
            received_date=timezone.now() - timedelta(days=1),
        )

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    def _payload(self, quantity=10, **extra):
        data = {
            "customerId": str(self.customer.pk),
            "items": [{"productId": str(self.product.pk), "quantity": quantity}],
        }
        data.update(extra)
        return data

    def _create(self, **extra):
        self.client.force_authenticate(self.counter)
        res = self.client.post("/api/bills/", self._payload(**extra), format="json")
        self.assertEqual(res.status_code, 201, res.data)
        return res

    # --------------------------------------------------
    # CREATE
    # --------------------------------------------------

    def test_create_bill_with_camel_case_payload(self):
        res = self._create(discountPercent=10, taxPercent=18, paidAmount=500, paymentMethod="bank")

        self.assertEqual(res.data["bill_number"], "BILL-000001")
        self.assertEqual(Decimal(res.data["total_amount"]), Decimal("1062.00"))
        self.assertEqual(Decimal(res.data["due_amount"]), Decimal("562.00"))
        self.assertEqual(res.data["payment_method"], "bank_transfer")
        self.assertEqual(res.data["payment_status"], "pending")
        self.assertEqual(res.data["created_by"]["email"], "counter@example.com")
        self.assertEqual(res.data["items"][0]["batch_number"], "AB1")

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.outstanding_balance, Decimal("562.00"))

    def test_insufficient_stock_is_400(self):
        self.client.force_authenticate(self.counter)
        res = self.client.post("/api/bills/", self._payload(quantity=21), format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["detail"], "Insufficient stock for product 'Angle Bracket'. Available: 20")
        self.assertEqual(Bill.objects.count(), 0)

    def test_missing_customer_is_400(self):
        self.client.force_authenticate(self.counter)
        data = self._payload()
        data.pop("customerId")
        res = self.client.post("/api/bills/", data, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["detail"], "Customer ID is required.")

    def test_stock_manager_cannot_create(self):
        self.client.force_authenticate(self.stock_manager)
        res = self.client.post("/api/bills/", self._payload(), format="json")
        self.assertEqual(res.status_code, 403)

    def test_unauthenticated_rejected(self):
        res = self.client.post("/api/bills/", self._payload(), format="json")
        self.assertEqual(res.status_code, 401)

    # --------------------------------------------------
    # UPDATE / DELETE
    # --------------------------------------------------

    def test_update_bill(self):
        bill_id = self._create().data["id"]

        res = self.client.put(
            f"/api/bills/{bill_id}/",
            {"items": [{"productId": str(self.product.pk), "quantity": 4}], "paymentStatus": "paid"},
            format="json",
        )

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(Decimal(res.data["total_amount"]), Decimal("400.00"))
        self.assertEqual(res.data["payment_status"], "paid")
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 16)

    def test_update_unknown_bill_is_404(self):
        self.client.force_authenticate(self.counter)
        res = self.client.put(
            "/api/bills/00000000-0000-0000-0000-000000000000/",
            {"items": [{"productId": str(self.product.pk), "quantity": 1}]},
            format="json",
        )
        self.assertEqual(res.status_code, 404)

    def test_patch_not_allowed(self):
        bill_id = self._create().data["id"]
        res = self.client.patch(f"/api/bills/{bill_id}/", {"notes": "x"}, format="json")
        self.assertEqual(res.status_code, 405)

    def test_delete_requires_superadmin(self):
        bill_id = self._create().data["id"]

        res = self.client.delete(f"/api/bills/{bill_id}/")
        self.assertEqual(res.status_code, 403)

        self.client.force_authenticate(self.admin)
        res = self.client.delete(f"/api/bills/{bill_id}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"detail": "Bill deleted successfully", "bill_number": "BILL-000001"})
        self.assertFalse(Bill.objects.filter(pk=bill_id).exists())

    # --------------------------------------------------
    # READ
    # --------------------------------------------------

    def test_list_filters_by_payment_status(self):
        self._create(quantity=2, paymentStatus="paid")
        self._create(quantity=3)

        res = self.client.get("/api/bills/", {"payment_status": "paid"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["payment_status"], "paid")

    def test_list_filters_by_date_range(self):
        self._create(quantity=1)
        today = timezone.localdate()

        res = self.client.get("/api/bills/", {"start_date": str(today + timedelta(days=1))})
        self.assertEqual(res.data["count"], 0)

        res = self.client.get("/api/bills/", {"start_date": str(today - timedelta(days=1)), "end_date": str(today)})
        self.assertEqual(res.data["count"], 1)

    def test_stats(self):
        self._create(quantity=2, paymentStatus="paid")
        self._create(quantity=3)

        res = self.client.get("/api/bills/stats/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["total_bills"], 2)
        self.assertEqual(res.data["today_bills"], 2)
        self.assertEqual(res.data["pending_payments"], 1)
        self.assertEqual(Decimal(res.data["total_revenue"]), Decimal("200.00"))

    def test_invoice(self):
        bill_id = self._create(quantity=2).data["id"]

        res = self.client.get(f"/api/bills/{bill_id}/invoice/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["customer"]["name"], "Contoso")
        self.assertEqual(res.data["customer"]["email"], "billing@contoso.example")
        self.assertEqual(len(res.data["items"]), 1)
