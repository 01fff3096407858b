from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from notifications.models import Notification
from products.models import Product, StockBatch
from products.services.stock_intake import ExistingProduct, NewProduct, receive_batch


class StockIntakeTests(TestCase):
    """
    Goods-received entry point.

    GUARANTEES:
    - New product names create the product once
    - Existing lots are topped up only at the same cost
    - Product.quantity tracks every intake
    - Stock notifications follow the new level
    """

    def test_new_product_is_created_with_first_batch(self):
        batch = receive_batch(
            product_ref=NewProduct(name="Hex Bolt M6", unit_price=Decimal("2.50")),
            quantity=40,
            unit_cost=Decimal("1.80"),
            batch_number="HB-001",
        )

        product = Product.objects.get(name="Hex Bolt M6")
        self.assertEqual(batch.product_id, product.pk)
        self.assertEqual(product.quantity, 40)
        self.assertEqual(product.reorder_level, 10)
        self.assertEqual(batch.unit_cost, Decimal("1.80"))

    def test_new_product_reference_reuses_same_name(self):
        receive_batch(product_ref=NewProduct(name="Washer"), quantity=5, unit_cost="0.10", batch_number="W1")
        receive_batch(product_ref=NewProduct(name="washer"), quantity=7, unit_cost="0.12", batch_number="W2")

        self.assertEqual(Product.objects.filter(name__iexact="washer").count(), 1)
        self.assertEqual(Product.objects.get(name="Washer").quantity, 12)

    def test_existing_batch_top_up(self):
        product = Product.objects.create(name="Rivet")
        receive_batch(product_ref=ExistingProduct(product.pk), quantity=10, unit_cost="0.50", batch_number="R1")
        receive_batch(product_ref=ExistingProduct(product.pk), quantity=15, unit_cost="0.50", batch_number="R1")

        self.assertEqual(StockBatch.objects.get(product=product, batch_number="R1").quantity, 25)
        product.refresh_from_db()
        self.assertEqual(product.quantity, 25)

    def test_existing_batch_cost_mismatch_rejected(self):
        product = Product.objects.create(name="Rivet")
        receive_batch(product_ref=ExistingProduct(product.pk), quantity=10, unit_cost="0.50", batch_number="R1")

        with self.assertRaises(ValidationError):
            receive_batch(product_ref=ExistingProduct(product.pk), quantity=5, unit_cost="0.55", batch_number="R1")

        product.refresh_from_db()
        self.assertEqual(product.quantity, 10)

    def test_unknown_product_rejected(self):
        with self.assertRaises(ValidationError):
            receive_batch(
                product_ref=ExistingProduct("00000000-0000-0000-0000-000000000000"),
                quantity=1,
                unit_cost="1.00",
            )

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(ValidationError):
            receive_batch(product_ref=NewProduct(name="Nut"), quantity=0, unit_cost="1.00")
        self.assertFalse(Product.objects.filter(name="Nut").exists())

    def test_generated_batch_number(self):
        batch = receive_batch(product_ref=NewProduct(name="Nut"), quantity=3, unit_cost="1.00")
        self.assertTrue(batch.batch_number.startswith("INTAKE-"))

    def test_intake_refreshes_notifications(self):
        product = Product.objects.create(name="Fuse", reorder_level=5)
        receive_batch(product_ref=ExistingProduct(product.pk), quantity=3, unit_cost="1.00", batch_number="F1")
        self.assertTrue(
            Notification.objects.filter(product=product, type=Notification.Type.LOW_STOCK, is_read=False).exists()
        )

        receive_batch(product_ref=ExistingProduct(product.pk), quantity=10, unit_cost="1.00", batch_number="F1")
        self.assertFalse(Notification.objects.filter(product=product, is_read=False).exists())
