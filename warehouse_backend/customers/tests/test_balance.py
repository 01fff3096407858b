# customers/tests/test_balance.py

import uuid
from decimal import Decimal

from django.test import TestCase

from customers.models import Customer
from customers.services.balance import CustomerBalanceError, apply_outstanding_delta


class OutstandingBalanceTests(TestCase):
    def setUp(self):
        self.customer = Customer.objects.create(name="Acme Traders", email="acme@example.com")

    def test_positive_and_negative_deltas_accumulate(self):
        apply_outstanding_delta(customer_id=self.customer.pk, delta=Decimal("562.00"))
        apply_outstanding_delta(customer_id=self.customer.pk, delta=Decimal("-62.00"))

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.outstanding_balance, Decimal("500.00"))

    def test_delta_is_rounded_to_cents(self):
        applied = apply_outstanding_delta(customer_id=self.customer.pk, delta="10.005")

        self.assertEqual(applied, Decimal("10.01"))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.outstanding_balance, Decimal("10.01"))

    def test_unknown_customer_is_fatal(self):
        with self.assertRaises(CustomerBalanceError):
            apply_outstanding_delta(customer_id=uuid.uuid4(), delta=Decimal("5.00"))

    def test_zero_delta_still_requires_customer(self):
        with self.assertRaises(CustomerBalanceError):
            apply_outstanding_delta(customer_id=uuid.uuid4(), delta=0)
