from decimal import Decimal

from django.test import TestCase, override_settings

from billing.models import Bill
from billing.services.numbering import format_bill_number, next_bill_number
from customers.models import Customer


class BillNumberingTests(TestCase):
    """
    GUARANTEES:
    - Sequential, zero-padded, prefixed numbers
    - Numbers already used by stored bills are skipped
    """

    def test_sequential_numbers(self):
        self.assertEqual(next_bill_number(), "BILL-000001")
        self.assertEqual(next_bill_number(), "BILL-000002")

    @override_settings(BILL_NUMBER_PREFIX="INV")
    def test_prefix_from_settings(self):
        self.assertEqual(format_bill_number(42), "INV-000042")

    def test_taken_numbers_are_skipped(self):
        customer = Customer.objects.create(name="Legacy Co")
        Bill.objects.create(
            bill_number="BILL-000001",
            customer=customer,
            customer_name=customer.name,
            subtotal=Decimal("0.00"),
            total_amount=Decimal("0.00"),
        )

        self.assertEqual(next_bill_number(), "BILL-000002")
