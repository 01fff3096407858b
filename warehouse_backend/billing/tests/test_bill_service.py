from datetime import timedelta
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone

from billing.models import Bill, BillItem
from billing.services.bill_service import (
    BillNotFoundError,
    BillValidationError,
    ReferenceNotFoundError,
    create_bill,
    delete_bill,
    update_bill,
)
from customers.models import Customer
from notifications.models import Notification
from products.models import Product, StockBatch
from products.services.stock_fifo import BatchNotFoundError, InsufficientStockError


class BillLifecycleTestBase(TestCase):
    def setUp(self):
        now = timezone.now()
        self.customer = Customer.objects.create(name="Northwind", email="ap@northwind.example", phone="555-0100")

        self.pipe = Product.objects.create(name="Steel Pipe", unit_price=Decimal("130.00"), quantity=20)
        self.b1 = StockBatch.objects.create(
            product=self.pipe,
            batch_number="B1",
            unit_cost=Decimal("100.00"),
            quantity=10,
            received_date=now - timedelta(days=2),
        )
        self.b2 = StockBatch.objects.create(
            product=self.pipe,
            batch_number="B2",
            unit_cost=Decimal("120.00"),
            quantity=10,
            received_date=now - timedelta(days=1),
        )

        self.valve = Product.objects.create(name="Ball Valve", unit_price=Decimal("60.00"), quantity=30)
        self.vb = StockBatch.objects.create(
            product=self.valve,
            batch_number="V1",
            unit_cost=Decimal("50.00"),
            quantity=30,
        )

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    def _create(self, items, **kwargs):
        return create_bill(customer_id=self.customer.pk, items=items, **kwargs)

    def _stock(self):
        for obj in (self.b1, self.b2, self.vb, self.pipe, self.valve):
            obj.refresh_from_db()
        return {
            "B1": self.b1.quantity,
            "B2": self.b2.quantity,
            "V1": self.vb.quantity,
            "pipe": self.pipe.quantity,
            "valve": self.valve.quantity,
        }

    def _balance(self):
        self.customer.refresh_from_db()
        return self.customer.outstanding_balance

    def _items_payload(self, bill):
        return [
            {
                "product_id": str(item.product_id),
                "batch_number": item.batch_number,
                "quantity": item.quantity,
                "price": item.unit_price,
            }
            for item in bill.items.all()
        ]


class CreateBillTests(BillLifecycleTestBase):
    """
    GUARANTEES:
    - One bill line per batch drawn, priced at batch cost
    - Financials and customer snapshot stored on the bill
    - Outstanding balance grows by the due amount
    - Any failing line aborts the whole bill
    """

    def test_create_allocates_fifo_and_prices_from_batches(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 15}])

        lines = list(bill.items.values_list("batch_number", "quantity", "unit_price", "line_total"))
        self.assertEqual(
            lines,
            [
                ("B1", 10, Decimal("100.00"), Decimal("1000.00")),
                ("B2", 5, Decimal("120.00"), Decimal("600.00")),
            ],
        )
        self.assertEqual(bill.subtotal, Decimal("1600.00"))
        self.assertEqual(bill.bill_number, "BILL-000001")
        self.assertEqual(bill.customer_name, "Northwind")
        self.assertEqual(bill.customer_phone, "555-0100")

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (0, 5, 5))

    def test_financials_and_balance(self):
        bill = self._create(
            [{"product_id": self.pipe.pk, "quantity": 10}],
            discount_percent=10,
            tax_percent=18,
            paid_amount=500,
        )

        self.assertEqual(bill.total_amount, Decimal("1062.00"))
        self.assertEqual(bill.due_amount, Decimal("562.00"))
        self.assertEqual(bill.payment_status, Bill.STATUS_PENDING)
        self.assertEqual(self._balance(), Decimal("562.00"))

    def test_paid_cash_bill_leaves_balance(self):
        bill = self._create(
            [{"product_id": self.valve.pk, "quantity": 2}],
            payment_status="paid",
            payment_method="cash",
        )

        self.assertEqual(bill.paid_amount, Decimal("100.00"))
        self.assertEqual(bill.due_amount, Decimal("0.00"))
        self.assertEqual(self._balance(), Decimal("0.00"))

    def test_caller_price_ignored_on_create(self):
        bill = self._create([{"product_id": self.valve.pk, "quantity": 1, "price": "1.00"}])
        self.assertEqual(bill.items.get().unit_price, Decimal("50.00"))

    def test_pinned_batch(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 2, "batch_number": "B2"}])

        self.assertEqual(list(bill.items.values_list("batch_number", flat=True)), ["B2"])
        self.assertEqual(self._stock()["B2"], 8)

    def test_failing_line_rolls_back_whole_bill(self):
        with self.assertRaises(InsufficientStockError):
            self._create(
                [
                    {"product_id": self.valve.pk, "quantity": 5},
                    {"product_id": self.pipe.pk, "quantity": 25},
                ]
            )

        self.assertEqual(Bill.objects.count(), 0)
        self.assertEqual(self._stock(), {"B1": 10, "B2": 10, "V1": 30, "pipe": 20, "valve": 30})
        self.assertEqual(self._balance(), Decimal("0.00"))

    def test_validation_errors(self):
        with self.assertRaisesMessage(BillValidationError, "Bill must contain at least one item."):
            self._create([])
        with self.assertRaisesMessage(BillValidationError, "Item 1: Product ID is required."):
            self._create([{"quantity": 1}])
        with self.assertRaisesMessage(BillValidationError, "Item 2: Quantity must be greater than 0."):
            self._create([{"product_id": self.pipe.pk, "quantity": 1}, {"product_id": self.pipe.pk, "quantity": 0}])
        with self.assertRaisesMessage(BillValidationError, "Paid amount cannot be negative."):
            self._create([{"product_id": self.pipe.pk, "quantity": 1}], paid_amount=-1)

    def test_unknown_references(self):
        with self.assertRaisesMessage(ReferenceNotFoundError, "Invalid customer ID."):
            create_bill(customer_id="not-a-uuid", items=[{"product_id": self.pipe.pk, "quantity": 1}])
        with self.assertRaisesMessage(ReferenceNotFoundError, "Item 1: Invalid product selected."):
            self._create([{"product_id": "00000000-0000-0000-0000-000000000000", "quantity": 1}])

    def test_low_stock_notification_after_sale(self):
        self._create([{"product_id": self.pipe.pk, "quantity": 15}])
        self.assertTrue(
            Notification.objects.filter(
                product=self.pipe,
                type=Notification.Type.LOW_STOCK,
                is_read=False,
            ).exists()
        )


class UpdateBillTests(BillLifecycleTestBase):
    """
    GUARANTEES:
    - Resubmitting the same items changes nothing
    - Stock moves by the net difference per product
    - Returned units go back to the batches they came from
    - Edited lines record the lot each unit came from, at that lot's cost
    - Balance moves by the change in due amount
    - Edits that cannot be covered leave everything untouched
    """

    def test_resubmitting_same_items_is_a_no_op(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 15}], tax_percent=5)
        before_stock = self._stock()
        before_balance = self._balance()

        updated = update_bill(bill_id=bill.pk, items=self._items_payload(bill))

        self.assertEqual(self._stock(), before_stock)
        self.assertEqual(self._balance(), before_balance)
        self.assertEqual(updated.total_amount, bill.total_amount)
        self.assertEqual(updated.tax_percent, Decimal("5.00"))
        self.assertEqual(
            list(updated.items.values_list("batch_number", "quantity")),
            [("B1", 10), ("B2", 5)],
        )

    def test_increase_draws_fifo(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 5}])
        update_bill(bill_id=bill.pk, items=[{"product_id": str(self.pipe.pk), "quantity": 8}])

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (2, 10, 12))

        item = BillItem.objects.get(bill=bill)
        self.assertEqual((item.batch_number, item.quantity, item.unit_price), ("B1", 8, Decimal("100.00")))
        self.assertEqual(self._balance(), Decimal("800.00"))

    def test_decrease_credits_last_consumed_batch(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 15}])
        payload = self._items_payload(bill)
        payload[1]["quantity"] = 2

        updated = update_bill(bill_id=bill.pk, items=payload)

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (0, 8, 8))
        self.assertEqual(updated.subtotal, Decimal("1240.00"))
        self.assertEqual(self._balance(), Decimal("1240.00"))

    def test_product_swap(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 5}])
        updated = update_bill(bill_id=bill.pk, items=[{"product_id": str(self.valve.pk), "quantity": 3}])

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["pipe"]), (10, 20))
        self.assertEqual((stock["V1"], stock["valve"]), (27, 27))

        item = updated.items.get()
        self.assertEqual(item.name, "Ball Valve")
        self.assertEqual(item.unit_price, Decimal("50.00"))
        self.assertEqual(self._balance(), Decimal("150.00"))

    def test_oversell_rejected_without_side_effects(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 5}])
        before_stock = self._stock()

        with self.assertRaises(InsufficientStockError):
            update_bill(bill_id=bill.pk, items=[{"product_id": str(self.pipe.pk), "quantity": 26}])

        self.assertEqual(self._stock(), before_stock)
        self.assertEqual(BillItem.objects.get(bill=bill).quantity, 5)
        self.assertEqual(self._balance(), Decimal("500.00"))

    def test_payment_update_clears_balance(self):
        bill = self._create([{"product_id": self.valve.pk, "quantity": 4}], paid_amount=50)
        self.assertEqual(self._balance(), Decimal("150.00"))

        updated = update_bill(bill_id=bill.pk, items=self._items_payload(bill), payment_status="paid")

        self.assertEqual(updated.payment_status, Bill.STATUS_PAID)
        self.assertEqual(updated.due_amount, Decimal("0.00"))
        self.assertEqual(self._balance(), Decimal("0.00"))

    def test_balance_moves_by_due_deltas_only(self):
        other = Customer.objects.create(name="Fabrikam")
        bill = self._create([{"product_id": self.valve.pk, "quantity": 4}])
        create_bill(customer_id=other.pk, items=[{"product_id": self.valve.pk, "quantity": 1}])

        # simulate a balance change from elsewhere between create and edit
        Customer.objects.filter(pk=self.customer.pk).update(outstanding_balance=Decimal("1000.00"))

        update_bill(bill_id=bill.pk, items=[{"product_id": str(self.valve.pk), "quantity": 2}])

        self.assertEqual(self._balance(), Decimal("900.00"))
        other.refresh_from_db()
        self.assertEqual(other.outstanding_balance, Decimal("50.00"))

    def test_omitted_financials_keep_stored_values(self):
        bill = self._create([{"product_id": self.valve.pk, "quantity": 2}], discount_percent=10, paid_amount=20)
        updated = update_bill(bill_id=bill.pk, items=self._items_payload(bill))

        self.assertEqual(updated.discount_percent, Decimal("10.00"))
        self.assertEqual(updated.paid_amount, Decimal("20.00"))
        self.assertEqual(updated.due_amount, bill.due_amount)

    # --------------------------------------------------
    # Lots recorded on edited lines
    # --------------------------------------------------

    def _lines(self, bill):
        return list(bill.items.values_list("batch_number", "quantity", "unit_price"))

    def test_repinning_to_another_batch_moves_units_between_lots(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 5}])

        updated = update_bill(
            bill_id=bill.pk,
            items=[{"product_id": str(self.pipe.pk), "quantity": 5, "batch_number": "B2"}],
        )

        self.assertEqual(self._lines(updated), [("B2", 5, Decimal("120.00"))])
        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (10, 5, 15))
        self.assertEqual(self._balance(), Decimal("600.00"))

        delete_bill(bill_id=bill.pk, restore_stock=True)

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (10, 10, 20))
        self.assertEqual(self._balance(), Decimal("0.00"))

    def test_extra_units_pinned_to_a_second_batch(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 5}])

        updated = update_bill(
            bill_id=bill.pk,
            items=[
                {"product_id": str(self.pipe.pk), "quantity": 5, "batch_number": "B1"},
                {"product_id": str(self.pipe.pk), "quantity": 3, "batch_number": "B2"},
            ],
        )

        self.assertEqual(
            self._lines(updated),
            [("B1", 5, Decimal("100.00")), ("B2", 3, Decimal("120.00"))],
        )
        self.assertEqual(updated.subtotal, Decimal("860.00"))
        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (5, 7, 12))

        delete_bill(bill_id=bill.pk, restore_stock=True)

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (10, 10, 20))

    def test_growth_past_first_lot_is_split_per_lot(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 10}])

        updated = update_bill(bill_id=bill.pk, items=[{"product_id": str(self.pipe.pk), "quantity": 12}])

        self.assertEqual(
            self._lines(updated),
            [("B1", 10, Decimal("100.00")), ("B2", 2, Decimal("120.00"))],
        )
        self.assertEqual(updated.subtotal, Decimal("1240.00"))
        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (0, 8, 8))

        delete_bill(bill_id=bill.pk, restore_stock=True)

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (10, 10, 20))

    def test_pinned_unknown_batch_rejected_without_side_effects(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 5}])
        before_stock = self._stock()

        with self.assertRaises(BatchNotFoundError):
            update_bill(
                bill_id=bill.pk,
                items=[{"product_id": str(self.pipe.pk), "quantity": 5, "batch_number": "B9"}],
            )

        self.assertEqual(self._stock(), before_stock)
        self.assertEqual(self._lines(bill), [("B1", 5, Decimal("100.00"))])
        self.assertEqual(self._balance(), Decimal("500.00"))

    def test_unknown_bill(self):
        with self.assertRaises(BillNotFoundError):
            update_bill(
                bill_id="00000000-0000-0000-0000-000000000000",
                items=[{"product_id": str(self.pipe.pk), "quantity": 1}],
            )


class DeleteBillTests(BillLifecycleTestBase):
    """
    GUARANTEES:
    - Default delete removes the record only
    - Restoring delete returns stock to batches and reverses the balance
    """

    def test_delete_without_restoration(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 12}])
        before_stock = self._stock()

        self.assertEqual(delete_bill(bill_id=bill.pk), "BILL-000001")

        self.assertFalse(Bill.objects.filter(pk=bill.pk).exists())
        self.assertFalse(BillItem.objects.filter(bill_id=bill.pk).exists())
        self.assertEqual(self._stock(), before_stock)
        self.assertEqual(self._balance(), Decimal("1240.00"))

    @override_settings(BILL_DELETE_RESTORES_STOCK=True)
    def test_delete_with_restoration(self):
        bill = self._create([{"product_id": self.pipe.pk, "quantity": 12}])
        delete_bill(bill_id=bill.pk)

        stock = self._stock()
        self.assertEqual((stock["B1"], stock["B2"], stock["pipe"]), (10, 10, 20))
        self.assertEqual(self._balance(), Decimal("0.00"))

    def test_explicit_restore_flag_overrides_setting(self):
        bill = self._create([{"product_id": self.valve.pk, "quantity": 3}])
        delete_bill(bill_id=bill.pk, restore_stock=True)

        self.assertEqual(self._stock()["valve"], 30)

    def test_unknown_bill(self):
        with self.assertRaises(BillNotFoundError):
            delete_bill(bill_id="00000000-0000-0000-0000-000000000000")
