# billing/models/bill.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from customers.models import Customer

User = settings.AUTH_USER_MODEL


class Bill(models.Model):
    """
    A sale to a customer, stored as a fully resolved financial snapshot.

    GUARANTEES:
    - total_amount = subtotal - discount_amount + tax_amount
    - due_amount = max(total_amount - paid_amount, 0)
    - paid_amount <= total_amount
    - customer_* fields are a snapshot taken at creation
    - Stock is mutated ONLY via billing.services.bill_service
    """

    PAYMENT_CASH = "cash"
    PAYMENT_CARD = "card"
    PAYMENT_UPI = "upi"
    PAYMENT_BANK_TRANSFER = "bank_transfer"
    PAYMENT_CREDIT = "credit"

    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_CARD, "Card"),
        (PAYMENT_UPI, "UPI"),
        (PAYMENT_BANK_TRANSFER, "Bank transfer"),
        (PAYMENT_CREDIT, "Credit"),
    ]

    STATUS_PENDING = "pending"
    STATUS_PAID = "paid"
    STATUS_PARTIAL = "partial"

    PAYMENT_STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PAID, "Paid"),
        (STATUS_PARTIAL, "Partial"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill_number = models.CharField(
        max_length=32,
        unique=True,
        help_text="System-generated sequential number (BILL-000001)",
    )

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="bills",
    )
    customer_name = models.CharField(max_length=255)
    customer_email = models.CharField(max_length=254, blank=True, default="")
    customer_phone = models.CharField(max_length=32, blank=True, default="")

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_percent = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal("0.0000"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_percent = models.DecimalField(max_digits=7, decimal_places=4, default=Decimal("0.0000"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    due_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    payment_method = models.CharField(
        max_length=16,
        choices=PAYMENT_METHOD_CHOICES,
        default=PAYMENT_CASH,
    )
    payment_status = models.CharField(
        max_length=16,
        choices=PAYMENT_STATUS_CHOICES,
        default=STATUS_PENDING,
    )

    bill_date = models.DateTimeField(default=timezone.now)
    due_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bills",
        help_text="Staff member who created the bill",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["bill_date"], name="bill_date_idx"),
            models.Index(fields=["payment_status"], name="bill_payment_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(paid_amount__lte=models.F("total_amount")),
                name="chk_bill_paid_lte_total",
            ),
            models.CheckConstraint(
                condition=Q(due_amount__gte=0),
                name="chk_bill_due_gte_zero",
            ),
        ]

    def __str__(self):
        return f"{self.bill_number} ({self.customer_name})"
