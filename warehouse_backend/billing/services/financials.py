# billing/services/financials.py

"""
======================================================
PATH: billing/services/financials.py
======================================================
BILL FINANCIAL CALCULATOR (PURE)

Rules, in order:
- subtotal = sum of line totals, rounded to 2dp after every addition
- discount percent clamped to [0, 100], not rounded; discount = round(subtotal * pct / 100)
- taxable base = max(subtotal - discount, 0)
- tax percent clamped to [0, 100], not rounded; tax = round(base * pct / 100)
- stored percentages keep 4 decimal places
- total = base + tax
- status "paid" forces paid_amount = total
- paid_amount clamped to <= total
- due = max(total - paid, 0)
- status "paid" with due > 0 is downgraded to "partial"

No database access here. Money is Decimal, rounded ROUND_HALF_UP.
======================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

TWOPLACES = Decimal("0.01")
PERCENT_PLACES = Decimal("0.0001")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

PAYMENT_METHODS = ("cash", "card", "upi", "bank_transfer", "credit")
PAYMENT_METHOD_ALIASES = {"bank": "bank_transfer"}
DEFAULT_PAYMENT_METHOD = "cash"

PAYMENT_STATUSES = ("pending", "paid", "partial")
DEFAULT_PAYMENT_STATUS = "pending"


def to_decimal(value, default: Decimal = ZERO) -> Decimal:
    """
    Lenient numeric parse: None, blanks, junk and non-finite values give `default`.
    """
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    if not d.is_finite():
        return default
    return d


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return min(max(value, low), high)


def normalize_payment_method(method) -> str:
    m = (method or "").strip().lower() if isinstance(method, str) else ""
    m = PAYMENT_METHOD_ALIASES.get(m, m)
    return m if m in PAYMENT_METHODS else DEFAULT_PAYMENT_METHOD


def normalize_payment_status(status) -> str:
    s = (status or "").strip().lower() if isinstance(status, str) else ""
    return s if s in PAYMENT_STATUSES else DEFAULT_PAYMENT_STATUS


@dataclass(frozen=True)
class BillFinancials:
    subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    taxable_base: Decimal
    tax_percent: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    payment_status: str

    def as_model_fields(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount_percent": self.discount_percent,
            "discount_amount": self.discount_amount,
            "tax_percent": self.tax_percent,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "due_amount": self.due_amount,
            "payment_status": self.payment_status,
        }


def compute_bill_financials(
    *,
    line_totals: Iterable,
    discount_percent=None,
    tax_percent=None,
    paid_amount=None,
    payment_status=None,
) -> BillFinancials:
    subtotal = ZERO
    for line_total in line_totals:
        subtotal = money(subtotal + money(line_total))

    disc_pct = clamp(to_decimal(discount_percent), ZERO, HUNDRED)
    discount_amount = money(subtotal * disc_pct / HUNDRED)
    taxable_base = money(max(subtotal - discount_amount, ZERO))

    tax_pct = clamp(to_decimal(tax_percent), ZERO, HUNDRED)
    tax_amount = money(taxable_base * tax_pct / HUNDRED)
    total_amount = money(taxable_base + tax_amount)

    status = normalize_payment_status(payment_status)
    paid = money(max(to_decimal(paid_amount), ZERO))

    if status == "paid":
        paid = total_amount

    if paid > total_amount:
        paid = total_amount

    due_amount = money(max(total_amount - paid, ZERO))
    if status == "paid" and due_amount > ZERO:
        status = "partial"

    return BillFinancials(
        subtotal=subtotal,
        discount_percent=disc_pct.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP),
        discount_amount=discount_amount,
        taxable_base=taxable_base,
        tax_percent=tax_pct.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP),
        tax_amount=tax_amount,
        total_amount=total_amount,
        paid_amount=paid,
        due_amount=due_amount,
        payment_status=status,
    )
