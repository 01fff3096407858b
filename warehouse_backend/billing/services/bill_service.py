# billing/services/bill_service.py

"""
======================================================
PATH: billing/services/bill_service.py
======================================================
BILL LIFECYCLE (CORE BILLING DOMAIN SERVICE)

SINGLE SOURCE OF TRUTH for:
- Bill creation (FIFO allocation + financials + customer balance)
- Bill edits (reconciliation against the previous item list, per lot)
- Bill deletion (optional stock/balance restoration)

GUARANTEES:
- Each operation is one transaction: a failing line aborts the whole bill.
- Lock order: bill row, then products in ascending id order, then batches.
- Edits adjust stock by the DIFFERENCE between old and new items, never by
  re-running allocation from scratch.
- Customer balance moves by due-amount deltas only (atomic F() updates).
- Stock notifications run after the transaction, best-effort.
======================================================
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from billing.models import Bill, BillItem
from billing.services.financials import (
    compute_bill_financials,
    money,
    normalize_payment_method,
    to_decimal,
)
from billing.services.numbering import next_bill_number
from customers.models import Customer
from customers.services.balance import apply_outstanding_delta
from notifications.services.stock_notifier import notify_products
from products.services.stock_fifo import (
    adjust_product_quantity,
    allocate_stock,
    credit_batch,
    lock_products,
    take_from_batches,
    to_int_qty,
)

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class BillError(Exception):
    status_code = 400


class BillValidationError(BillError):
    pass


class ReferenceNotFoundError(BillError):
    pass


class BillNotFoundError(BillError):
    status_code = 404


# ============================================================
# INPUT NORMALIZATION
# ============================================================

@dataclass(frozen=True)
class LineRequest:
    position: int
    product_id: uuid.UUID
    quantity: int
    batch_number: Optional[str] = None
    price: Optional[Decimal] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ResolvedLine:
    product: object
    batch_number: Optional[str]
    name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return money(self.unit_price * self.quantity)


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        return None


def _parse_lines(items) -> list[LineRequest]:
    if not isinstance(items, (list, tuple)) or not items:
        raise BillValidationError("Bill must contain at least one item.")

    lines = []
    for index, raw in enumerate(items):
        n = index + 1
        if not isinstance(raw, dict):
            raise BillValidationError(f"Item {n}: Invalid item.")

        raw_pid = raw.get("product_id")
        if raw_pid in (None, ""):
            raise BillValidationError(f"Item {n}: Product ID is required.")
        product_id = _parse_uuid(raw_pid)
        if product_id is None:
            raise ReferenceNotFoundError(f"Item {n}: Invalid product selected.")

        try:
            quantity = to_int_qty(raw.get("quantity"))
        except ValueError:
            raise BillValidationError(f"Item {n}: Quantity must be a whole number.")
        if quantity <= 0:
            raise BillValidationError(f"Item {n}: Quantity must be greater than 0.")

        price = None
        if raw.get("price") not in (None, ""):
            price = money(raw.get("price"))
            if price < Decimal("0.00"):
                raise BillValidationError(f"Item {n}: Price cannot be negative.")

        batch_number = (raw.get("batch_number") or "").strip() or None
        name = (raw.get("name") or "").strip() or None

        lines.append(
            LineRequest(
                position=index,
                product_id=product_id,
                quantity=quantity,
                batch_number=batch_number,
                price=price,
                name=name,
            )
        )
    return lines


def _non_negative(value, field_label: str):
    if value is None or value == "":
        return None
    d = to_decimal(value, default=None)
    if d is None:
        raise BillValidationError(f"{field_label} must be a number.")
    if d < 0:
        raise BillValidationError(f"{field_label} cannot be negative.")
    return d


def _get_customer(customer_id) -> Customer:
    if customer_id in (None, ""):
        raise BillValidationError("Customer ID is required.")
    pk = _parse_uuid(customer_id)
    customer = Customer.objects.filter(pk=pk).first() if pk else None
    if customer is None:
        raise ReferenceNotFoundError("Invalid customer ID.")
    return customer


def _products_for(lines: list[LineRequest], locked: dict) -> dict:
    for line in lines:
        if line.product_id not in locked:
            raise ReferenceNotFoundError(f"Item {line.position + 1}: Invalid product selected.")
    return locked


def _write_items(bill: Bill, resolved: list[ResolvedLine]) -> None:
    for position, line in enumerate(resolved):
        BillItem.objects.create(
            bill=bill,
            position=position,
            product=line.product,
            batch_number=line.batch_number,
            name=line.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
        )


# ============================================================
# CREATE
# ============================================================

def create_bill(
    *,
    customer_id,
    items,
    discount_percent=None,
    tax_percent=None,
    paid_amount=None,
    payment_status=None,
    payment_method=None,
    bill_date=None,
    due_date=None,
    notes=None,
    created_by=None,
) -> Bill:
    """
    Create a bill, allocating every line from stock.

    Line prices are always the allocated batch cost; a caller-supplied
    price is ignored on create.
    """
    lines = _parse_lines(items)
    paid = _non_negative(paid_amount, "Paid amount")
    _non_negative(discount_percent, "Discount percent")
    _non_negative(tax_percent, "Tax percent")

    with transaction.atomic():
        customer = _get_customer(customer_id)
        products = _products_for(lines, lock_products(line.product_id for line in lines))

        resolved: list[ResolvedLine] = []
        for line in lines:
            product = products[line.product_id]
            allocations = allocate_stock(
                product=product,
                quantity=line.quantity,
                batch_number=line.batch_number,
            )
            for allocation in allocations:
                resolved.append(
                    ResolvedLine(
                        product=product,
                        batch_number=allocation.batch_number,
                        name=product.name,
                        quantity=allocation.quantity,
                        unit_price=money(allocation.unit_cost),
                    )
                )

        financials = compute_bill_financials(
            line_totals=[line.line_total for line in resolved],
            discount_percent=discount_percent,
            tax_percent=tax_percent,
            paid_amount=paid,
            payment_status=payment_status,
        )

        bill = Bill.objects.create(
            bill_number=next_bill_number(),
            customer=customer,
            customer_name=customer.name,
            customer_email=customer.email or "",
            customer_phone=customer.phone or "",
            payment_method=normalize_payment_method(payment_method),
            bill_date=bill_date or timezone.now(),
            due_date=due_date,
            notes=(notes or "").strip(),
            created_by=created_by,
            **financials.as_model_fields(),
        )
        _write_items(bill, resolved)

        if bill.payment_method == Bill.PAYMENT_CREDIT or bill.payment_status != Bill.STATUS_PAID:
            apply_outstanding_delta(customer_id=customer.pk, delta=bill.due_amount)

    logger.info(
        "Bill created",
        extra={
            "bill_number": bill.bill_number,
            "customer_id": str(customer.pk),
            "total_amount": str(bill.total_amount),
            "due_amount": str(bill.due_amount),
        },
    )

    notify_products(products.keys())
    return bill


# ============================================================
# UPDATE
# ============================================================

@dataclass
class _PreviousSlot:
    """Units a previous bill line took from one lot, not yet re-claimed."""

    product_id: uuid.UUID
    batch_number: Optional[str]
    unit_price: Decimal
    remaining: int


def _claim_previous(slots: list[_PreviousSlot], line: LineRequest) -> tuple[list[tuple], int]:
    """
    Let an edited line keep units the previous version already took.

    A pinned line only keeps units from its own lot. Returns the kept
    (batch_number, quantity, unit_price) parts and the quantity still to draw.
    """
    kept = []
    needed = line.quantity
    for slot in slots:
        if needed <= 0:
            break
        if slot.product_id != line.product_id or slot.remaining <= 0:
            continue
        if line.batch_number and slot.batch_number != line.batch_number:
            continue
        portion = min(needed, slot.remaining)
        slot.remaining -= portion
        needed -= portion
        kept.append((slot.batch_number, portion, slot.unit_price))
    return kept, needed


def _merge_parts(line: LineRequest, product, parts: list[tuple]) -> list[ResolvedLine]:
    """One bill line per (lot, price); a caller price applies to every part."""
    merged: dict = {}
    for batch_number, quantity, unit_price in parts:
        price = line.price if line.price is not None else unit_price
        key = (batch_number, price)
        merged[key] = merged.get(key, 0) + quantity

    return [
        ResolvedLine(
            product=product,
            batch_number=batch_number,
            name=line.name or product.name,
            quantity=quantity,
            unit_price=price,
        )
        for (batch_number, price), quantity in merged.items()
    ]


def update_bill(
    *,
    bill_id,
    items,
    discount_percent=None,
    tax_percent=None,
    paid_amount=None,
    payment_status=None,
    payment_method=None,
    bill_date=None,
    due_date=None,
    notes=None,
) -> Bill:
    """
    Replace a bill's items and recompute it.

    - Product quantities move by the per-product net difference between the
      previous and the new item list; a negative result is rejected.
    - Each new line first keeps the units the previous version already took
      (pinned lines from their own lot only, pinned lines served first).
    - Units no longer billed go back to the lots they came from.
    - Extra units are drawn from the pinned lot, or FIFO, and billed per lot
      at that lot's cost.
    Omitted financial fields keep their stored value.
    """
    lines = _parse_lines(items)
    paid = _non_negative(paid_amount, "Paid amount")
    _non_negative(discount_percent, "Discount percent")
    _non_negative(tax_percent, "Tax percent")

    touched = set()

    with transaction.atomic():
        bill_pk = _parse_uuid(bill_id)
        bill = Bill.objects.select_for_update().filter(pk=bill_pk).first() if bill_pk else None
        if bill is None:
            raise BillNotFoundError("Bill not found")

        if not Customer.objects.filter(pk=bill.customer_id).exists():
            raise ReferenceNotFoundError("Associated customer no longer exists.")

        previous_items = list(bill.items.all())
        old_due = Decimal(bill.due_amount)

        adjustments: dict = defaultdict(int)
        for item in previous_items:
            adjustments[item.product_id] += int(item.quantity)
        for line in lines:
            adjustments[line.product_id] -= line.quantity

        products = lock_products(adjustments.keys())
        _products_for(lines, products)

        for product_id in sorted(adjustments, key=str):
            delta = adjustments[product_id]
            if delta == 0:
                continue
            product = products.get(product_id)
            if product is None:
                raise ReferenceNotFoundError("One or more referenced products no longer exist.")
            adjust_product_quantity(product=product, delta=delta)
            touched.add(product_id)

        slots = [
            _PreviousSlot(
                product_id=item.product_id,
                batch_number=item.batch_number,
                unit_price=money(item.unit_price),
                remaining=int(item.quantity),
            )
            for item in previous_items
        ]
        claims: list = [None] * len(lines)
        for pinned in (True, False):
            for index, line in enumerate(lines):
                if bool(line.batch_number) == pinned:
                    claims[index] = _claim_previous(slots, line)

        # returned units first, so extra draws see the restored lots
        for slot in slots:
            if slot.remaining > 0:
                credit_batch(
                    product=products[slot.product_id],
                    quantity=slot.remaining,
                    batch_number=slot.batch_number,
                )

        resolved: list[ResolvedLine] = []
        for line, (kept, extra) in zip(lines, claims):
            product = products[line.product_id]
            parts = list(kept)
            if extra > 0:
                for allocation in take_from_batches(
                    product=product,
                    quantity=extra,
                    batch_number=line.batch_number,
                ):
                    parts.append((allocation.batch_number, allocation.quantity, money(allocation.unit_cost)))
            resolved.extend(_merge_parts(line, product, parts))

        financials = compute_bill_financials(
            line_totals=[line.line_total for line in resolved],
            discount_percent=bill.discount_percent if discount_percent in (None, "") else discount_percent,
            tax_percent=bill.tax_percent if tax_percent in (None, "") else tax_percent,
            paid_amount=bill.paid_amount if paid is None else paid,
            payment_status=payment_status or bill.payment_status,
        )

        for field, value in financials.as_model_fields().items():
            setattr(bill, field, value)
        bill.payment_method = normalize_payment_method(payment_method or bill.payment_method)
        if bill_date:
            bill.bill_date = bill_date
        if due_date:
            bill.due_date = due_date
        if notes is not None:
            bill.notes = notes.strip()
        bill.save()

        bill.items.all().delete()
        _write_items(bill, resolved)

        apply_outstanding_delta(customer_id=bill.customer_id, delta=bill.due_amount - old_due)

    logger.info(
        "Bill updated",
        extra={
            "bill_number": bill.bill_number,
            "customer_id": str(bill.customer_id),
            "due_amount": str(bill.due_amount),
            "due_delta": str(bill.due_amount - old_due),
        },
    )

    notify_products(touched)
    return bill


# ============================================================
# DELETE
# ============================================================

def delete_bill(*, bill_id, restore_stock: Optional[bool] = None) -> str:
    """
    Delete a bill and return its number.

    restore_stock=None follows settings.BILL_DELETE_RESTORES_STOCK.
    When restoring: each line goes back to its batch (newest batch if the
    line has none), product quantities rise, and the customer balance drops
    by the bill's due amount.
    """
    if restore_stock is None:
        restore_stock = bool(getattr(settings, "BILL_DELETE_RESTORES_STOCK", False))

    touched = set()

    with transaction.atomic():
        bill_pk = _parse_uuid(bill_id)
        bill = Bill.objects.select_for_update().filter(pk=bill_pk).first() if bill_pk else None
        if bill is None:
            raise BillNotFoundError("Bill not found")

        bill_number = bill.bill_number
        customer_id = bill.customer_id
        due_amount = Decimal(bill.due_amount)

        if restore_stock:
            items = list(bill.items.all())
            products = lock_products(item.product_id for item in items)

            returned: dict = defaultdict(int)
            for item in items:
                credit_batch(
                    product=products[item.product_id],
                    quantity=item.quantity,
                    batch_number=item.batch_number,
                )
                returned[item.product_id] += int(item.quantity)

            for product_id in sorted(returned, key=str):
                adjust_product_quantity(product=products[product_id], delta=returned[product_id])
                touched.add(product_id)

            if due_amount > 0:
                apply_outstanding_delta(customer_id=customer_id, delta=-due_amount)

        bill.delete()

    logger.info(
        "Bill deleted",
        extra={
            "bill_number": bill_number,
            "customer_id": str(customer_id),
            "restored_stock": restore_stock,
        },
    )

    notify_products(touched)
    return bill_number
