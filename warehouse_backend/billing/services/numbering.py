# billing/services/numbering.py

from __future__ import annotations

from django.conf import settings
from django.db import transaction

from billing.models import Bill, BillSequence


def format_bill_number(number: int) -> str:
    prefix = (getattr(settings, "BILL_NUMBER_PREFIX", "BILL") or "BILL").strip()
    return f"{prefix}-{int(number):06d}"


@transaction.atomic
def next_bill_number() -> str:
    """
    Allocate the next bill number from the locked sequence row.

    Must run inside the transaction that saves the bill: the number is
    only consumed when that transaction commits.
    """
    BillSequence.objects.get_or_create(pk=BillSequence.SINGLETON_PK)
    seq = BillSequence.objects.select_for_update().get(pk=BillSequence.SINGLETON_PK)

    number = seq.last_number + 1
    candidate = format_bill_number(number)
    # skip numbers already taken by imported/legacy bills
    while Bill.objects.filter(bill_number=candidate).exists():
        number += 1
        candidate = format_bill_number(number)

    seq.last_number = number
    seq.save(update_fields=["last_number", "updated_at"])
    return candidate
