# customers/services/balance.py

"""
CUSTOMER OUTSTANDING BALANCE

- Deltas are applied with a single UPDATE ... SET balance = balance + delta,
  so concurrent bills for the same customer never overwrite each other.
- A delta that hits no row is a torn write: the caller's transaction must
  roll back (CustomerBalanceError is never swallowed).
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import F

from customers.models import Customer

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


class CustomerBalanceError(Exception):
    pass


def apply_outstanding_delta(*, customer_id, delta) -> Decimal:
    """
    Add `delta` (may be negative) to the customer's outstanding balance.
    Returns the applied delta.
    """
    amount = Decimal(str(delta or 0)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    if amount == Decimal("0.00"):
        if not Customer.objects.filter(pk=customer_id).exists():
            raise CustomerBalanceError(f"Customer not found for balance update: {customer_id}")
        return amount

    updated = Customer.objects.filter(pk=customer_id).update(
        outstanding_balance=F("outstanding_balance") + amount
    )
    if updated != 1:
        raise CustomerBalanceError(f"Customer not found for balance update: {customer_id}")

    logger.info(
        "Customer outstanding balance adjusted",
        extra={"customer_id": str(customer_id), "delta": str(amount)},
    )
    return amount
