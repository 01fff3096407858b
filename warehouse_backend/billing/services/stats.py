# billing/services/stats.py

from __future__ import annotations

from decimal import Decimal

from django.db.models import Sum
from django.utils import timezone

from billing.models import Bill


def bill_stats(*, now=None) -> dict:
    """
    Dashboard counters.

    today/monthly are based on bill_date in the current timezone;
    revenue counts fully paid bills only.
    """
    now = timezone.localtime(now or timezone.now())
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_month = start_of_day.replace(day=1)

    revenue = (
        Bill.objects.filter(payment_status=Bill.STATUS_PAID)
        .aggregate(total=Sum("total_amount"))
        .get("total")
    )

    return {
        "total_bills": Bill.objects.count(),
        "today_bills": Bill.objects.filter(bill_date__gte=start_of_day).count(),
        "monthly_bills": Bill.objects.filter(bill_date__gte=start_of_month).count(),
        "pending_payments": Bill.objects.filter(payment_status=Bill.STATUS_PENDING).count(),
        "total_revenue": revenue or Decimal("0.00"),
    }
