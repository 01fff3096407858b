# billing/filters.py

import django_filters

from billing.models import Bill


class BillFilter(django_filters.FilterSet):
    payment_status = django_filters.ChoiceFilter(choices=Bill.PAYMENT_STATUS_CHOICES)
    start_date = django_filters.DateFilter(field_name="bill_date", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="bill_date", lookup_expr="date__lte")
    customer = django_filters.UUIDFilter(field_name="customer_id")

    class Meta:
        model = Bill
        fields = ["payment_status", "start_date", "end_date", "customer"]
