# billing/api/viewsets.py

"""
======================================================
PATH: billing/api/viewsets.py
======================================================
BILL VIEWSET (STAFF)

Routes:
- GET    /api/bills/                 list (filters: payment_status, start_date,
                                     end_date, customer; paginated)
- POST   /api/bills/                 create (FIFO allocation) -> 201
- GET    /api/bills/{id}/            retrieve
- PUT    /api/bills/{id}/            edit (stock reconciled by difference) -> 200
- DELETE /api/bills/{id}/            delete -> 200
- GET    /api/bills/stats/           dashboard counters
- GET    /api/bills/{id}/invoice/    print-ready payload

Security:
- billing.view / billing.create / billing.edit / billing.delete capabilities

Errors:
- Domain errors -> {"detail": message} with their status (400/404)
- Anything unexpected -> logged, 500 "Internal server error"
  (exception text only when DEBUG)
======================================================
"""

from __future__ import annotations

import logging

from django.conf import settings
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from billing.filters import BillFilter
from billing.models import Bill
from billing.serializers import (
    BillInvoiceSerializer,
    BillSerializer,
    BillStatsSerializer,
    BillWriteSerializer,
)
from billing.services.bill_service import (
    BillError,
    create_bill,
    delete_bill,
    update_bill,
)
from billing.services.stats import bill_stats
from permissions.roles import (
    CAP_BILLING_CREATE,
    CAP_BILLING_DELETE,
    CAP_BILLING_EDIT,
    CAP_BILLING_VIEW,
    HasCapability,
)
from products.services.stock_fifo import BatchNotFoundError, InsufficientStockError

logger = logging.getLogger(__name__)


ACTION_CAPABILITIES = {
    "list": CAP_BILLING_VIEW,
    "retrieve": CAP_BILLING_VIEW,
    "stats": CAP_BILLING_VIEW,
    "invoice": CAP_BILLING_VIEW,
    "create": CAP_BILLING_CREATE,
    "update": CAP_BILLING_EDIT,
    # PATCH is routed but rejected with 405 by http_method_names
    "partial_update": CAP_BILLING_EDIT,
    "destroy": CAP_BILLING_DELETE,
}


class BillViewSet(viewsets.ModelViewSet):
    serializer_class = BillSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = BillFilter
    http_method_names = ["get", "post", "put", "delete", "head", "options"]

    required_capability = None

    def get_permissions(self):
        # IMPORTANT: reset per request to avoid state leaking between actions
        self.required_capability = ACTION_CAPABILITIES.get(self.action)
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        return (
            Bill.objects.all()
            .select_related("created_by")
            .prefetch_related("items")
            .order_by("-created_at", "-bill_number")
        )

    # ======================================================
    # ERROR MAPPING
    # ======================================================

    def _error_response(self, exc: Exception) -> Response:
        if isinstance(exc, BillError):
            return Response({"detail": str(exc)}, status=exc.status_code)

        if isinstance(exc, (InsufficientStockError, BatchNotFoundError)):
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        logger.exception("Unexpected billing error", extra={"action": self.action})
        detail = str(exc) if settings.DEBUG else "Internal server error"
        return Response({"detail": detail}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    def _reload(self, bill: Bill) -> Bill:
        return self.get_queryset().get(pk=bill.pk)

    # ======================================================
    # WRITE
    # ======================================================

    @extend_schema(request=BillWriteSerializer, responses={201: BillSerializer})
    def create(self, request, *args, **kwargs):
        ser = BillWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            bill = create_bill(
                customer_id=ser.validated_data.get("customer_id"),
                created_by=request.user,
                **ser.service_kwargs(),
            )
        except Exception as exc:
            return self._error_response(exc)

        return Response(BillSerializer(self._reload(bill)).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=BillWriteSerializer, responses={200: BillSerializer})
    def update(self, request, *args, **kwargs):
        ser = BillWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            bill = update_bill(bill_id=kwargs.get(self.lookup_field), **ser.service_kwargs())
        except Exception as exc:
            return self._error_response(exc)

        return Response(BillSerializer(self._reload(bill)).data, status=status.HTTP_200_OK)

    @extend_schema(responses={200: OpenApiResponse(description="Bill deleted")})
    def destroy(self, request, *args, **kwargs):
        try:
            bill_number = delete_bill(bill_id=kwargs.get(self.lookup_field))
        except Exception as exc:
            return self._error_response(exc)

        return Response(
            {"detail": "Bill deleted successfully", "bill_number": bill_number},
            status=status.HTTP_200_OK,
        )

    # ======================================================
    # READ EXTRAS
    # ======================================================

    @extend_schema(responses={200: BillStatsSerializer})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        return Response(BillStatsSerializer(bill_stats()).data, status=status.HTTP_200_OK)

    @extend_schema(
        responses={200: BillInvoiceSerializer},
        description="Return a print-ready invoice payload for a bill.",
    )
    @action(detail=True, methods=["get"], url_path="invoice")
    def invoice(self, request, pk=None):
        bill: Bill = self.get_object()
        return Response(BillInvoiceSerializer(bill).data, status=status.HTTP_200_OK)
