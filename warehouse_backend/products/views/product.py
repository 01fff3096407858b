# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Read-only product listing for staff screens.
- FIFO lot preview: which batch a sale will draw from next.

Routes:
- GET /api/products/
- GET /api/products/{id}/
- GET /api/products/{id}/batches/          -> {"batches": [...], "count": n}
- GET /api/products/{id}/batches/oldest/   -> first FIFO batch or 404
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import CAP_INVENTORY_VIEW, HasCapability
from products.models import Product
from products.serializers import ProductSerializer, StockBatchSerializer
from products.services.stock_fifo import fifo_batches


class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_VIEW

    def get_queryset(self):
        qs = Product.objects.all().order_by("name")

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(name__icontains=q)

        return qs

    @extend_schema(
        responses={200: StockBatchSerializer(many=True)},
        description="Batches with stock on hand in FIFO order (oldest received first).",
    )
    @action(detail=True, methods=["get"], url_path="batches")
    def batches(self, request, pk=None):
        product = self.get_object()
        batches = list(fifo_batches(product).select_related("product"))
        data = StockBatchSerializer(batches, many=True).data
        return Response({"batches": data, "count": len(data)}, status=status.HTTP_200_OK)

    @extend_schema(
        responses={
            200: StockBatchSerializer,
            404: OpenApiResponse(description="No available batches found for this product"),
        },
        description="The batch the next FIFO sale of this product draws from.",
    )
    @action(detail=True, methods=["get"], url_path="batches/oldest")
    def oldest_batch(self, request, pk=None):
        product = self.get_object()
        batch = fifo_batches(product).select_related("product").first()
        if batch is None:
            return Response(
                {"detail": "No available batches found for this product"},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(StockBatchSerializer(batch).data, status=status.HTTP_200_OK)
