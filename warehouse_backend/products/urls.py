# products/urls.py

"""
PRODUCTS URLS

Registers product routes under /api/products/ including the FIFO lot
preview actions (/batches/, /batches/oldest/).
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from products.views import ProductViewSet

router = SimpleRouter()
router.register(r"products", ProductViewSet, basename="products")

urlpatterns = [
    path("", include(router.urls)),
]
