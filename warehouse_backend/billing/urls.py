# billing/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from billing.api.viewsets import BillViewSet

router = SimpleRouter()
router.register(r"bills", BillViewSet, basename="bills")

urlpatterns = [
    path("", include(router.urls)),
]
