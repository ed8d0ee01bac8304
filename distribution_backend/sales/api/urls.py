# sales/api/urls.py

"""
SALES API URLS

Rules:
- Explicit non-PK routes (like "picking") MUST be registered BEFORE router URLs.

Provides:
    /api/sales/sales/                          list, create
    /api/sales/sales/<uuid>/                   retrieve
    /api/sales/sales/<uuid>/commit/            POST
    /api/sales/sales/<uuid>/edit-line/         POST
    /api/sales/sales/<uuid>/void/              POST
    /api/sales/sales/<uuid>/credit-notes/      POST
    /api/sales/sales/<uuid>/invoice/           POST (PEDIDO -> FACTURA/BOLETA)
    /api/sales/picking/?sale_ids=...           GET
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.picking import PickingListView
from sales.api.viewsets.sale import SaleViewSet

router = DefaultRouter()
router.register(r"sales", SaleViewSet, basename="sales")

urlpatterns = [
    path("picking/", PickingListView.as_view(), name="sales-picking"),
    path("", include(router.urls)),
]
