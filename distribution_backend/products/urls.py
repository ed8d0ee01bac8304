# products/urls.py

"""
PRODUCTS URLS (/api/products/)

Explicit report routes are registered BEFORE router URLs.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import (
    KardexReconcileView,
    KardexView,
    ProductViewSet,
    StockBatchViewSet,
    ValuationView,
)

router = DefaultRouter()

router.register(r"products", ProductViewSet, basename="products")
router.register(r"stock-batches", StockBatchViewSet, basename="stock-batches")

urlpatterns = [
    path("kardex/", KardexView.as_view(), name="products-kardex"),
    path("kardex/reconcile/", KardexReconcileView.as_view(), name="products-kardex-reconcile"),
    path("valuation/", ValuationView.as_view(), name="products-valuation"),
    path("", include(router.urls)),
]
