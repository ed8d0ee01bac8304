# purchases/api/urls.py

from django.urls import path

from purchases.api.views import (
    PurchaseDetailView,
    PurchaseEditView,
    PurchaseListCreateView,
    PurchasePayView,
    PurchaseReceiveView,
    PurchaseVoidView,
    SupplierListCreateView,
)

urlpatterns = [
    path("suppliers/", SupplierListCreateView.as_view(), name="purchase-suppliers"),
    path("purchases/", PurchaseListCreateView.as_view(), name="purchase-list"),
    path("purchases/<uuid:purchase_id>/", PurchaseDetailView.as_view(), name="purchase-detail"),
    path(
        "purchases/<uuid:purchase_id>/receive/",
        PurchaseReceiveView.as_view(),
        name="purchase-receive",
    ),
    path("purchases/<uuid:purchase_id>/edit/", PurchaseEditView.as_view(), name="purchase-edit"),
    path("purchases/<uuid:purchase_id>/void/", PurchaseVoidView.as_view(), name="purchase-void"),
    path("purchases/<uuid:purchase_id>/pay/", PurchasePayView.as_view(), name="purchase-pay"),
]
