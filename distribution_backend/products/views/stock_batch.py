"""
======================================================
PATH: products/views/stock_batch.py
======================================================
STOCK BATCH VIEWSET

Purpose:
- Read batches (filterable by product / with_stock / expiry / purchase).
- Controlled manual adjustment through BatchStore.adjust (kardex ADJUSTMENT).

RULES:
- Batches are created by purchase receiving only (no POST here).
- quantity_current is never PATCH-able.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from products.filters import StockBatchFilter
from products.models import StockBatch, StockMovement
from products.serializers import StockAdjustmentSerializer, StockBatchSerializer
from products.services.batch_store import batch_store
from products.services.exceptions import InventoryError
from products.services.kardex import MovementContext
from products.views.errors import inventory_error_response

logger = logging.getLogger(__name__)


class StockBatchViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockBatchSerializer
    permission_classes = [IsAuthenticated]
    filterset_class = StockBatchFilter

    def get_permissions(self):
        if self.action == "adjust":
            return [IsAuthenticated(), IsAdminUser()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return StockBatch.objects.select_related("product", "purchase").order_by(
            "product__name", "expiration_date", "created_at"
        )

    @extend_schema(request=StockAdjustmentSerializer, responses={200: StockBatchSerializer})
    @action(detail=True, methods=["post"], url_path="adjust")
    def adjust(self, request, pk=None):
        """
        POST /api/products/stock-batches/<id>/adjust/
        { "quantity_delta": -3, "note": "broken bottles" }
        """
        batch = self.get_object()
        s = StockAdjustmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        context = MovementContext(
            reason=StockMovement.Reason.ADJUSTMENT,
            document_type="AJUSTE",
            note=s.validated_data["note"],
            user=request.user,
        )

        try:
            batch = batch_store.adjust(batch, s.validated_data["quantity_delta"], context=context)
        except InventoryError as exc:
            return inventory_error_response(exc)

        return Response(StockBatchSerializer(batch).data, status=status.HTTP_200_OK)
