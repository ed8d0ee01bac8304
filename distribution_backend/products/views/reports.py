# products/views/reports.py

"""
INVENTORY REPORTS (READ-ONLY)

GET /api/products/kardex/?product_id=&date_from=&date_to=
GET /api/products/valuation/
GET /api/products/kardex/reconcile/?product_id=
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.models import Product
from products.serializers import (
    KardexEntrySerializer,
    KardexQuerySerializer,
    KardexReconcileQuerySerializer,
    ValuationReportSerializer,
)
from products.services.costing import cost_engine
from products.services.kardex import ledger


class KardexView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = KardexEntrySerializer

    @extend_schema(
        parameters=[
            OpenApiParameter("product_id", str, required=False),
            OpenApiParameter("date_from", str, required=False),
            OpenApiParameter("date_to", str, required=False),
        ],
        responses=KardexEntrySerializer(many=True),
    )
    def get(self, request):
        q = KardexQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        params = q.validated_data

        entries = ledger.entries(
            product=params.get("product_id"),
            date_from=params.get("date_from"),
            date_to=params.get("date_to"),
        )

        return Response(
            {
                "count": len(entries),
                "results": KardexEntrySerializer(entries, many=True).data,
            },
            status=status.HTTP_200_OK,
        )


class KardexReconcileView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(parameters=[OpenApiParameter("product_id", str, required=True)])
    def get(self, request):
        q = KardexReconcileQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        product = Product.objects.filter(pk=q.validated_data["product_id"]).first()
        if product is None:
            return Response({"detail": "Product not found"}, status=status.HTTP_404_NOT_FOUND)

        rec = ledger.reconcile(product)
        return Response(
            {
                "product_id": rec.product_id,
                "consumed": rec.consumed,
                "net_out": rec.net_out,
                "balanced": rec.balanced,
            },
            status=status.HTTP_200_OK,
        )


class ValuationView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ValuationReportSerializer

    @extend_schema(responses=ValuationReportSerializer)
    def get(self, request):
        report = cost_engine.valuation_report()
        return Response(ValuationReportSerializer(report).data, status=status.HTTP_200_OK)
