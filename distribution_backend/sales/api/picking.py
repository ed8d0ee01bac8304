# sales/api/picking.py

"""
DISPATCH PICKING LIST (READ-ONLY)

GET /api/sales/picking/?sale_ids=<uuid>,<uuid>,...
"""

import uuid

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from sales.serializers import PickingRowSerializer
from sales.services.picking import build_picking_list


class PickingListView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PickingRowSerializer

    @extend_schema(
        parameters=[OpenApiParameter("sale_ids", str, required=True, description="Comma-separated sale ids")],
        responses=PickingRowSerializer(many=True),
    )
    def get(self, request):
        raw = (request.query_params.get("sale_ids") or "").strip()
        if not raw:
            return Response({"detail": "sale_ids is required"}, status=status.HTTP_400_BAD_REQUEST)

        sale_ids = []
        for value in raw.split(","):
            value = value.strip()
            if not value:
                continue
            try:
                sale_ids.append(uuid.UUID(value))
            except ValueError:
                return Response({"detail": f"Invalid sale id: {value}"}, status=status.HTTP_400_BAD_REQUEST)

        rows = build_picking_list(sale_ids)
        return Response(
            {
                "documents": len(sale_ids),
                "results": PickingRowSerializer(rows, many=True).data,
            },
            status=status.HTTP_200_OK,
        )
