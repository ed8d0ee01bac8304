# purchases/api/views.py

"""
PURCHASES API

/api/purchases/suppliers/                      GET, POST
/api/purchases/purchases/                      GET, POST (optionally receive at once)
/api/purchases/purchases/<id>/                 GET
/api/purchases/purchases/<id>/receive/         POST
/api/purchases/purchases/<id>/edit/            POST  (reverse + replace items)
/api/purchases/purchases/<id>/void/            POST
/api/purchases/purchases/<id>/pay/             POST

All stock effects go through purchases.services.receiving_service.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.services.exceptions import InventoryError
from products.views.errors import inventory_error_response
from purchases.api.serializers import (
    PurchaseCreateSerializer,
    PurchaseEditSerializer,
    PurchaseSerializer,
    ReceivePurchaseSerializer,
    SupplierSerializer,
)
from purchases.models import Purchase, Supplier
from purchases.services.receiving_service import (
    PurchaseClosedError,
    PurchaseReceivingError,
    create_purchase,
    edit_purchase,
    mark_purchase_paid,
    receive_purchase,
    void_purchase,
)


def _purchases():
    return Purchase.objects.select_related("supplier").prefetch_related("items", "items__product", "items__batch")


def _items_payload(items):
    return [
        {
            "product_id": it["product_id"],
            "unit": it["unit"],
            "quantity": it["quantity"],
            "unit_price": it["unit_price"],
            "batch_code": it.get("batch_code", ""),
            "expiration_date": it["expiration_date"],
            "is_bonus": it.get("is_bonus", False),
        }
        for it in items
    ]


def _run(fn):
    """Execute a receiving-service call and map domain errors to responses."""
    try:
        return fn(), None
    except PurchaseClosedError as exc:
        return None, Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
    except InventoryError as exc:
        return None, inventory_error_response(exc)
    except (PurchaseReceivingError, DjangoValidationError) as exc:
        return None, Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


class SupplierListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = SupplierSerializer

    @extend_schema(tags=["purchases"], responses=SupplierSerializer(many=True))
    def get(self, request):
        qs = Supplier.objects.filter(is_active=True).order_by("name")
        return Response(SupplierSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["purchases"], request=SupplierSerializer, responses={201: SupplierSerializer})
    def post(self, request):
        s = SupplierSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        supplier = s.save()
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)


class PurchaseListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PurchaseSerializer

    @extend_schema(tags=["purchases"], responses=PurchaseSerializer(many=True))
    def get(self, request):
        qs = _purchases().order_by("-created_at")

        status_filter = (request.query_params.get("status") or "").strip().upper()
        if status_filter:
            qs = qs.filter(status=status_filter)

        supplier_id = (request.query_params.get("supplier") or "").strip()
        if supplier_id:
            qs = qs.filter(supplier_id=supplier_id)

        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(PurchaseSerializer(page, many=True).data)
        return Response(PurchaseSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["purchases"], request=PurchaseCreateSerializer, responses={201: PurchaseSerializer})
    def post(self, request):
        s = PurchaseCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        supplier = Supplier.objects.filter(id=data["supplier_id"], is_active=True).first()
        if supplier is None:
            return Response({"detail": "Supplier not found"}, status=status.HTTP_400_BAD_REQUEST)

        def _create():
            with transaction.atomic():
                purchase = create_purchase(
                    supplier=supplier,
                    document_type=data["document_type"],
                    document_number=data["document_number"],
                    items=_items_payload(data["items"]),
                    issue_date=data.get("issue_date"),
                    entry_date=data.get("entry_date"),
                    due_date=data.get("due_date"),
                    observation=data.get("observation", ""),
                    currency=data["currency"],
                    user=request.user,
                )
                if data["receive"]:
                    purchase = receive_purchase(purchase, user=request.user, paid=data["paid"])
                return purchase

        try:
            purchase, error = _run(_create)
        except IntegrityError:
            return Response(
                {"detail": "Document number already exists for this supplier"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if error is not None:
            return error

        return Response(PurchaseSerializer(_purchases().get(pk=purchase.pk)).data, status=status.HTTP_201_CREATED)


class PurchaseDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PurchaseSerializer

    @extend_schema(tags=["purchases"], responses=PurchaseSerializer)
    def get(self, request, purchase_id):
        purchase = get_object_or_404(_purchases(), pk=purchase_id)
        return Response(PurchaseSerializer(purchase).data, status=status.HTTP_200_OK)


class PurchaseReceiveView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ReceivePurchaseSerializer

    @extend_schema(tags=["purchases"], request=ReceivePurchaseSerializer, responses=PurchaseSerializer)
    def post(self, request, purchase_id):
        purchase = get_object_or_404(Purchase, pk=purchase_id)
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        result, error = _run(lambda: receive_purchase(purchase, user=request.user, paid=s.validated_data["paid"]))
        if error is not None:
            return error
        return Response(PurchaseSerializer(_purchases().get(pk=result.pk)).data, status=status.HTTP_200_OK)


class PurchaseEditView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PurchaseEditSerializer

    @extend_schema(tags=["purchases"], request=PurchaseEditSerializer, responses=PurchaseSerializer)
    def post(self, request, purchase_id):
        purchase = get_object_or_404(Purchase, pk=purchase_id)
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)

        result, error = _run(
            lambda: edit_purchase(purchase, _items_payload(s.validated_data["items"]), user=request.user)
        )
        if error is not None:
            return error
        return Response(PurchaseSerializer(_purchases().get(pk=result.pk)).data, status=status.HTTP_200_OK)


class PurchaseVoidView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], request=None, responses=PurchaseSerializer)
    def post(self, request, purchase_id):
        purchase = get_object_or_404(Purchase, pk=purchase_id)

        result, error = _run(lambda: void_purchase(purchase, user=request.user))
        if error is not None:
            return error
        return Response(PurchaseSerializer(_purchases().get(pk=result.pk)).data, status=status.HTTP_200_OK)


class PurchasePayView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["purchases"], request=None, responses=PurchaseSerializer)
    def post(self, request, purchase_id):
        purchase = get_object_or_404(Purchase, pk=purchase_id)

        result, error = _run(lambda: mark_purchase_paid(purchase, user=request.user))
        if error is not None:
            return error
        return Response(PurchaseSerializer(_purchases().get(pk=result.pk)).data, status=status.HTTP_200_OK)
