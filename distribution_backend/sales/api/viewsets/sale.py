# sales/api/viewsets/sale.py

"""
======================================================
PATH: sales/api/viewsets/sale.py
======================================================
SALE VIEWSET (STAFF)

Purpose:
- Sales / orders history (list + retrieve, basic filters).
- Create (optionally committing in the same request).
- Document actions: commit, edit-line, void, credit-notes, invoice.

Error mapping:
- invalid payload / document rule          -> 400
- stock conflict / lifecycle conflict      -> 409 (see products.views.errors)
======================================================
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from products.services.exceptions import InventoryError
from products.views.errors import inventory_error_response
from sales.models import Sale
from sales.serializers import (
    CreditNoteInputSerializer,
    CreditNoteSerializer,
    EditLineSerializer,
    InvoiceOrderSerializer,
    SaleCreateSerializer,
    SaleSerializer,
)
from sales.services.credit_note_service import CreditNoteError, issue_credit_note
from sales.services.sale_service import (
    SaleServiceError,
    commit_sale,
    create_sale,
    edit_sale_line,
    invoice_order,
    void_sale,
)

logger = logging.getLogger(__name__)


def _run(fn):
    """Execute a sales-service call and map domain errors to responses."""
    try:
        return fn(), None
    except InventoryError as exc:
        return None, inventory_error_response(exc)
    except (SaleServiceError, CreditNoteError, DjangoValidationError) as exc:
        return None, Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except IntegrityError:
        return None, Response(
            {"detail": "Document series/number already exists"},
            status=status.HTTP_400_BAD_REQUEST,
        )


class SaleViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = SaleSerializer
    permission_classes = [IsAuthenticated]

    # ======================================================
    # QUERYSET
    # ======================================================

    def get_queryset(self):
        qs = (
            Sale.objects.all()
            .select_related("created_by")
            .prefetch_related("lines", "lines__product", "credit_notes", "credit_notes__lines")
            .order_by("-created_at")
        )

        params = self.request.query_params

        status_val = (params.get("status") or "").strip().upper()
        if status_val:
            qs = qs.filter(status=status_val)

        document_type = (params.get("document_type") or "").strip().upper()
        if document_type:
            qs = qs.filter(document_type=document_type)

        q = (params.get("q") or "").strip()
        if q:
            qs = qs.filter(
                Q(number__icontains=q)
                | Q(client_name__icontains=q)
                | Q(client_doc_number__icontains=q)
                | Q(order_reference__icontains=q)
            )

        date_from = (params.get("date_from") or "").strip()
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)

        date_to = (params.get("date_to") or "").strip()
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)

        return qs

    def _fresh(self, sale):
        return Response(SaleSerializer(self.get_queryset().get(pk=sale.pk)).data)

    # ======================================================
    # CREATE (+ optional commit)
    # POST /api/sales/sales/
    # ======================================================

    @extend_schema(request=SaleCreateSerializer, responses={201: SaleSerializer})
    def create(self, request):
        ser = SaleCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)

        commit = data.pop("commit")
        lines = [
            {
                "product_id": row["product_id"],
                "unit": row["unit"],
                "quantity": row["quantity"],
                "unit_price": row["unit_price"],
                "discount_percent": row["discount_percent"],
                "kind": row["kind"],
                "promo_rule_id": row.get("promo_rule_id", ""),
            }
            for row in data.pop("lines")
        ]

        def _create():
            with transaction.atomic():
                sale = create_sale(lines=lines, user=request.user, **data)
                if commit:
                    sale = commit_sale(sale, user=request.user)
                return sale

        sale, error = _run(_create)
        if error is not None:
            return error

        return Response(
            SaleSerializer(self.get_queryset().get(pk=sale.pk)).data,
            status=status.HTTP_201_CREATED,
        )

    # ======================================================
    # DOCUMENT ACTIONS
    # ======================================================

    @extend_schema(request=None, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="commit")
    def commit(self, request, pk=None):
        sale = self.get_object()
        result, error = _run(lambda: commit_sale(sale, user=request.user))
        if error is not None:
            return error
        return self._fresh(result)

    @extend_schema(request=EditLineSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="edit-line")
    def edit_line(self, request, pk=None):
        sale = self.get_object()

        ser = EditLineSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        line = sale.lines.filter(pk=data["line_id"]).first()
        if line is None:
            return Response(
                {"detail": "Line does not belong to this sale."},
                status=status.HTTP_404_NOT_FOUND,
            )

        _, error = _run(
            lambda: edit_sale_line(
                line,
                quantity=data["quantity"],
                unit=data.get("unit"),
                unit_price=data.get("unit_price"),
                discount_percent=data.get("discount_percent"),
                user=request.user,
            )
        )
        if error is not None:
            return error
        return self._fresh(sale)

    @extend_schema(request=None, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="void")
    def void(self, request, pk=None):
        sale = self.get_object()
        result, error = _run(lambda: void_sale(sale, user=request.user))
        if error is not None:
            return error
        return self._fresh(result)

    @extend_schema(request=CreditNoteInputSerializer, responses={201: CreditNoteSerializer})
    @action(detail=True, methods=["post"], url_path="credit-notes")
    def credit_notes(self, request, pk=None):
        sale = self.get_object()

        ser = CreditNoteInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        returns = {
            str(row["line_id"]): {"quantity": row["quantity"], "unit": row["unit"]}
            for row in data["lines"]
        }

        credit_note, error = _run(
            lambda: issue_credit_note(
                sale,
                returns,
                series=data["series"],
                number=data["number"],
                reason=data.get("reason", ""),
                user=request.user,
            )
        )
        if error is not None:
            return error

        return Response(CreditNoteSerializer(credit_note).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=InvoiceOrderSerializer, responses={200: SaleSerializer})
    @action(detail=True, methods=["post"], url_path="invoice")
    def invoice(self, request, pk=None):
        order = self.get_object()

        ser = InvoiceOrderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result, error = _run(
            lambda: invoice_order(
                order,
                series=ser.validated_data["series"],
                number=ser.validated_data["number"],
                user=request.user,
            )
        )
        if error is not None:
            return error
        return self._fresh(result)
