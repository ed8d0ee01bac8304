# sales/serializers/sale.py

from rest_framework import serializers

from sales.models import CreditNote, CreditNoteLine, Sale, SaleLine


class SaleLineSerializer(serializers.ModelSerializer):
    """
    Sale line (read-only).
    batch_allocations is the exact FEFO draw the line holds.
    """

    product_name = serializers.CharField(source="product.name", read_only=True)
    sku = serializers.CharField(source="product.sku", read_only=True)
    quantity_outstanding = serializers.IntegerField(read_only=True)

    class Meta:
        model = SaleLine
        fields = [
            "id",
            "product",
            "product_name",
            "sku",
            "kind",
            "promo_rule_id",
            "unit",
            "quantity_presentation",
            "factor",
            "quantity_base",
            "unit_price",
            "discount_percent",
            "total_price",
            "cost_amount",
            "quantity_returned",
            "quantity_outstanding",
            "batch_allocations",
        ]
        read_only_fields = fields


class CreditNoteLineSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="sale_line.product.name", read_only=True)

    class Meta:
        model = CreditNoteLine
        fields = [
            "id",
            "sale_line",
            "product_name",
            "quantity_base",
            "refund_amount",
            "batch_allocations",
            "created_at",
        ]
        read_only_fields = fields


class CreditNoteSerializer(serializers.ModelSerializer):
    document_label = serializers.CharField(read_only=True)
    lines = CreditNoteLineSerializer(many=True, read_only=True)

    class Meta:
        model = CreditNote
        fields = [
            "id",
            "sale",
            "series",
            "number",
            "document_label",
            "reason",
            "total",
            "created_by",
            "created_at",
            "lines",
        ]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    """
    Canonical sale / order payload (history, detail, print).
    """

    document_label = serializers.CharField(read_only=True)
    lines = SaleLineSerializer(many=True, read_only=True)
    credit_notes = CreditNoteSerializer(many=True, read_only=True)
    created_by_username = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            "id",
            "document_type",
            "series",
            "number",
            "document_label",
            "order_reference",
            "client_name",
            "client_doc_number",
            "client_address",
            "payment_method",
            "status",
            "subtotal",
            "igv",
            "total",
            "cost_amount",
            "observation",
            "created_by",
            "created_by_username",
            "created_at",
            "committed_at",
            "lines",
            "credit_notes",
        ]
        read_only_fields = fields

    def get_created_by_username(self, obj):
        user = getattr(obj, "created_by", None)
        return getattr(user, "username", None)
