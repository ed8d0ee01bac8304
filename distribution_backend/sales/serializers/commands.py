# sales/serializers/commands.py

"""
Write-side payloads for the sales API (validated here, executed by services).
"""

from rest_framework import serializers

from products.services.units import UNIT_BASE, UNIT_CHOICES
from sales.models import Sale, SaleLine


class SaleLineInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    unit = serializers.ChoiceField(choices=UNIT_CHOICES, default=UNIT_BASE)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0, default=0)
    discount_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, default=0
    )
    kind = serializers.ChoiceField(choices=SaleLine.KINDS, default=SaleLine.KIND_REGULAR)
    promo_rule_id = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["kind"] == SaleLine.KIND_AUTO_PROMO and not attrs.get("promo_rule_id"):
            raise serializers.ValidationError({"promo_rule_id": "AUTO_PROMO lines must reference a promo rule"})
        if attrs["kind"] != SaleLine.KIND_AUTO_PROMO and attrs.get("promo_rule_id"):
            raise serializers.ValidationError({"promo_rule_id": "Only AUTO_PROMO lines carry a promo rule"})
        return attrs


class SaleCreateSerializer(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=Sale.DOCUMENT_TYPES, default=Sale.DOC_BOLETA)
    series = serializers.CharField(max_length=8)
    number = serializers.CharField(max_length=16)
    client_name = serializers.CharField(max_length=255)
    client_doc_number = serializers.CharField(max_length=11, required=False, allow_blank=True, default="")
    client_address = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHODS, default=Sale.PAYMENT_CONTADO)
    observation = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    lines = SaleLineInputSerializer(many=True)

    # Commit immediately (allocate stock in the same request)
    commit = serializers.BooleanField(required=False, default=True)

    def validate_lines(self, value):
        if not value:
            raise serializers.ValidationError("At least one line is required")
        return value

    def validate(self, attrs):
        doc = (attrs.get("client_doc_number") or "").strip()
        if attrs["document_type"] == Sale.DOC_FACTURA and not (len(doc) == 11 and doc.isdigit()):
            raise serializers.ValidationError({"client_doc_number": "A FACTURA requires an 11-digit RUC"})
        return attrs


class EditLineSerializer(serializers.Serializer):
    line_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit = serializers.ChoiceField(choices=UNIT_CHOICES, required=False)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0, required=False)
    discount_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )


class ReturnLineSerializer(serializers.Serializer):
    line_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit = serializers.ChoiceField(choices=UNIT_CHOICES, default=UNIT_BASE)


class CreditNoteInputSerializer(serializers.Serializer):
    series = serializers.CharField(max_length=8)
    number = serializers.CharField(max_length=16)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    lines = ReturnLineSerializer(many=True)

    def validate_lines(self, value):
        if not value:
            raise serializers.ValidationError("At least one line is required")
        seen = set()
        for row in value:
            if row["line_id"] in seen:
                raise serializers.ValidationError("Each line may appear only once")
            seen.add(row["line_id"])
        return value


class InvoiceOrderSerializer(serializers.Serializer):
    series = serializers.CharField(max_length=8)
    number = serializers.CharField(max_length=16)


class PickingRowSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    sku = serializers.CharField()
    name = serializers.CharField()
    unit_type = serializers.CharField()
    package_type = serializers.CharField()
    package_content = serializers.IntegerField()
    quantity_base = serializers.IntegerField()
    boxes = serializers.IntegerField()
    loose_units = serializers.IntegerField()
