# products/serializers/kardex.py

from rest_framework import serializers


class KardexEntrySerializer(serializers.Serializer):
    """Read-only view of MovementLedger.entries() rows."""

    date = serializers.DateTimeField()
    direction = serializers.CharField()
    reason = serializers.CharField()
    document_type = serializers.CharField()
    document_number = serializers.CharField()
    product_id = serializers.CharField()
    product_name = serializers.CharField()
    sku = serializers.CharField()
    batch_code = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=4)
    total = serializers.DecimalField(max_digits=18, decimal_places=2)
    counterparty = serializers.CharField()
    balance = serializers.IntegerField()


class KardexQuerySerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError("date_from must be on or before date_to")
        return attrs


class KardexReconcileQuerySerializer(serializers.Serializer):
    product_id = serializers.UUIDField()


class ValuationRowSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    sku = serializers.CharField()
    name = serializers.CharField()
    stock = serializers.IntegerField()
    average_cost = serializers.DecimalField(max_digits=14, decimal_places=4)
    value = serializers.DecimalField(max_digits=18, decimal_places=2)
    min_stock = serializers.IntegerField()
    below_min_stock = serializers.BooleanField()


class ValuationReportSerializer(serializers.Serializer):
    rows = ValuationRowSerializer(many=True)
    grand_total = serializers.DecimalField(max_digits=18, decimal_places=2)
