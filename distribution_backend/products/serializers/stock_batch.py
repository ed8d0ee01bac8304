# products/serializers/stock_batch.py

"""
STOCK BATCH SERIALIZERS

- Batches are created by purchase receiving only; this surface is read-only.
- Manual adjustments go through BatchStore.adjust (signed delta, bounded).
"""

from __future__ import annotations

from rest_framework import serializers

from products.models import StockBatch


class StockBatchSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    sku = serializers.CharField(source="product.sku", read_only=True)
    purchase_document = serializers.SerializerMethodField()
    quantity_consumed = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockBatch
        fields = [
            "id",
            "product",
            "product_name",
            "sku",
            "code",
            "quantity_initial",
            "quantity_current",
            "quantity_consumed",
            "cost",
            "expiration_date",
            "purchase",
            "purchase_document",
            "created_at",
            "reversed_at",
        ]
        read_only_fields = fields

    def get_purchase_document(self, obj) -> str | None:
        purchase = getattr(obj, "purchase", None)
        if purchase is None:
            return None
        return f"{purchase.document_type} {purchase.document_number}"


class StockAdjustmentSerializer(serializers.Serializer):
    quantity_delta = serializers.IntegerField(
        help_text="Signed base units: +N returns stock to the batch, -N removes it."
    )
    note = serializers.CharField(max_length=255)

    def validate_quantity_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("quantity_delta cannot be 0")
        return value
