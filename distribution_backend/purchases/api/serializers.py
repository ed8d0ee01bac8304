# purchases/api/serializers.py

from rest_framework import serializers

from products.services.units import UNIT_BASE, UNIT_CHOICES
from purchases.models import Purchase, PurchaseItem, Supplier


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = "__all__"
        read_only_fields = ("id", "created_at")


class PurchaseItemCreateSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    unit = serializers.ChoiceField(choices=UNIT_CHOICES, default=UNIT_BASE)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=0)
    batch_code = serializers.CharField(required=False, allow_blank=True, default="")
    expiration_date = serializers.DateField()
    is_bonus = serializers.BooleanField(required=False, default=False)


class PurchaseCreateSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    document_type = serializers.ChoiceField(choices=Purchase.DOCUMENT_TYPES, default=Purchase.DOC_FACTURA)
    document_number = serializers.CharField(max_length=64)
    issue_date = serializers.DateField(required=False)
    entry_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    observation = serializers.CharField(required=False, allow_blank=True, default="")
    currency = serializers.ChoiceField(choices=Purchase.CURRENCIES, default=Purchase.CURRENCY_PEN)
    items = PurchaseItemCreateSerializer(many=True)

    # Receive immediately (one call: create + stock in)
    receive = serializers.BooleanField(required=False, default=False)
    paid = serializers.BooleanField(required=False, default=False)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value


class PurchaseEditSerializer(serializers.Serializer):
    items = PurchaseItemCreateSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value


class ReceivePurchaseSerializer(serializers.Serializer):
    paid = serializers.BooleanField(required=False, default=False)


class PurchaseItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    batch_id = serializers.UUIDField(source="batch.id", read_only=True, allow_null=True)

    class Meta:
        model = PurchaseItem
        fields = [
            "id",
            "product",
            "product_name",
            "unit",
            "quantity_presentation",
            "factor",
            "quantity_base",
            "unit_price",
            "total_cost",
            "batch_code",
            "expiration_date",
            "is_bonus",
            "batch_id",
        ]
        read_only_fields = fields


class PurchaseSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    items = PurchaseItemSerializer(many=True, read_only=True)

    class Meta:
        model = Purchase
        fields = [
            "id",
            "supplier",
            "supplier_name",
            "document_type",
            "document_number",
            "issue_date",
            "entry_date",
            "due_date",
            "observation",
            "currency",
            "status",
            "payment_status",
            "subtotal",
            "igv",
            "total",
            "received_at",
            "created_at",
            "items",
        ]
        read_only_fields = fields
