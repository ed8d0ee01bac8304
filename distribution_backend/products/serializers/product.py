# products/serializers/product.py

"""
PRODUCT SERIALIZER

- Stock is derived from StockBatch only (single source of truth).
- package_content converts packages into base units; it must be >= 1.
"""

from rest_framework import serializers

from products.models import Product
from products.services.costing import cost_engine
from products.services.units import split_base_units


class ProductSerializer(serializers.ModelSerializer):
    """
    GUARANTEES:
    - Stock is aggregated from StockBatch (never stored on Product)
    - average_cost is the weighted average over remaining stock
    """

    total_stock = serializers.SerializerMethodField(read_only=True)
    stock_packages = serializers.SerializerMethodField(read_only=True)
    average_cost = serializers.SerializerMethodField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "unit_type",
            "package_type",
            "package_content",
            "last_cost",
            "min_stock",
            "total_stock",
            "stock_packages",
            "average_cost",
            "is_low_stock",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "last_cost",
            "total_stock",
            "stock_packages",
            "average_cost",
            "is_low_stock",
            "created_at",
            "updated_at",
        ]

    def validate_sku(self, value):
        value = (value or "").strip().upper()
        if not value:
            raise serializers.ValidationError("SKU is required")
        return value

    def validate_package_content(self, value):
        if value is None or int(value) < 1:
            raise serializers.ValidationError("package_content must be at least 1")
        return value

    def get_total_stock(self, obj) -> int:
        return int(obj.total_stock_db)

    def get_stock_packages(self, obj) -> dict:
        boxes, loose = split_base_units(obj.total_stock_db, obj.package_content)
        return {"boxes": boxes, "loose_units": loose}

    def get_average_cost(self, obj) -> str:
        return str(cost_engine.weighted_average_cost(obj))
