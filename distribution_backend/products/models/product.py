# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Sum


class Product(models.Model):
    """
    Represents a stock-keeping product (master data).

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Stock lives in StockBatch, always in BASE units
    - package_content converts one package (e.g. a case) into base units

    The inventory engine only reads a product, except for last_cost which
    purchase receiving refreshes for non-bonus lines.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    # Presentation / units
    unit_type = models.CharField(
        max_length=32,
        default="UND",
        help_text="Base unit label, e.g. BOTELLA",
    )
    package_type = models.CharField(
        max_length=32,
        blank=True,
        default="",
        help_text="Package label, e.g. CAJA",
    )
    package_content = models.PositiveIntegerField(
        default=1,
        help_text="Base units per package (conversion factor)",
    )

    last_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Most recent gross purchase cost per base unit.",
    )

    min_stock = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["sku"], name="product_sku_idx"),
            models.Index(fields=["name"], name="product_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(package_content__gte=1),
                name="chk_product_package_content_gte_one",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if not self.package_content or int(self.package_content) < 1:
            raise ValidationError({"package_content": "package_content must be at least 1"})

        if self.last_cost is not None and Decimal(self.last_cost) < Decimal("0"):
            raise ValidationError({"last_cost": "last_cost cannot be negative"})

    @property
    def total_stock_db(self) -> int:
        """Sum of quantity_current across every batch (base units)."""
        return (
            self.stock_batches.aggregate(total=Sum("quantity_current")).get("total")
            or 0
        )

    @property
    def is_low_stock(self) -> bool:
        return self.total_stock_db <= int(self.min_stock or 0)
