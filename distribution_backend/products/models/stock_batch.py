# products/models/stock_batch.py

"""
STOCK BATCH (RECEIPT-BASED INVENTORY)

Represents ONE stock-receiving event for ONE product.

CANONICAL MODEL:
- quantity_initial is immutable after creation (base units received)
- quantity_current is mutated ONLY via products.services.batch_store
- cost is the per-base-unit cost at receipt (immutable, may be 0 for bonus stock)
- 0 <= quantity_current <= quantity_initial, always
- Never deleted, even at zero (audit history)
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from .product import Product

NO_LOT_CODE = "SIN LOTE"


class StockBatch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="stock_batches",
    )

    # Back-reference enabling purchase reversal
    purchase = models.ForeignKey(
        "purchases.Purchase",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="batches",
    )

    code = models.CharField(
        max_length=128,
        default=NO_LOT_CODE,
        help_text="Lot label (user-entered or SIN LOTE)",
    )

    quantity_initial = models.PositiveIntegerField(
        help_text="Base units received (immutable)"
    )

    quantity_current = models.PositiveIntegerField(
        default=0,
        help_text="Base units remaining (service-managed only)",
    )

    cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Cost per base unit at receipt (immutable).",
    )

    expiration_date = models.DateField()

    created_at = models.DateTimeField(auto_now_add=True)

    # Audit marker set when a purchase reversal removes this batch's stock.
    reversed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["expiration_date", "created_at"]
        indexes = [
            models.Index(fields=["product", "expiration_date"], name="batch_product_expiry_idx"),
            models.Index(fields=["product", "created_at"], name="batch_product_created_idx"),
            models.Index(fields=["purchase"], name="batch_purchase_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_initial__gt=0),
                name="chk_stockbatch_qty_initial_gt_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_current__gte=0),
                name="chk_stockbatch_qty_current_gte_zero",
            ),
            models.CheckConstraint(
                condition=Q(quantity_current__lte=F("quantity_initial")),
                name="chk_stockbatch_current_lte_initial",
            ),
            models.CheckConstraint(
                condition=Q(cost__gte=Decimal("0")),
                name="chk_stockbatch_cost_gte_zero",
            ),
        ]

    # -------------------------------------------------
    # VALIDATION
    # -------------------------------------------------

    def clean(self):
        if self.quantity_initial is None or self.quantity_initial <= 0:
            raise ValidationError(
                {"quantity_initial": "quantity_initial must be greater than zero"}
            )

        if self.quantity_current < 0:
            raise ValidationError(
                {"quantity_current": "quantity_current cannot be negative"}
            )

        if self.quantity_current > self.quantity_initial:
            raise ValidationError(
                {"quantity_current": "quantity_current cannot exceed quantity_initial"}
            )

        if self.cost is None or self.cost < Decimal("0"):
            raise ValidationError({"cost": "cost cannot be negative"})

        if not self.expiration_date:
            raise ValidationError({"expiration_date": "expiration_date is required"})

    # -------------------------------------------------
    # IMMUTABILITY
    # -------------------------------------------------

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper() or NO_LOT_CODE

        if not self._state.adding:
            original = StockBatch.objects.only("quantity_initial", "cost", "product_id").get(pk=self.pk)

            if self.quantity_initial != original.quantity_initial:
                raise ValidationError({"quantity_initial": "quantity_initial is immutable"})

            if self.cost != original.cost:
                raise ValidationError({"cost": "cost is immutable"})

            if self.product_id != original.product_id:
                raise ValidationError({"product": "product is immutable"})

        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("StockBatch rows are kept for audit and cannot be deleted.")

    # -------------------------------------------------
    # READ-ONLY HELPERS
    # -------------------------------------------------

    @property
    def quantity_consumed(self) -> int:
        return int(self.quantity_initial or 0) - int(self.quantity_current or 0)

    @property
    def total_remaining_value(self) -> Decimal:
        return Decimal(self.cost or 0) * Decimal(int(self.quantity_current or 0))

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | Lot {self.code} | {self.quantity_current}/{self.quantity_initial}"
