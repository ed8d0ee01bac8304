# products/models/stock_movement.py

"""
CANONICAL INVENTORY LEDGER (KARDEX)

Immutable inventory ledger entry.

GUARANTEES:
- Append-only (no updates, no deletes)
- Direction validated against reason
- Quantity is always in BASE units
- Every BatchStore mutation writes exactly one row per touched batch
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .product import Product
from .stock_batch import StockBatch


class StockMovement(models.Model):
    class Direction(models.TextChoices):
        IN = "IN", "Stock In"
        OUT = "OUT", "Stock Out"

    class Reason(models.TextChoices):
        RECEIPT = "RECEIPT", "Purchase Receipt"
        SALE = "SALE", "Sale Dispatch"
        EDIT_REVERSAL = "EDIT_REVERSAL", "Sale Edit Reversal"
        RETURN = "RETURN", "Credit Note Return"
        VOID = "VOID", "Void Reinstatement"
        PURCHASE_REVERSAL = "PURCHASE_REVERSAL", "Purchase Reversal"
        ADJUSTMENT = "ADJUSTMENT", "Manual Adjustment"

    REASON_TO_DIRECTION = {
        Reason.RECEIPT: Direction.IN,
        Reason.SALE: Direction.OUT,
        Reason.EDIT_REVERSAL: Direction.IN,
        Reason.RETURN: Direction.IN,
        Reason.VOID: Direction.IN,
        Reason.PURCHASE_REVERSAL: Direction.OUT,
        Reason.ADJUSTMENT: None,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="stock_movements"
    )
    batch = models.ForeignKey(
        StockBatch, on_delete=models.PROTECT, related_name="stock_movements"
    )

    direction = models.CharField(max_length=3, choices=Direction.choices)
    reason = models.CharField(max_length=20, choices=Reason.choices)

    quantity = models.PositiveIntegerField()

    unit_cost_snapshot = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Batch cost per base unit at movement time.",
    )

    unit_price = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Document price per base unit (display only).",
    )

    # Originating document (sale, purchase, credit note...)
    document_type = models.CharField(max_length=32, blank=True, default="")
    document_id = models.UUIDField(null=True, blank=True)
    document_number = models.CharField(max_length=64, blank=True, default="")
    counterparty = models.CharField(max_length=255, blank=True, default="")

    note = models.CharField(max_length=255, blank=True, default="")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="movement_created_idx"),
            models.Index(fields=["reason"], name="movement_reason_idx"),
            models.Index(fields=["product", "created_at"], name="movement_product_created_idx"),
            models.Index(fields=["batch", "created_at"], name="movement_batch_created_idx"),
            models.Index(fields=["document_id", "created_at"], name="movement_document_idx"),
        ]

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError("quantity must be greater than zero")

        if self.batch_id and self.product_id:
            batch_product_id = (
                StockBatch.objects.filter(id=self.batch_id)
                .values_list("product_id", flat=True)
                .first()
            )
            if batch_product_id is not None and batch_product_id != self.product_id:
                raise ValidationError("Batch does not belong to product")

        expected = self.REASON_TO_DIRECTION.get(self.reason)
        if expected and self.direction != expected:
            raise ValidationError(f"{self.reason} requires direction={expected}")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    @property
    def signed_quantity(self) -> int:
        qty = int(self.quantity or 0)
        return qty if self.direction == self.Direction.IN else -qty

    @property
    def total(self) -> Decimal:
        price = self.unit_price if self.unit_price is not None else self.unit_cost_snapshot
        return Decimal(price or 0) * Decimal(int(self.quantity or 0))

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.reason} | {self.direction} {self.quantity}"
