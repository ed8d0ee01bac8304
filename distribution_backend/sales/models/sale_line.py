# sales/models/sale_line.py

"""
SALE LINE

One product line of a sale / order.

Notes:
- quantity_base = quantity_presentation * factor (base units; what stock sees)
- batch_allocations is the exact FEFO draw, stored as
  [{"batch_id", "batch_code", "quantity"}, ...] and reversed verbatim
- BONUS and AUTO_PROMO lines draw stock like any other line but are priced at 0
- quantity_returned tracks units already credited by credit notes
"""

from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models

from products.models import Product
from products.services.allocation import allocation_from_json
from products.services.reversal import outstanding_allocation
from products.services.units import UNIT_BASE, UNIT_CHOICES

from .sale import Sale

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
HUNDRED = Decimal("100")


class SaleLine(models.Model):
    KIND_REGULAR = "REGULAR"
    KIND_BONUS = "BONUS"
    KIND_AUTO_PROMO = "AUTO_PROMO"

    KINDS = [
        (KIND_REGULAR, "Regular"),
        (KIND_BONUS, "Bonus"),
        (KIND_AUTO_PROMO, "Automatic Promotion"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="sale_lines",
    )

    kind = models.CharField(max_length=12, choices=KINDS, default=KIND_REGULAR)
    promo_rule_id = models.CharField(max_length=64, blank=True, default="")

    unit = models.CharField(max_length=3, choices=UNIT_CHOICES, default=UNIT_BASE)
    quantity_presentation = models.PositiveIntegerField()
    factor = models.PositiveIntegerField(default=1)
    quantity_base = models.PositiveIntegerField()

    unit_price = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Price per presentation unit (IGV included).",
    )
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    cost_amount = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Cost of the batches drawn (snapshot at commit).",
    )

    quantity_returned = models.PositiveIntegerField(default=0)

    batch_allocations = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sale", "created_at"], name="sale_line_sale_idx"),
            models.Index(fields=["product", "created_at"], name="sale_line_product_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_presentation__gt=0),
                name="sale_line_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_returned__lte=models.F("quantity_base")),
                name="sale_line_returned_lte_base",
            ),
        ]

    def clean(self):
        if self.kind == self.KIND_AUTO_PROMO and not (self.promo_rule_id or "").strip():
            raise ValidationError({"promo_rule_id": "AUTO_PROMO lines must reference a promo rule"})

        if self.kind != self.KIND_AUTO_PROMO and (self.promo_rule_id or "").strip():
            raise ValidationError({"promo_rule_id": "Only AUTO_PROMO lines carry a promo rule"})

        if self.quantity_base != self.quantity_presentation * self.factor:
            raise ValidationError({"quantity_base": "quantity_base must equal quantity_presentation * factor"})

        if self.quantity_returned > self.quantity_base:
            raise ValidationError({"quantity_returned": "Cannot return more than was sold"})

        if not (Decimal("0") <= Decimal(self.discount_percent or 0) <= HUNDRED):
            raise ValidationError({"discount_percent": "discount_percent must be between 0 and 100"})

    def save(self, *args, **kwargs):
        self.total_price = self.compute_total()
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.product} x {self.quantity_presentation} {self.unit} ({self.kind})"

    # -------------------------------------------------
    # PRICING
    # -------------------------------------------------

    @property
    def is_free(self) -> bool:
        return self.kind in (self.KIND_BONUS, self.KIND_AUTO_PROMO)

    def compute_total(self) -> Decimal:
        if self.is_free:
            return Decimal("0.00")
        gross = Decimal(int(self.quantity_presentation or 0)) * Decimal(self.unit_price or 0)
        discount = Decimal(self.discount_percent or 0) / HUNDRED
        return (gross * (Decimal("1") - discount)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    @property
    def unit_price_base(self) -> Decimal:
        """Effective price per base unit, as shown in the kardex."""
        if self.is_free or not self.quantity_base:
            return Decimal("0.0000")
        return (Decimal(self.total_price) / Decimal(self.quantity_base)).quantize(
            FOURPLACES, rounding=ROUND_HALF_UP
        )

    # -------------------------------------------------
    # ALLOCATION
    # -------------------------------------------------

    def allocation(self):
        return allocation_from_json(self.batch_allocations)

    def returned_allocations(self) -> list:
        """Every batch entry already credited back by credit notes for this line."""
        entries = []
        for raw in self.credit_note_lines.values_list("batch_allocations", flat=True):
            entries.extend(allocation_from_json(raw))
        return entries

    def outstanding_allocation(self):
        return outstanding_allocation(self.allocation(), self.returned_allocations())

    @property
    def quantity_outstanding(self) -> int:
        return int(self.quantity_base or 0) - int(self.quantity_returned or 0)
