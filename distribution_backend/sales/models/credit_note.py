# sales/models/credit_note.py

"""
CREDIT NOTE (PARTIAL RETURN)

Header + lines for goods coming back from a committed sale.

GUARANTEES:
- Append-only once issued
- Each line stores the exact batch entries it credited back, so later
  returns and voids only touch what is still outstanding
- refund_amount is proportional to the original line price
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .sale import Sale
from .sale_line import SaleLine

User = settings.AUTH_USER_MODEL


class CreditNote(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.PROTECT,
        related_name="credit_notes",
    )

    series = models.CharField(max_length=8)
    number = models.CharField(max_length=16)

    reason = models.CharField(max_length=255, blank=True, default="")

    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="credit_notes_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["series", "number"],
                name="uniq_credit_note_series_number",
            ),
        ]
        indexes = [
            models.Index(fields=["sale", "created_at"], name="credit_note_sale_idx"),
        ]

    @property
    def document_label(self) -> str:
        return f"{self.series}-{self.number}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            previous = CreditNote.objects.get(pk=self.pk)
            if previous.sale_id != self.sale_id or previous.document_label != self.document_label:
                raise ValidationError("Credit notes are immutable once issued")

        self.series = (self.series or "").strip().upper()
        self.number = (self.number or "").strip()
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"NC {self.document_label} -> {self.sale.document_label} | {self.total}"


class CreditNoteLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    credit_note = models.ForeignKey(
        CreditNote,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    sale_line = models.ForeignKey(
        SaleLine,
        on_delete=models.PROTECT,
        related_name="credit_note_lines",
    )

    quantity_base = models.PositiveIntegerField()
    refund_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    batch_allocations = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_base__gt=0),
                name="credit_note_line_quantity_gt_zero",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Credit note lines are immutable")
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Credit note lines are immutable")

    def __str__(self):
        return f"{self.sale_line.product} x {self.quantity_base} | {self.refund_amount}"
