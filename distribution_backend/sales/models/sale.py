# sales/models/sale.py

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from products.services import document_lifecycle as lifecycle
from products.services.kardex import MovementContext

User = settings.AUTH_USER_MODEL

TWOPLACES = Decimal("0.01")
IGV_RATE = Decimal("0.18")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class Sale(models.Model):
    """
    A sale document (FACTURA / BOLETA) or a customer order (PEDIDO).

    GUARANTEES:
    - Stock is drawn ONLY through AllocationEngine when the document commits
    - Each line stores the exact allocation it drew, for exact reversal
    - Status moves only along products.services.document_lifecycle
    - Totals are IGV-inclusive (subtotal + igv == total)

    A PEDIDO already holds stock once committed; invoicing it turns the same
    document into a FACTURA/BOLETA without touching stock again.
    """

    DOC_FACTURA = "FACTURA"
    DOC_BOLETA = "BOLETA"
    DOC_PEDIDO = "PEDIDO"

    DOCUMENT_TYPES = [
        (DOC_FACTURA, "Factura"),
        (DOC_BOLETA, "Boleta"),
        (DOC_PEDIDO, "Pedido"),
    ]

    PAYMENT_CONTADO = "CONTADO"
    PAYMENT_CREDITO = "CREDITO"

    PAYMENT_METHODS = [
        (PAYMENT_CONTADO, "Contado"),
        (PAYMENT_CREDITO, "Credito"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    document_type = models.CharField(max_length=10, choices=DOCUMENT_TYPES, default=DOC_BOLETA)
    series = models.CharField(max_length=8)
    number = models.CharField(max_length=16)

    # Original PEDIDO reference once an order is invoiced
    order_reference = models.CharField(max_length=32, blank=True, default="")

    client_name = models.CharField(max_length=255)
    client_doc_number = models.CharField(
        max_length=11,
        blank=True,
        default="",
        help_text="RUC (11 digits) or DNI (8 digits)",
    )
    client_address = models.CharField(max_length=255, blank=True, default="")

    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHODS, default=PAYMENT_CONTADO)

    status = models.CharField(
        max_length=20,
        choices=lifecycle.STATUS_CHOICES,
        default=lifecycle.STATUS_DRAFT,
    )

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    igv = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    cost_amount = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text="Cost of goods drawn by this document (from stored allocations).",
    )

    observation = models.CharField(max_length=255, blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    committed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["document_type", "series", "number"],
                name="uniq_sale_document_series_number",
            ),
        ]
        indexes = [
            models.Index(fields=["created_at"], name="sale_created_idx"),
            models.Index(fields=["status"], name="sale_status_idx"),
            models.Index(fields=["document_type", "series", "number"], name="sale_document_idx"),
        ]

    def clean(self):
        if not (self.series or "").strip() or not (self.number or "").strip():
            raise ValidationError("series and number are required")

        if not (self.client_name or "").strip():
            raise ValidationError({"client_name": "client_name is required"})

        doc = (self.client_doc_number or "").strip()
        if self.document_type == self.DOC_FACTURA and len(doc) != 11:
            raise ValidationError({"client_doc_number": "A FACTURA requires an 11-digit RUC"})

    def save(self, *args, **kwargs):
        self.series = (self.series or "").strip().upper()
        self.number = (self.number or "").strip()
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.document_type} {self.document_label} | {self.total}"

    # -------------------------------------------------
    # DERIVED
    # -------------------------------------------------

    @property
    def document_label(self) -> str:
        return f"{self.series}-{self.number}"

    @property
    def is_order(self) -> bool:
        return self.document_type == self.DOC_PEDIDO

    def recalculate_totals(self):
        lines = list(self.lines.all())
        total = sum((_money(line.total_price) for line in lines), Decimal("0.00"))
        subtotal = _money(total / (Decimal("1") + IGV_RATE))
        self.total = _money(total)
        self.subtotal = subtotal
        self.igv = _money(total - subtotal)
        self.cost_amount = sum((Decimal(line.cost_amount or 0) for line in lines), Decimal("0"))

    # -------------------------------------------------
    # STOCK DOCUMENT PROTOCOL
    # -------------------------------------------------

    def outstanding_allocations(self):
        return [line.outstanding_allocation() for line in self.lines.all()]

    def received_batches(self):
        return []

    def movement_context(self, reason: str, *, unit_price=None) -> MovementContext:
        return MovementContext(
            reason=reason,
            document_type=self.document_type,
            document_id=self.id,
            document_number=self.document_label,
            counterparty=self.client_name,
            unit_price=unit_price,
        )

    def product_ids(self):
        return [str(pid) for pid in self.lines.values_list("product_id", flat=True).distinct()]
