# purchases/models.py

import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from products.models import Product, StockBatch
from products.services import document_lifecycle as lifecycle
from products.services.kardex import MovementContext
from products.services.units import UNIT_BASE, UNIT_CHOICES

TWOPLACES = Decimal("0.01")
IGV_RATE = Decimal("0.18")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


User = settings.AUTH_USER_MODEL


class Supplier(models.Model):
    """
    Supplier master.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    ruc = models.CharField(max_length=11, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="supplier_name_idx"),
            models.Index(fields=["ruc"], name="supplier_ruc_idx"),
        ]

    def __str__(self):
        return self.name


class Purchase(models.Model):
    """
    Supplier purchase document (FACTURA / GUIA) header.

    Stock effects are performed by purchases.services.receiving_service:
    - receive: one StockBatch per item + RECEIPT movement
    - edit:    reverse every batch, replace items, receive again
    - void:    reverse every batch (ReversalEngine.void_document)

    Once payment_status is PAID the document is closed to edits and voids.
    """

    DOC_FACTURA = "FACTURA"
    DOC_GUIA = "GUIA"

    DOCUMENT_TYPES = [
        (DOC_FACTURA, "Factura"),
        (DOC_GUIA, "Guia de Remision"),
    ]

    PAYMENT_PENDING = "PENDING"
    PAYMENT_PAID = "PAID"

    PAYMENT_STATUSES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
    ]

    CURRENCY_PEN = "PEN"
    CURRENCY_USD = "USD"

    CURRENCIES = [
        (CURRENCY_PEN, "Soles"),
        (CURRENCY_USD, "Dollars"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="purchases",
    )

    document_type = models.CharField(max_length=10, choices=DOCUMENT_TYPES, default=DOC_FACTURA)
    document_number = models.CharField(max_length=64)

    issue_date = models.DateField(default=timezone.localdate)
    entry_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)

    observation = models.CharField(max_length=255, blank=True, default="")

    currency = models.CharField(max_length=3, choices=CURRENCIES, default=CURRENCY_PEN)

    status = models.CharField(
        max_length=20,
        choices=lifecycle.STATUS_CHOICES,
        default=lifecycle.STATUS_DRAFT,
    )
    payment_status = models.CharField(
        max_length=10,
        choices=PAYMENT_STATUSES,
        default=PAYMENT_PENDING,
    )

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    igv = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    received_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["supplier", "document_type", "document_number"],
                name="uniq_supplier_purchase_document",
            ),
            models.CheckConstraint(
                condition=models.Q(total__gte=Decimal("0.00")),
                name="purchase_total_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="purchase_status_created_idx"),
            models.Index(fields=["supplier", "created_at"], name="purchase_supplier_idx"),
        ]

    def clean(self):
        if not (self.document_number or "").strip():
            raise ValidationError({"document_number": "document_number is required"})

        if self.total is not None and self.total < Decimal("0.00"):
            raise ValidationError({"total": "total cannot be negative"})

    def save(self, *args, **kwargs):
        self.document_number = (self.document_number or "").strip().upper()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.document_type} {self.document_number} ({self.supplier.name})"

    # -------------------------------------------------
    # DERIVED
    # -------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self.payment_status == self.PAYMENT_PAID

    def recalculate_totals(self):
        """Totals are IGV-inclusive; bonus items do not add to the amount."""
        total = sum(
            (_money(i.total_cost) for i in self.items.all() if not i.is_bonus),
            Decimal("0.00"),
        )
        subtotal = _money(total / (Decimal("1") + IGV_RATE))
        self.total = _money(total)
        self.subtotal = subtotal
        self.igv = _money(total - subtotal)

    # -------------------------------------------------
    # STOCK DOCUMENT PROTOCOL
    # -------------------------------------------------

    def outstanding_allocations(self):
        return []

    def received_batches(self):
        return list(
            StockBatch.objects.filter(purchase=self, reversed_at__isnull=True).order_by("created_at")
        )

    def movement_context(self, reason: str) -> MovementContext:
        return MovementContext(
            reason=reason,
            document_type=f"COMPRA {self.document_type}",
            document_id=self.id,
            document_number=self.document_number,
            counterparty=self.supplier.name,
        )

    def product_ids(self):
        return [str(pid) for pid in self.items.values_list("product_id", flat=True).distinct()]


class PurchaseItem(models.Model):
    """
    Purchase line.

    unit_price is the gross (IGV-included) price per PRESENTATION unit.
    quantity_base = quantity_presentation * factor, derived by the service.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase = models.ForeignKey(
        Purchase,
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="purchase_items",
    )

    unit = models.CharField(max_length=3, choices=UNIT_CHOICES, default=UNIT_BASE)
    quantity_presentation = models.PositiveIntegerField()
    factor = models.PositiveIntegerField(default=1)
    quantity_base = models.PositiveIntegerField()

    unit_price = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0.0000"))
    total_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    batch_code = models.CharField(max_length=128, blank=True, default="")
    expiration_date = models.DateField()

    is_bonus = models.BooleanField(default=False)

    # Set on receipt
    batch = models.ForeignKey(
        StockBatch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_items",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_presentation__gt=0),
                name="purchase_item_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=Decimal("0")),
                name="purchase_item_unit_price_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["purchase", "created_at"], name="purchase_item_purchase_idx"),
            models.Index(fields=["product", "created_at"], name="purchase_item_product_idx"),
        ]

    def clean(self):
        if self.unit_price is not None and self.unit_price < Decimal("0"):
            raise ValidationError({"unit_price": "unit_price cannot be negative"})

        if self.expiration_date is None:
            raise ValidationError({"expiration_date": "expiration_date is required"})

        if self.quantity_base != self.quantity_presentation * self.factor:
            raise ValidationError({"quantity_base": "quantity_base must equal quantity_presentation * factor"})

    def save(self, *args, **kwargs):
        self.batch_code = (self.batch_code or "").strip().upper()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} x {self.quantity_presentation} {self.unit}"
