"""
======================================================
PATH: sales/migrations/0001_initial.py
======================================================
MIGRATION: SALES, ORDERS AND CREDIT NOTES

Creates Sale, SaleLine, CreditNote and CreditNoteLine.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    ("DRAFT", "Draft"),
    ("COMMITTED", "Committed"),
    ("EDITED", "Edited"),
    ("VOIDED", "Voided"),
    ("PARTIALLY_RETURNED", "Partially Returned"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "document_type",
                    models.CharField(
                        choices=[("FACTURA", "Factura"), ("BOLETA", "Boleta"), ("PEDIDO", "Pedido")],
                        default="BOLETA",
                        max_length=10,
                    ),
                ),
                ("series", models.CharField(max_length=8)),
                ("number", models.CharField(max_length=16)),
                ("order_reference", models.CharField(blank=True, default="", max_length=32)),
                ("client_name", models.CharField(max_length=255)),
                (
                    "client_doc_number",
                    models.CharField(blank=True, default="", help_text="RUC (11 digits) or DNI (8 digits)", max_length=11),
                ),
                ("client_address", models.CharField(blank=True, default="", max_length=255)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("CONTADO", "Contado"), ("CREDITO", "Credito")],
                        default="CONTADO",
                        max_length=10,
                    ),
                ),
                ("status", models.CharField(choices=STATUS_CHOICES, default="DRAFT", max_length=20)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("igv", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                (
                    "cost_amount",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Cost of goods drawn by this document (from stored allocations).",
                        max_digits=14,
                    ),
                ),
                ("observation", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("committed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="sale_created_idx"),
                    models.Index(fields=["status"], name="sale_status_idx"),
                    models.Index(fields=["document_type", "series", "number"], name="sale_document_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["document_type", "series", "number"],
                        name="uniq_sale_document_series_number",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleLine",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[("REGULAR", "Regular"), ("BONUS", "Bonus"), ("AUTO_PROMO", "Automatic Promotion")],
                        default="REGULAR",
                        max_length=12,
                    ),
                ),
                ("promo_rule_id", models.CharField(blank=True, default="", max_length=64)),
                ("unit", models.CharField(choices=[("UND", "Unit"), ("PKG", "Package")], default="UND", max_length=3)),
                ("quantity_presentation", models.PositiveIntegerField()),
                ("factor", models.PositiveIntegerField(default=1)),
                ("quantity_base", models.PositiveIntegerField()),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Price per presentation unit (IGV included).",
                        max_digits=14,
                    ),
                ),
                ("discount_percent", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("total_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                (
                    "cost_amount",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Cost of the batches drawn (snapshot at commit).",
                        max_digits=14,
                    ),
                ),
                ("quantity_returned", models.PositiveIntegerField(default=0)),
                ("batch_allocations", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sale_lines",
                        to="products.product",
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="sales.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["sale", "created_at"], name="sale_line_sale_idx"),
                    models.Index(fields=["product", "created_at"], name="sale_line_product_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity_presentation__gt=0),
                        name="sale_line_quantity_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_returned__lte=models.F("quantity_base")),
                        name="sale_line_returned_lte_base",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditNote",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("series", models.CharField(max_length=8)),
                ("number", models.CharField(max_length=16)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="credit_notes_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_notes",
                        to="sales.sale",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["sale", "created_at"], name="credit_note_sale_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["series", "number"],
                        name="uniq_credit_note_series_number",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditNoteLine",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity_base", models.PositiveIntegerField()),
                ("refund_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("batch_allocations", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "credit_note",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="sales.creditnote",
                    ),
                ),
                (
                    "sale_line",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_note_lines",
                        to="sales.saleline",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity_base__gt=0),
                        name="credit_note_line_quantity_gt_zero",
                    ),
                ],
            },
        ),
    ]
