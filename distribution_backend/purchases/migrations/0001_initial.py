"""
======================================================
PATH: purchases/migrations/0001_initial.py
======================================================
MIGRATION: SUPPLIER PURCHASES

Creates Supplier, Purchase and PurchaseItem.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
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
            name="Supplier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("ruc", models.CharField(blank=True, default="", max_length=11)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("address", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["name"], name="supplier_name_idx"),
                    models.Index(fields=["ruc"], name="supplier_ruc_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Purchase",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "document_type",
                    models.CharField(
                        choices=[("FACTURA", "Factura"), ("GUIA", "Guia de Remision")],
                        default="FACTURA",
                        max_length=10,
                    ),
                ),
                ("document_number", models.CharField(max_length=64)),
                ("issue_date", models.DateField(default=django.utils.timezone.localdate)),
                ("entry_date", models.DateField(default=django.utils.timezone.localdate)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("observation", models.CharField(blank=True, default="", max_length=255)),
                (
                    "currency",
                    models.CharField(choices=[("PEN", "Soles"), ("USD", "Dollars")], default="PEN", max_length=3),
                ),
                ("status", models.CharField(choices=STATUS_CHOICES, default="DRAFT", max_length=20)),
                (
                    "payment_status",
                    models.CharField(choices=[("PENDING", "Pending"), ("PAID", "Paid")], default="PENDING", max_length=10),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("igv", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("received_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchases_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchases",
                        to="purchases.supplier",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="purchase_status_created_idx"),
                    models.Index(fields=["supplier", "created_at"], name="purchase_supplier_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["supplier", "document_type", "document_number"],
                        name="uniq_supplier_purchase_document",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(total__gte=Decimal("0.00")),
                        name="purchase_total_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("unit", models.CharField(choices=[("UND", "Unit"), ("PKG", "Package")], default="UND", max_length=3)),
                ("quantity_presentation", models.PositiveIntegerField()),
                ("factor", models.PositiveIntegerField(default=1)),
                ("quantity_base", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=4, default=Decimal("0.0000"), max_digits=14)),
                ("total_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("batch_code", models.CharField(blank=True, default="", max_length=128)),
                ("expiration_date", models.DateField()),
                ("is_bonus", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchase_items",
                        to="products.stockbatch",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchase_items",
                        to="products.product",
                    ),
                ),
                (
                    "purchase",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="purchases.purchase",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["purchase", "created_at"], name="purchase_item_purchase_idx"),
                    models.Index(fields=["product", "created_at"], name="purchase_item_product_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity_presentation__gt=0),
                        name="purchase_item_quantity_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(unit_price__gte=Decimal("0")),
                        name="purchase_item_unit_price_nonnegative",
                    ),
                ],
            },
        ),
    ]
