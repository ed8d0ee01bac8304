"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: INVENTORY CORE

Creates:
- Product (master data, no stock column)
- StockBatch (receipt-based stock, base units)
- StockMovement (append-only kardex)

StockBatch.purchase is added in 0002 once the purchases app exists.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(db_index=True, max_length=128, unique=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("unit_type", models.CharField(default="UND", help_text="Base unit label, e.g. BOTELLA", max_length=32)),
                ("package_type", models.CharField(blank=True, default="", help_text="Package label, e.g. CAJA", max_length=32)),
                ("package_content", models.PositiveIntegerField(default=1, help_text="Base units per package (conversion factor)")),
                (
                    "last_cost",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Most recent gross purchase cost per base unit.",
                        max_digits=14,
                    ),
                ),
                ("min_stock", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["sku"], name="product_sku_idx"),
                    models.Index(fields=["name"], name="product_name_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(package_content__gte=1),
                        name="chk_product_package_content_gte_one",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockBatch",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(default="SIN LOTE", help_text="Lot label (user-entered or SIN LOTE)", max_length=128)),
                ("quantity_initial", models.PositiveIntegerField(help_text="Base units received (immutable)")),
                ("quantity_current", models.PositiveIntegerField(default=0, help_text="Base units remaining (service-managed only)")),
                (
                    "cost",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Cost per base unit at receipt (immutable).",
                        max_digits=14,
                    ),
                ),
                ("expiration_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_batches",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["expiration_date", "created_at"],
                "indexes": [
                    models.Index(fields=["product", "expiration_date"], name="batch_product_expiry_idx"),
                    models.Index(fields=["product", "created_at"], name="batch_product_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity_initial__gt=0),
                        name="chk_stockbatch_qty_initial_gt_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_current__gte=0),
                        name="chk_stockbatch_qty_current_gte_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity_current__lte=models.F("quantity_initial")),
                        name="chk_stockbatch_current_lte_initial",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(cost__gte=Decimal("0")),
                        name="chk_stockbatch_cost_gte_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("direction", models.CharField(choices=[("IN", "Stock In"), ("OUT", "Stock Out")], max_length=3)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("RECEIPT", "Purchase Receipt"),
                            ("SALE", "Sale Dispatch"),
                            ("EDIT_REVERSAL", "Sale Edit Reversal"),
                            ("RETURN", "Credit Note Return"),
                            ("VOID", "Void Reinstatement"),
                            ("PURCHASE_REVERSAL", "Purchase Reversal"),
                            ("ADJUSTMENT", "Manual Adjustment"),
                        ],
                        max_length=20,
                    ),
                ),
                ("quantity", models.PositiveIntegerField()),
                (
                    "unit_cost_snapshot",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0.0000"),
                        help_text="Batch cost per base unit at movement time.",
                        max_digits=14,
                    ),
                ),
                (
                    "unit_price",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        help_text="Document price per base unit (display only).",
                        max_digits=14,
                        null=True,
                    ),
                ),
                ("document_type", models.CharField(blank=True, default="", max_length=32)),
                ("document_id", models.UUIDField(blank=True, null=True)),
                ("document_number", models.CharField(blank=True, default="", max_length=64)),
                ("counterparty", models.CharField(blank=True, default="", max_length=255)),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="products.stockbatch",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="movement_created_idx"),
                    models.Index(fields=["reason"], name="movement_reason_idx"),
                    models.Index(fields=["product", "created_at"], name="movement_product_created_idx"),
                    models.Index(fields=["batch", "created_at"], name="movement_batch_created_idx"),
                    models.Index(fields=["document_id", "created_at"], name="movement_document_idx"),
                ],
            },
        ),
    ]
