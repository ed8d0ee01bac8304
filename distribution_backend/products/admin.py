# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe):

- Product master data is editable.
- StockBatch and StockMovement are VIEW-ONLY here.
  Stock enters through purchase receiving and leaves through sales; manual
  corrections go through BatchStore.adjust (API), so the kardex stays complete.
"""

from __future__ import annotations

from datetime import timedelta

from django.contrib import admin
from django.utils import timezone

from products.models import Product, StockBatch, StockMovement


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class StockBatchInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = StockBatch
    extra = 0
    can_delete = False
    show_change_link = True
    fields = (
        "code",
        "expiration_date",
        "quantity_initial",
        "quantity_current",
        "cost",
        "purchase",
        "created_at",
    )
    readonly_fields = fields


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "sku",
        "name",
        "unit_type",
        "package_type",
        "package_content",
        "last_cost",
        "total_stock_db",
        "is_low_stock",
        "is_active",
    )
    list_filter = ("is_active", "created_at")
    search_fields = ("sku", "name")
    ordering = ("name",)
    readonly_fields = ("last_cost", "created_at", "updated_at")

    inlines = [StockBatchInline]


@admin.register(StockBatch)
class StockBatchAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "product",
        "code",
        "expiration_date",
        "quantity_initial",
        "quantity_current",
        "cost",
        "expiry_status",
        "reversed_at",
        "created_at",
    )
    list_filter = ("expiration_date", "created_at")
    search_fields = ("code", "product__name", "product__sku")
    ordering = ("expiration_date", "created_at")

    @admin.display(description="Expiry Status")
    def expiry_status(self, obj):
        today = timezone.localdate()

        if obj.expiration_date < today:
            return "EXPIRED"

        if obj.expiration_date <= today + timedelta(days=30):
            return "SOON"

        return "OK"


@admin.register(StockMovement)
class StockMovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "created_at",
        "product",
        "batch",
        "direction",
        "reason",
        "quantity",
        "document_type",
        "document_number",
        "counterparty",
        "performed_by",
    )
    list_filter = ("direction", "reason", "created_at")
    search_fields = ("product__name", "product__sku", "document_number", "counterparty")
    ordering = ("-created_at",)
