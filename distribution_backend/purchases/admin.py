# purchases/admin.py

from django.contrib import admin

from purchases.models import Purchase, PurchaseItem, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "ruc", "phone", "is_active")
    search_fields = ("name", "ruc")
    list_filter = ("is_active",)


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    can_delete = False
    fields = (
        "product",
        "unit",
        "quantity_presentation",
        "quantity_base",
        "unit_price",
        "total_cost",
        "batch_code",
        "expiration_date",
        "is_bonus",
        "batch",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    """Receiving, edits and voids run through purchases.services.receiving_service."""

    list_display = (
        "document_type",
        "document_number",
        "supplier",
        "status",
        "payment_status",
        "total",
        "entry_date",
    )
    list_filter = ("status", "payment_status", "document_type", "entry_date")
    search_fields = ("document_number", "supplier__name", "supplier__ruc")
    readonly_fields = ("status", "subtotal", "igv", "total", "received_at", "created_at")
    inlines = [PurchaseItemInline]

    def has_delete_permission(self, request, obj=None):
        return False
