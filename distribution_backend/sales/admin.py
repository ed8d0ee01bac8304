# sales/admin.py

from django.contrib import admin

from sales.models import CreditNote, CreditNoteLine, Sale, SaleLine


# ======================================================
# SALE ADMIN (READ-ONLY: stock effects go through services)
# ======================================================


class SaleLineInline(admin.TabularInline):
    model = SaleLine
    extra = 0
    can_delete = False
    fields = (
        "product",
        "kind",
        "unit",
        "quantity_presentation",
        "quantity_base",
        "unit_price",
        "discount_percent",
        "total_price",
        "quantity_returned",
        "batch_allocations",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "document_type",
        "document_label",
        "client_name",
        "status",
        "total",
        "created_at",
    )
    list_filter = ("document_type", "status", "payment_method", "created_at")
    search_fields = ("series", "number", "client_name", "client_doc_number", "order_reference")
    readonly_fields = (
        "status",
        "subtotal",
        "igv",
        "total",
        "cost_amount",
        "order_reference",
        "created_at",
        "committed_at",
    )
    inlines = [SaleLineInline]

    def has_delete_permission(self, request, obj=None):
        return False


# ======================================================
# CREDIT NOTES (VIEW-ONLY)
# ======================================================


class CreditNoteLineInline(admin.TabularInline):
    model = CreditNoteLine
    extra = 0
    can_delete = False
    fields = ("sale_line", "quantity_base", "refund_amount", "batch_allocations")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(CreditNote)
class CreditNoteAdmin(admin.ModelAdmin):
    list_display = ("document_label", "sale", "total", "created_at")
    search_fields = ("series", "number", "sale__number")
    inlines = [CreditNoteLineInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
