# sales/services/sale_service.py

"""
CORE SALES DOMAIN SERVICE

SINGLE SOURCE OF TRUTH for:
- Sale / order creation (DRAFT, no stock touched)
- Committing: FEFO allocation per line, stored on the line for exact reversal
- Line edits: reverse old allocation, allocate new (two kardex-visible steps)
- Voids (through ReversalEngine)
- Turning a committed PEDIDO into a FACTURA / BOLETA

GUARANTEES:
- AllocationEngine is the ONLY stock exit point
- Aggregated demand per product is checked before the first debit
- Fully atomic: a failing line leaves every batch untouched
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from products.models import Product, StockMovement
from products.services import document_lifecycle as lifecycle
from products.services.allocation import allocation_engine, allocation_to_json, allocation_total
from products.services.batch_store import batch_store
from products.services.costing import cost_engine
from products.services.exceptions import InsufficientStock, InvalidQuantity
from products.services.locking import product_lock
from products.services.reversal import reversal_engine
from products.services.units import UNIT_BASE, conversion_factor, to_int_qty
from sales.models import Sale, SaleLine

logger = logging.getLogger(__name__)


class SaleServiceError(Exception):
    pass


class EmptySaleError(SaleServiceError):
    pass


class OrderInvoicingError(SaleServiceError):
    pass


# ============================================================
# HELPERS
# ============================================================


def _decimal(value, *, field_name: str) -> Decimal:
    try:
        return Decimal(str(value if value not in (None, "") else "0"))
    except (InvalidOperation, ValueError) as exc:
        raise SaleServiceError(f"{field_name} must be a valid decimal") from exc


def _resolve_product(value) -> Product:
    if isinstance(value, Product):
        return value
    try:
        return Product.objects.get(pk=value, is_active=True)
    except (Product.DoesNotExist, ValueError, ValidationError) as exc:
        raise SaleServiceError(f"Invalid or inactive product: {value}") from exc


def _lock_sale(sale) -> Sale:
    return Sale.objects.select_for_update().get(pk=getattr(sale, "pk", sale))


def _context(sale: Sale, reason: str, user=None, *, unit_price=None):
    context = sale.movement_context(reason, unit_price=unit_price)
    return replace(context, user=user) if user is not None else context


def _base_quantity(quantity, unit: str, product: Product) -> tuple[int, int, int]:
    """(quantity_presentation, factor, quantity_base)"""
    qty = to_int_qty(quantity, field_name="quantity")
    if qty <= 0:
        raise InvalidQuantity("quantity must be greater than zero")
    factor = conversion_factor(unit, product.package_content)
    return qty, factor, qty * factor


def _build_line(sale: Sale, raw: dict) -> SaleLine:
    product = _resolve_product(raw.get("product") or raw.get("product_id"))
    unit = raw.get("unit") or UNIT_BASE
    qty, factor, base = _base_quantity(raw.get("quantity"), unit, product)

    return SaleLine.objects.create(
        sale=sale,
        product=product,
        kind=raw.get("kind") or SaleLine.KIND_REGULAR,
        promo_rule_id=raw.get("promo_rule_id") or "",
        unit=unit,
        quantity_presentation=qty,
        factor=factor,
        quantity_base=base,
        unit_price=_decimal(raw.get("unit_price"), field_name="unit_price"),
        discount_percent=_decimal(raw.get("discount_percent"), field_name="discount_percent"),
    )


def _allocate_line(sale: Sale, line: SaleLine, *, user=None) -> None:
    allocation = allocation_engine.allocate(
        line.product,
        line.quantity_base,
        context=_context(sale, StockMovement.Reason.SALE, user, unit_price=line.unit_price_base),
    )
    line.batch_allocations = allocation_to_json(allocation)
    line.cost_amount = cost_engine.allocation_cost(allocation)
    line.save()


# ============================================================
# CREATE
# ============================================================


@transaction.atomic
def create_sale(
    *,
    series: str,
    number: str,
    client_name: str,
    lines,
    document_type: str = Sale.DOC_BOLETA,
    client_doc_number: str = "",
    client_address: str = "",
    payment_method: str = Sale.PAYMENT_CONTADO,
    observation: str = "",
    user=None,
) -> Sale:
    lines = list(lines or [])
    if not lines:
        raise EmptySaleError("A sale needs at least one line")

    sale = Sale.objects.create(
        document_type=document_type,
        series=series,
        number=number,
        client_name=client_name,
        client_doc_number=(client_doc_number or "").strip(),
        client_address=client_address or "",
        payment_method=payment_method,
        observation=observation or "",
        created_by=user if getattr(user, "pk", None) else None,
    )

    for raw in lines:
        _build_line(sale, raw)

    sale.recalculate_totals()
    sale.save()
    return sale


# ============================================================
# COMMIT
# ============================================================


@transaction.atomic
def commit_sale(sale, *, user=None) -> Sale:
    """DRAFT -> COMMITTED. Allocates every line or none."""
    sale = _lock_sale(sale)
    lifecycle.validate_transition(document=sale, target_status=lifecycle.STATUS_COMMITTED)

    lines = list(sale.lines.select_related("product").order_by("created_at", "id"))
    if not lines:
        raise EmptySaleError("A sale needs at least one line")

    demand: dict[str, int] = defaultdict(int)
    products: dict[str, Product] = {}
    for line in lines:
        demand[str(line.product_id)] += int(line.quantity_base)
        products[str(line.product_id)] = line.product

    with product_lock(*demand.keys()):
        # Pre-flight on aggregated demand: two lines of one product must fit together.
        for product_id, required in demand.items():
            available = batch_store.total_stock(product_id)
            if available < required:
                logger.warning(
                    "Sale commit rejected: insufficient stock",
                    extra={
                        "sale_id": str(sale.id),
                        "product_id": product_id,
                        "required": required,
                        "available": available,
                    },
                )
                raise InsufficientStock(available, required, product=products[product_id])

        for line in lines:
            _allocate_line(sale, line, user=user)

        sale.recalculate_totals()
        sale.status = lifecycle.STATUS_COMMITTED
        sale.committed_at = timezone.now()
        sale.save()

    logger.info(
        "Sale committed",
        extra={
            "sale_id": str(sale.id),
            "document_number": sale.document_label,
            "lines": len(lines),
            "total": str(sale.total),
        },
    )
    return sale


# ============================================================
# EDIT LINE
# ============================================================


@transaction.atomic
def edit_sale_line(
    line,
    *,
    quantity,
    unit: str | None = None,
    unit_price=None,
    discount_percent=None,
    user=None,
) -> SaleLine:
    """
    Change a committed line's quantity (and optionally unit / price).

    Two ledger-visible steps: EDIT_REVERSAL (IN) of the old allocation, then a
    fresh SALE (OUT) allocation. Pre-flight guarantees the second step cannot fail.
    """
    line = SaleLine.objects.select_related("product").get(pk=getattr(line, "pk", line))
    sale = _lock_sale(line.sale_id)
    lifecycle.validate_transition(document=sale, target_status=lifecycle.STATUS_EDITED)

    new_unit = unit or line.unit
    qty, factor, new_base = _base_quantity(quantity, new_unit, line.product)
    old_allocation = line.allocation()

    with product_lock(line.product_id):
        available = batch_store.total_stock(line.product_id) + allocation_total(old_allocation)
        if available < new_base:
            logger.warning(
                "Sale line edit rejected: insufficient stock",
                extra={
                    "sale_id": str(sale.id),
                    "line_id": str(line.id),
                    "required": new_base,
                    "available": available,
                },
            )
            raise InsufficientStock(available, new_base, product=line.product)

        sale.status = lifecycle.STATUS_EDITED
        sale.save()

        reversal_engine.reverse_sale_allocation(
            old_allocation,
            context=_context(sale, StockMovement.Reason.EDIT_REVERSAL, user, unit_price=line.unit_price_base),
        )

        line.unit = new_unit
        line.quantity_presentation = qty
        line.factor = factor
        line.quantity_base = new_base
        if unit_price is not None:
            line.unit_price = _decimal(unit_price, field_name="unit_price")
        if discount_percent is not None:
            line.discount_percent = _decimal(discount_percent, field_name="discount_percent")
        line.total_price = line.compute_total()

        _allocate_line(sale, line, user=user)

        sale.recalculate_totals()
        lifecycle.validate_transition(document=sale, target_status=lifecycle.STATUS_COMMITTED)
        sale.status = lifecycle.STATUS_COMMITTED
        sale.save()

    logger.info(
        "Sale line edited",
        extra={
            "sale_id": str(sale.id),
            "line_id": str(line.id),
            "old_quantity": allocation_total(old_allocation),
            "new_quantity": new_base,
        },
    )
    return line


# ============================================================
# VOID
# ============================================================


@transaction.atomic
def void_sale(sale, *, user=None) -> Sale:
    """Credit back whatever is still outstanding on every line (VOID IN)."""
    sale = _lock_sale(sale)
    return reversal_engine.void_document(sale, user=user)


# ============================================================
# ORDER -> INVOICE
# ============================================================


@transaction.atomic
def invoice_order(order, *, series: str, number: str, user=None) -> Sale:
    """
    Turn a committed PEDIDO into a FACTURA (11-digit RUC) or BOLETA.
    The stock it already holds stays allocated.
    """
    order = _lock_sale(order)

    if not order.is_order:
        raise OrderInvoicingError("Only PEDIDO documents can be invoiced")

    if order.status != lifecycle.STATUS_COMMITTED:
        raise OrderInvoicingError(f"Order must be COMMITTED to be invoiced (is {order.status})")

    doc = (order.client_doc_number or "").strip()
    target = Sale.DOC_FACTURA if len(doc) == 11 and doc.isdigit() else Sale.DOC_BOLETA

    order.order_reference = order.document_label
    order.document_type = target
    order.series = series
    order.number = number
    order.save()

    logger.info(
        "Order invoiced",
        extra={
            "sale_id": str(order.id),
            "order_reference": order.order_reference,
            "document_type": target,
            "document_number": order.document_label,
            "user_id": getattr(user, "pk", None),
        },
    )
    return order
