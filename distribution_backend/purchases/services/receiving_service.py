# purchases/services/receiving_service.py

"""
======================================================
PATH: purchases/services/receiving_service.py
======================================================
PURCHASE RECEIVING SERVICE

Canonical flows (all atomic):

create_purchase()     -> DRAFT purchase + items (no stock touched)
receive_purchase()    -> one StockBatch per item (RECEIPT), last_cost refresh,
                         status COMMITTED
edit_purchase()       -> pre-flight every batch (BatchAlreadyConsumed if any unit
                         was sold), reverse them, replace items, receive again
void_purchase()       -> ReversalEngine.void_document
mark_purchase_paid()  -> closes the document for edits and voids

Cost rule:
- batch.cost = unit_price / factor (4 places): gross cost per BASE unit
- bonus items enter at cost 0 and never refresh product.last_cost
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from products.models import Product, StockMovement
from products.services import document_lifecycle as lifecycle
from products.services.batch_store import batch_store
from products.services.exceptions import InvalidQuantity
from products.services.locking import product_lock
from products.services.reversal import reversal_engine
from products.services.units import UNIT_BASE, conversion_factor, to_int_qty
from purchases.models import Purchase, PurchaseItem, Supplier

logger = logging.getLogger(__name__)


class PurchaseReceivingError(ValueError):
    pass


class PurchaseClosedError(PurchaseReceivingError):
    """The purchase is PAID; its stock effects are frozen."""


TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _price(v) -> Decimal:
    try:
        price = Decimal(str(v if v not in (None, "") else "0"))
    except (InvalidOperation, ValueError) as exc:
        raise PurchaseReceivingError("unit_price must be a valid decimal") from exc
    if price < Decimal("0"):
        raise PurchaseReceivingError("unit_price cannot be negative")
    return price.quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def base_unit_cost(item: PurchaseItem) -> Decimal:
    if item.is_bonus:
        return Decimal("0.0000")
    factor = max(int(item.factor or 1), 1)
    return (Decimal(item.unit_price) / Decimal(factor)).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def _resolve_product(value) -> Product:
    if isinstance(value, Product):
        return value
    try:
        return Product.objects.get(pk=value)
    except (Product.DoesNotExist, ValueError, ValidationError) as exc:
        raise PurchaseReceivingError(f"Product not found: {value}") from exc


def _lock_purchase(purchase) -> Purchase:
    return (
        Purchase.objects.select_for_update()
        .select_related("supplier")
        .get(pk=getattr(purchase, "pk", purchase))
    )


def _ensure_open(purchase: Purchase) -> None:
    if purchase.is_closed:
        logger.warning(
            "Purchase change blocked: document is paid",
            extra={"purchase_id": str(purchase.id), "document_number": purchase.document_number},
        )
        raise PurchaseClosedError(
            f"Purchase {purchase.document_number} is PAID and can no longer be edited or voided"
        )


def _context(purchase: Purchase, reason: str, user=None):
    context = purchase.movement_context(reason)
    return replace(context, user=user) if user is not None else context


def _build_items(purchase: Purchase, items) -> list[PurchaseItem]:
    items = list(items or [])
    if not items:
        raise PurchaseReceivingError("Purchase has no items")

    created = []
    for raw in items:
        product = _resolve_product(raw.get("product") or raw.get("product_id"))
        unit = raw.get("unit") or UNIT_BASE

        try:
            qty = to_int_qty(raw.get("quantity"), field_name="quantity")
            if qty <= 0:
                raise InvalidQuantity("quantity must be greater than zero")
            factor = conversion_factor(unit, product.package_content)
        except InvalidQuantity as exc:
            raise PurchaseReceivingError(str(exc)) from exc

        if not raw.get("expiration_date"):
            raise PurchaseReceivingError("expiration_date is required for every item")

        is_bonus = bool(raw.get("is_bonus", False))
        unit_price = _price(raw.get("unit_price"))

        created.append(
            PurchaseItem.objects.create(
                purchase=purchase,
                product=product,
                unit=unit,
                quantity_presentation=qty,
                factor=factor,
                quantity_base=qty * factor,
                unit_price=unit_price,
                total_cost=Decimal("0.00") if is_bonus else _money(Decimal(qty) * unit_price),
                batch_code=raw.get("batch_code") or "",
                expiration_date=raw["expiration_date"],
                is_bonus=is_bonus,
            )
        )

    purchase.recalculate_totals()
    purchase.save(update_fields=["subtotal", "igv", "total", "updated_at"])
    return created


def _receive_items(purchase: Purchase, *, user=None) -> list:
    batches = []
    for item in purchase.items.select_related("product").order_by("created_at"):
        cost = base_unit_cost(item)
        context = _context(purchase, StockMovement.Reason.RECEIPT, user)

        batch = batch_store.create_batch(
            item.product,
            item.quantity_base,
            cost,
            item.expiration_date,
            code=item.batch_code,
            purchase=purchase,
            context=context,
        )
        item.batch = batch
        item.save(update_fields=["batch"])

        if not item.is_bonus:
            Product.objects.filter(pk=item.product_id).update(last_cost=cost)

        batches.append(batch)
    return batches


# ============================================================
# CREATE
# ============================================================


@transaction.atomic
def create_purchase(
    *,
    supplier,
    document_number: str,
    items,
    document_type: str = Purchase.DOC_FACTURA,
    issue_date=None,
    entry_date=None,
    due_date=None,
    observation: str = "",
    currency: str = Purchase.CURRENCY_PEN,
    user=None,
) -> Purchase:
    if not isinstance(supplier, Supplier):
        try:
            supplier = Supplier.objects.get(pk=supplier)
        except (Supplier.DoesNotExist, ValueError, ValidationError) as exc:
            raise PurchaseReceivingError("Supplier not found") from exc

    purchase = Purchase(
        supplier=supplier,
        document_type=document_type,
        document_number=document_number,
        due_date=due_date,
        observation=observation or "",
        currency=currency,
        created_by=user if getattr(user, "pk", None) else None,
    )
    if issue_date:
        purchase.issue_date = issue_date
    if entry_date:
        purchase.entry_date = entry_date
    purchase.save()

    _build_items(purchase, items)
    return purchase


# ============================================================
# RECEIVE
# ============================================================


@transaction.atomic
def receive_purchase(purchase, *, user=None, paid: bool = False) -> Purchase:
    """DRAFT -> COMMITTED. Creates one batch per item."""
    purchase = _lock_purchase(purchase)
    lifecycle.validate_transition(document=purchase, target_status=lifecycle.STATUS_COMMITTED)

    if not purchase.items.exists():
        raise PurchaseReceivingError("Purchase has no items")

    with product_lock(*purchase.product_ids()):
        batches = _receive_items(purchase, user=user)

        purchase.status = lifecycle.STATUS_COMMITTED
        purchase.received_at = timezone.now()
        if paid:
            purchase.payment_status = Purchase.PAYMENT_PAID
        purchase.save()

    logger.info(
        "Purchase received",
        extra={
            "purchase_id": str(purchase.id),
            "document_number": purchase.document_number,
            "batches": len(batches),
            "total": str(purchase.total),
        },
    )
    return purchase


# ============================================================
# EDIT (REVERSE + REPLACE)
# ============================================================


@transaction.atomic
def edit_purchase(purchase, items, *, user=None) -> Purchase:
    """
    Replace a received purchase's items.

    Conservative rule: refused as a whole when any unit of any of its batches
    has already been sold.
    """
    purchase = _lock_purchase(purchase)
    _ensure_open(purchase)
    lifecycle.validate_transition(document=purchase, target_status=lifecycle.STATUS_EDITED)

    new_product_ids = [
        str(_resolve_product(raw.get("product") or raw.get("product_id")).pk)
        for raw in (items or [])
    ]

    with product_lock(*purchase.product_ids(), *new_product_ids):
        batches = [batch_store.get_batch(b.pk, for_update=True) for b in purchase.received_batches()]

        # Pre-flight: every batch must be untouched.
        for batch in batches:
            reversal_engine.check_purchase_reversal(batch)

        for batch in batches:
            reversal_engine.reverse_purchase_receipt(
                batch,
                context=_context(purchase, StockMovement.Reason.PURCHASE_REVERSAL, user),
            )

        purchase.status = lifecycle.STATUS_EDITED
        purchase.save()

        purchase.items.all().delete()
        _build_items(purchase, items)
        _receive_items(purchase, user=user)

        lifecycle.validate_transition(document=purchase, target_status=lifecycle.STATUS_COMMITTED)
        purchase.status = lifecycle.STATUS_COMMITTED
        purchase.received_at = timezone.now()
        purchase.save()

    logger.info(
        "Purchase edited",
        extra={
            "purchase_id": str(purchase.id),
            "document_number": purchase.document_number,
            "batches_reversed": len(batches),
        },
    )
    return purchase


# ============================================================
# VOID / PAY
# ============================================================


@transaction.atomic
def void_purchase(purchase, *, user=None) -> Purchase:
    purchase = _lock_purchase(purchase)
    _ensure_open(purchase)
    return reversal_engine.void_document(purchase, user=user)


@transaction.atomic
def mark_purchase_paid(purchase, *, user=None) -> Purchase:
    purchase = _lock_purchase(purchase)

    if purchase.status != lifecycle.STATUS_COMMITTED:
        raise PurchaseReceivingError("Only received (COMMITTED) purchases can be paid")

    if purchase.is_closed:
        return purchase

    purchase.payment_status = Purchase.PAYMENT_PAID
    purchase.save(update_fields=["payment_status", "updated_at"])

    logger.info(
        "Purchase marked paid",
        extra={
            "purchase_id": str(purchase.id),
            "document_number": purchase.document_number,
            "user_id": getattr(user, "pk", None),
        },
    )
    return purchase
