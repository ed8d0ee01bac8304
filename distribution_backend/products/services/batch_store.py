# products/services/batch_store.py

"""
BATCH STORE

Purpose:
- Own the set of stock batches per product.
- The ONLY code allowed to write StockBatch.quantity_current.
- Every mutation appends a kardex row through MovementLedger.

Rules:
- Quantities are integer base units.
- debit:  qty <= quantity_current            else InsufficientBatchStock
- credit: quantity_current + qty <= initial  else OverCredit (never clamped)
- Multi-batch variants validate EVERY entry (aggregated per batch) before
  the first write, then apply inside one transaction.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Sum

from products.models import NO_LOT_CODE, Product, StockBatch, StockMovement
from products.services.exceptions import (
    InsufficientBatchStock,
    InvalidQuantity,
    OverCredit,
)
from products.services.kardex import MovementContext, MovementLedger, ledger as default_ledger
from products.services.units import to_int_qty

logger = logging.getLogger(__name__)

FOURPLACES = Decimal("0.0001")


def _positive_qty(value, *, field_name="quantity") -> int:
    qty = to_int_qty(value, field_name=field_name)
    if qty <= 0:
        raise InvalidQuantity(f"{field_name} must be greater than zero")
    return qty


def _cost(value) -> Decimal:
    try:
        cost = Decimal(str(value if value not in (None, "") else "0"))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidQuantity("cost must be a valid decimal") from exc
    if cost < Decimal("0"):
        raise InvalidQuantity("cost cannot be negative")
    return cost.quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def _aggregate(entries) -> "OrderedDict[str, int]":
    """Collapse (batch_id, qty) pairs into batch_id -> total qty, keeping first-seen order."""
    totals: OrderedDict[str, int] = OrderedDict()
    for batch_id, qty in entries:
        key = str(batch_id)
        totals[key] = totals.get(key, 0) + _positive_qty(qty)
    return totals


class BatchStore:
    def __init__(self, ledger: MovementLedger | None = None, policy=None):
        self.ledger = ledger or default_ledger
        self._policy = policy

    # -------------------------------------------------
    # READS
    # -------------------------------------------------

    def get_batch(self, batch_id, *, for_update: bool = False) -> StockBatch:
        qs = StockBatch.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return qs.get(pk=batch_id)

    def total_stock(self, product) -> int:
        product_id = getattr(product, "pk", product)
        return int(
            StockBatch.objects.filter(product_id=product_id)
            .aggregate(total=Sum("quantity_current"))
            .get("total")
            or 0
        )

    def batches_for(self, product, policy=None, *, for_update: bool = False) -> list[StockBatch]:
        """
        All batches of the product (zero-quantity included) in allocation
        priority order.
        """
        from products.services.allocation import resolve_policy

        product_id = getattr(product, "pk", product)
        qs = StockBatch.objects.filter(product_id=product_id)
        if for_update:
            qs = qs.select_for_update()

        order = resolve_policy(policy or self._policy)
        return order(list(qs))

    # -------------------------------------------------
    # CREATE
    # -------------------------------------------------

    @transaction.atomic
    def create_batch(
        self,
        product: Product,
        quantity_initial,
        cost,
        expiration_date,
        code: str | None = None,
        purchase=None,
        *,
        context: MovementContext,
    ) -> StockBatch:
        if product is None:
            raise InvalidQuantity("product is required")

        qty = _positive_qty(quantity_initial, field_name="quantity_initial")

        batch = StockBatch.objects.create(
            product=product,
            purchase=purchase,
            code=(code or "").strip() or NO_LOT_CODE,
            quantity_initial=qty,
            quantity_current=qty,
            cost=_cost(cost),
            expiration_date=expiration_date,
        )

        self.ledger.record(
            batch,
            qty,
            direction=StockMovement.Direction.IN,
            context=context,
        )
        return batch

    # -------------------------------------------------
    # SINGLE-BATCH MUTATIONS
    # -------------------------------------------------

    def debit(self, batch_id, qty, *, context: MovementContext) -> StockBatch:
        return self.debit_many([(batch_id, qty)], context=context)[0]

    def credit(self, batch_id, qty, *, context: MovementContext) -> StockBatch:
        return self.credit_many([(batch_id, qty)], context=context)[0]

    # -------------------------------------------------
    # MULTI-BATCH MUTATIONS (ALL-OR-NOTHING)
    # -------------------------------------------------

    def _lock_batches(self, batch_ids) -> dict[str, StockBatch]:
        batches = {
            str(b.pk): b
            for b in StockBatch.objects.select_for_update().filter(pk__in=list(batch_ids))
        }
        missing = [bid for bid in batch_ids if bid not in batches]
        if missing:
            raise StockBatch.DoesNotExist(f"Unknown batch id(s): {', '.join(missing)}")
        return batches

    def validate_debits(self, entries) -> "OrderedDict[str, int]":
        """Pre-flight only. Raises without mutating anything."""
        totals = _aggregate(entries)
        batches = self._lock_batches(list(totals))
        for batch_id, qty in totals.items():
            batch = batches[batch_id]
            if qty > int(batch.quantity_current):
                raise InsufficientBatchStock(batch_id, batch.quantity_current, qty)
        return totals

    def validate_credits(self, entries) -> "OrderedDict[str, int]":
        """Pre-flight only. Raises without mutating anything."""
        totals = _aggregate(entries)
        batches = self._lock_batches(list(totals))
        for batch_id, qty in totals.items():
            batch = batches[batch_id]
            if int(batch.quantity_current) + qty > int(batch.quantity_initial):
                raise OverCredit(batch_id, batch.quantity_current, batch.quantity_initial, qty)
        return totals

    @transaction.atomic
    def debit_many(self, entries, *, context: MovementContext) -> list[StockBatch]:
        entries = [(str(bid), q) for bid, q in entries]
        self.validate_debits(entries)

        touched = []
        for batch_id, qty in entries:
            batch = self.get_batch(batch_id, for_update=True)
            batch.quantity_current = int(batch.quantity_current) - int(qty)
            batch.save(update_fields=["quantity_current"])
            self.ledger.record(batch, qty, direction=StockMovement.Direction.OUT, context=context)
            touched.append(batch)

        return touched

    @transaction.atomic
    def credit_many(self, entries, *, context: MovementContext) -> list[StockBatch]:
        entries = [(str(bid), q) for bid, q in entries]
        self.validate_credits(entries)

        touched = []
        for batch_id, qty in entries:
            batch = self.get_batch(batch_id, for_update=True)
            batch.quantity_current = int(batch.quantity_current) + int(qty)
            batch.save(update_fields=["quantity_current"])
            self.ledger.record(batch, qty, direction=StockMovement.Direction.IN, context=context)
            touched.append(batch)

        return touched

    # -------------------------------------------------
    # MANUAL ADJUSTMENT
    # -------------------------------------------------

    def adjust(self, batch: StockBatch, quantity_delta, *, context: MovementContext) -> StockBatch:
        """
        quantity_delta:
          +N -> IN adjustment (bounded by quantity_initial)
          -N -> OUT adjustment (bounded by quantity_current)
        """
        from products.services.locking import product_lock

        delta = to_int_qty(quantity_delta, field_name="quantity_delta")
        if delta == 0:
            raise InvalidQuantity("quantity_delta cannot be 0")

        context = context.with_reason(StockMovement.Reason.ADJUSTMENT)
        with product_lock(batch.product_id):
            if delta < 0:
                result = self.debit(batch.pk, abs(delta), context=context)
            else:
                result = self.credit(batch.pk, delta, context=context)

        logger.info(
            "Manual stock adjustment applied",
            extra={"batch_id": str(batch.pk), "quantity_delta": delta},
        )
        return result


batch_store = BatchStore()
