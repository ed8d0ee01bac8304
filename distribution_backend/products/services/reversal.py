# products/services/reversal.py

"""
REVERSAL ENGINE

Purpose:
- Undo stock effects of edited, voided or partially returned documents.
- Reverse exactly what the stored allocation says; never re-derive it.

HARD RULES:
- Every failure is raised during pre-flight, before the first mutation
- A purchase receipt can only be reversed when nothing from its batch left
  the warehouse, except what this same unit of work already credited back
  (BatchAlreadyConsumed otherwise)
- A return can never exceed what is still outstanding on the original
  allocation (InvalidQuantity otherwise); credits are never clamped
- VOIDED is terminal
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Iterable, Protocol

from django.db import transaction
from django.utils import timezone

from products.models import StockBatch, StockMovement
from products.services.allocation import (
    Allocation,
    AllocationEntry,
    allocation_entries,
    allocation_total,
)
from products.services.document_lifecycle import STATUS_VOIDED, validate_transition
from products.services.exceptions import BatchAlreadyConsumed, InvalidQuantity
from products.services.kardex import MovementContext
from products.services.locking import product_lock
from products.services.units import to_int_qty

logger = logging.getLogger(__name__)


class StockDocument(Protocol):
    """What void_document() needs from a sale, order or purchase."""

    status: str

    def outstanding_allocations(self) -> Iterable[Allocation]: ...

    def received_batches(self) -> Iterable[StockBatch]: ...

    def movement_context(self, reason: str) -> MovementContext: ...

    def product_ids(self) -> Iterable[str]: ...


# ============================================================
# HELPERS
# ============================================================


def _as_batch_totals(value) -> dict[str, int]:
    """Accept an Allocation, (batch_id, qty) pairs, or a batch_id -> qty mapping."""
    totals: dict[str, int] = defaultdict(int)
    if not value:
        return totals

    if isinstance(value, dict):
        items = value.items()
    else:
        items = (
            (e.batch_id, e.quantity) if isinstance(e, AllocationEntry) else e
            for e in value
        )

    for batch_id, qty in items:
        totals[str(batch_id)] += int(qty)
    return totals


def outstanding_allocation(original: Allocation, already_returned=None) -> Allocation:
    """
    What is still out on the street for an allocation after earlier returns.

    Earlier returns are charged against the original entries in order, so a
    batch appearing twice is drained first-entry-first.
    """
    returned = _as_batch_totals(already_returned)
    result = []
    for entry in original:
        key = str(entry.batch_id)
        used = min(int(entry.quantity), returned.get(key, 0))
        returned[key] = returned.get(key, 0) - used
        remaining = int(entry.quantity) - used
        if remaining > 0:
            result.append(AllocationEntry(entry.batch_id, entry.batch_code, remaining))
    return tuple(result)


def _products_of(batch_ids) -> list[str]:
    return [
        str(pid)
        for pid in StockBatch.objects.filter(pk__in=list(batch_ids))
        .values_list("product_id", flat=True)
        .distinct()
    ]


# ============================================================
# ENGINE
# ============================================================


class ReversalEngine:
    def __init__(self, store=None):
        if store is None:
            from products.services.batch_store import batch_store as store
        self.store = store

    # -------------------------------------------------
    # SALE ALLOCATIONS
    # -------------------------------------------------

    def reverse_sale_allocation(self, allocation: Allocation, *, context: MovementContext) -> Allocation:
        """Credit every entry back. Restores pre-allocation quantities exactly."""
        if not allocation:
            return tuple()

        entries = allocation_entries(allocation)
        with product_lock(*_products_of(bid for bid, _ in entries)):
            self.store.credit_many(entries, context=context)

        logger.info(
            "Sale allocation reversed",
            extra={
                "reason": context.reason,
                "quantity": allocation_total(allocation),
                "batches": len(allocation),
                "document_number": context.document_number,
            },
        )
        return tuple(allocation)

    def apply_partial_return(
        self,
        original_allocation: Allocation,
        returned_base_qty,
        *,
        context: MovementContext,
        already_returned=None,
    ) -> Allocation:
        """
        Credit a partial return against the original allocation.

        Walks the original entries in order taking min(remaining, outstanding).
        Returns the Allocation actually credited.
        """
        qty = to_int_qty(returned_base_qty, field_name="returned_base_qty")
        if qty <= 0:
            raise InvalidQuantity("returned quantity must be greater than zero")

        outstanding = outstanding_allocation(original_allocation, already_returned)
        available = allocation_total(outstanding)
        if qty > available:
            logger.warning(
                "Return rejected: exceeds outstanding quantity",
                extra={
                    "requested": qty,
                    "outstanding": available,
                    "document_number": context.document_number,
                },
            )
            raise InvalidQuantity(
                f"Cannot return {qty} units; only {available} remain outstanding"
            )

        remaining = qty
        credited = []
        for entry in outstanding:
            if remaining <= 0:
                break
            take = min(remaining, int(entry.quantity))
            credited.append(AllocationEntry(entry.batch_id, entry.batch_code, take))
            remaining -= take

        return self.reverse_sale_allocation(tuple(credited), context=context)

    # -------------------------------------------------
    # PURCHASE RECEIPTS
    # -------------------------------------------------

    def check_purchase_reversal(self, batch: StockBatch, released=None) -> None:
        """
        Pre-flight: the batch's consumed quantity must be exactly what
        `released` (batch_id -> qty) is about to credit back.
        """
        released_qty = _as_batch_totals(released).get(str(batch.pk), 0)
        consumed = int(batch.quantity_initial) - int(batch.quantity_current)
        if consumed != released_qty:
            logger.warning(
                "Purchase reversal blocked: batch already consumed",
                extra={
                    "batch_id": str(batch.pk),
                    "batch_code": batch.code,
                    "consumed": consumed,
                    "released": released_qty,
                },
            )
            raise BatchAlreadyConsumed(batch.pk, consumed - released_qty, batch_code=batch.code)

    @transaction.atomic
    def reverse_purchase_receipt(self, batch: StockBatch, *, context: MovementContext) -> StockBatch:
        """
        Remove a received batch's stock.

        The batch must be whole when this runs: callers that release sale
        allocations from it in the same unit of work apply those credits
        first (see check_purchase_reversal / void_document).
        """
        with product_lock(batch.product_id):
            batch = self.store.get_batch(batch.pk, for_update=True)
            consumed = int(batch.quantity_initial) - int(batch.quantity_current)
            if consumed:
                logger.warning(
                    "Purchase reversal blocked: batch already consumed",
                    extra={
                        "batch_id": str(batch.pk),
                        "batch_code": batch.code,
                        "consumed": consumed,
                    },
                )
                raise BatchAlreadyConsumed(batch.pk, consumed, batch_code=batch.code)

            context = context.with_reason(StockMovement.Reason.PURCHASE_REVERSAL)
            self.store.debit(batch.pk, batch.quantity_current, context=context)

            batch.refresh_from_db()
            batch.reversed_at = timezone.now()
            batch.save(update_fields=["reversed_at"])

        logger.info(
            "Purchase receipt reversed",
            extra={
                "batch_id": str(batch.pk),
                "quantity": int(batch.quantity_initial),
                "document_number": context.document_number,
            },
        )
        return batch

    # -------------------------------------------------
    # WHOLE DOCUMENT
    # -------------------------------------------------

    @transaction.atomic
    def void_document(self, document: StockDocument, *, user=None):
        """
        Void a committed document: credit every outstanding allocation and
        reverse every received batch, then mark it VOIDED.
        """
        validate_transition(document=document, target_status=STATUS_VOIDED)

        allocations = [a for a in document.outstanding_allocations() if a]
        batches = list(document.received_batches())

        def context_for(reason):
            ctx = document.movement_context(reason)
            return replace(ctx, user=user) if user is not None else ctx

        credit_entries = []
        for allocation in allocations:
            credit_entries.extend(allocation_entries(allocation))

        with product_lock(*document.product_ids()):
            # Pre-flight everything before the first write.
            if credit_entries:
                self.store.validate_credits(credit_entries)

            released = _as_batch_totals(credit_entries)
            locked = [self.store.get_batch(b.pk, for_update=True) for b in batches]
            for batch in locked:
                self.check_purchase_reversal(batch, released)

            if credit_entries:
                self.store.credit_many(
                    credit_entries,
                    context=context_for(StockMovement.Reason.VOID),
                )

            for batch in locked:
                self.reverse_purchase_receipt(
                    batch,
                    context=context_for(StockMovement.Reason.PURCHASE_REVERSAL),
                )

            document.status = STATUS_VOIDED
            document.save()

        logger.info(
            "Document voided",
            extra={
                "document_type": document.__class__.__name__,
                "document_id": str(document.pk),
                "credited": sum(q for _, q in credit_entries),
                "batches_reversed": len(batches),
                "user_id": getattr(user, "pk", None),
            },
        )
        return document


reversal_engine = ReversalEngine()
