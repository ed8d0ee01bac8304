# products/services/kardex.py

"""
MOVEMENT LEDGER (KARDEX)

Purpose:
- Append one StockMovement per batch touched by a BatchStore mutation.
- Render the normalized kardex view (date, direction, document, quantity,
  unit price, total, counterparty) with a running balance per product.
- Reconcile the ledger against batch state (conservation check).

Rules:
- Movements are derived from mutations; they are never a second source of truth.
- The visible ledger must always match BatchStore state (see reconcile()).
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Q, Sum

from products.models import Product, StockBatch, StockMovement

logger = logging.getLogger(__name__)

FOURPLACES = Decimal("0.0001")


def _price4(value) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value)).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class MovementContext:
    """Who/what caused a stock mutation. Attached to every ledger row."""

    reason: str
    document_type: str = ""
    document_id: object = None
    document_number: str = ""
    counterparty: str = ""
    unit_price: Decimal | None = None
    user: object = None
    note: str = ""

    def with_reason(self, reason: str) -> "MovementContext":
        return replace(self, reason=reason)


@dataclass(frozen=True)
class KardexEntry:
    date: datetime
    direction: str
    reason: str
    document_type: str
    document_number: str
    product_id: str
    product_name: str
    sku: str
    batch_code: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    counterparty: str
    balance: int


@dataclass(frozen=True)
class LedgerReconciliation:
    product_id: str
    quantity_initial: int
    quantity_current: int
    total_out: int
    total_in_adjustments: int

    @property
    def consumed(self) -> int:
        return self.quantity_initial - self.quantity_current

    @property
    def net_out(self) -> int:
        return self.total_out - self.total_in_adjustments

    @property
    def balanced(self) -> bool:
        return self.consumed == self.net_out


class MovementLedger:
    def record(self, batch: StockBatch, quantity: int, *, direction: str, context: MovementContext) -> StockMovement:
        movement = StockMovement.objects.create(
            product_id=batch.product_id,
            batch=batch,
            direction=direction,
            reason=context.reason,
            quantity=int(quantity),
            unit_cost_snapshot=batch.cost,
            unit_price=_price4(context.unit_price),
            document_type=context.document_type or "",
            document_id=context.document_id,
            document_number=context.document_number or "",
            counterparty=context.counterparty or "",
            note=(context.note or "")[:255],
            performed_by=context.user if getattr(context.user, "pk", None) else None,
        )

        logger.info(
            "Stock movement recorded",
            extra={
                "product_id": str(batch.product_id),
                "batch_id": str(batch.id),
                "direction": direction,
                "reason": context.reason,
                "quantity": int(quantity),
                "document_number": context.document_number,
            },
        )
        return movement

    # -------------------------------------------------
    # READ SIDE
    # -------------------------------------------------

    def movements(self, *, product=None, date_from: date | None = None, date_to: date | None = None):
        qs = StockMovement.objects.select_related("product", "batch").order_by("created_at", "id")
        if product is not None:
            qs = qs.filter(product_id=getattr(product, "pk", product))
        if date_from:
            qs = qs.filter(created_at__date__gte=date_from)
        if date_to:
            qs = qs.filter(created_at__date__lte=date_to)
        return qs

    def _opening_balances(self, *, product, date_from):
        if not date_from:
            return defaultdict(int)

        qs = StockMovement.objects.filter(created_at__date__lt=date_from)
        if product is not None:
            qs = qs.filter(product_id=getattr(product, "pk", product))

        rows = qs.values("product_id").annotate(
            ins=Sum("quantity", filter=Q(direction=StockMovement.Direction.IN)),
            outs=Sum("quantity", filter=Q(direction=StockMovement.Direction.OUT)),
        )
        balances = defaultdict(int)
        for r in rows:
            balances[str(r["product_id"])] = int(r["ins"] or 0) - int(r["outs"] or 0)
        return balances

    def entries(self, *, product=None, date_from: date | None = None, date_to: date | None = None) -> list[KardexEntry]:
        """
        Chronological kardex rows with a running per-product balance.

        The balance starts from the net of all movements before date_from so a
        filtered window still shows real stock levels.
        """
        balances = self._opening_balances(product=product, date_from=date_from)
        result = []

        for mv in self.movements(product=product, date_from=date_from, date_to=date_to):
            pid = str(mv.product_id)
            balances[pid] += mv.signed_quantity

            unit_price = mv.unit_price if mv.unit_price is not None else mv.unit_cost_snapshot
            result.append(
                KardexEntry(
                    date=mv.created_at,
                    direction=mv.direction,
                    reason=mv.reason,
                    document_type=mv.document_type,
                    document_number=mv.document_number,
                    product_id=pid,
                    product_name=mv.product.name,
                    sku=mv.product.sku,
                    batch_code=mv.batch.code,
                    quantity=int(mv.quantity),
                    unit_price=Decimal(unit_price or 0),
                    total=mv.total,
                    counterparty=mv.counterparty,
                    balance=balances[pid],
                )
            )

        return result

    def reconcile(self, product) -> LedgerReconciliation:
        """
        Conservation check:
          Σ initial - Σ current == Σ OUT - Σ IN (excluding receipts)
        """
        product_id = getattr(product, "pk", product)

        batch_totals = StockBatch.objects.filter(product_id=product_id).aggregate(
            initial=Sum("quantity_initial"),
            current=Sum("quantity_current"),
        )
        mv_totals = StockMovement.objects.filter(product_id=product_id).aggregate(
            outs=Sum("quantity", filter=Q(direction=StockMovement.Direction.OUT)),
            ins=Sum(
                "quantity",
                filter=Q(direction=StockMovement.Direction.IN)
                & ~Q(reason=StockMovement.Reason.RECEIPT),
            ),
        )

        rec = LedgerReconciliation(
            product_id=str(product_id),
            quantity_initial=int(batch_totals["initial"] or 0),
            quantity_current=int(batch_totals["current"] or 0),
            total_out=int(mv_totals["outs"] or 0),
            total_in_adjustments=int(mv_totals["ins"] or 0),
        )

        if not rec.balanced:
            product_name = (
                Product.objects.filter(pk=product_id).values_list("name", flat=True).first()
            )
            logger.error(
                "Kardex does not reconcile with batch state",
                extra={
                    "product_id": str(product_id),
                    "product_name": product_name,
                    "consumed": rec.consumed,
                    "net_out": rec.net_out,
                },
            )

        return rec


ledger = MovementLedger()
