# sales/services/credit_note_service.py

"""
CREDIT NOTE SERVICE (PARTIAL RETURNS)

HARD RULES:
- Only COMMITTED or PARTIALLY_RETURNED sales accept returns
- Per line: returned units <= units still outstanding (InvalidQuantity otherwise)
- Stock comes back to the SAME batches the line drew, in the order drawn
- refund = line.total_price * returned_base / line.quantity_base (2 places)
- Validation for every line happens before the first credit
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction

from products.models import StockMovement
from products.services import document_lifecycle as lifecycle
from products.services.allocation import allocation_to_json
from products.services.exceptions import InvalidQuantity
from products.services.locking import product_lock
from products.services.reversal import reversal_engine
from products.services.units import UNIT_BASE, conversion_factor, to_int_qty
from sales.models import CreditNote, CreditNoteLine, Sale, SaleLine

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


class CreditNoteError(Exception):
    pass


def refund_amount(line: SaleLine, returned_base: int) -> Decimal:
    if not line.quantity_base:
        return Decimal("0.00")
    amount = Decimal(line.total_price) * Decimal(int(returned_base)) / Decimal(int(line.quantity_base))
    return amount.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _normalize_returns(sale: Sale, returns) -> list[tuple[SaleLine, int]]:
    """
    returns: {line_id: qty} (base units) or
             {line_id: {"quantity": qty, "unit": "UND"|"PKG"}}
    """
    if not returns:
        raise CreditNoteError("Nothing to return")

    lines = {str(line.id): line for line in sale.lines.select_related("product")}

    result = []
    for line_id, requested in returns.items():
        line = lines.get(str(line_id))
        if line is None:
            raise CreditNoteError(f"Line {line_id} does not belong to sale {sale.document_label}")

        if isinstance(requested, dict):
            qty = to_int_qty(requested.get("quantity"), field_name="quantity")
            unit = requested.get("unit") or UNIT_BASE
        else:
            qty = to_int_qty(requested, field_name="quantity")
            unit = UNIT_BASE

        if qty <= 0:
            raise InvalidQuantity("returned quantity must be greater than zero")

        base = qty * conversion_factor(unit, line.product.package_content)
        if base > line.quantity_outstanding:
            logger.warning(
                "Credit note rejected: return exceeds outstanding quantity",
                extra={
                    "sale_id": str(sale.id),
                    "line_id": str(line.id),
                    "requested": base,
                    "outstanding": line.quantity_outstanding,
                },
            )
            raise InvalidQuantity(
                f"Cannot return {base} units of {line.product.name}; "
                f"only {line.quantity_outstanding} remain outstanding"
            )

        result.append((line, base))
    return result


@transaction.atomic
def issue_credit_note(
    sale,
    returns,
    *,
    series: str,
    number: str,
    reason: str = "",
    user=None,
) -> CreditNote:
    sale = Sale.objects.select_for_update().get(pk=getattr(sale, "pk", sale))
    lifecycle.validate_transition(document=sale, target_status=lifecycle.STATUS_PARTIALLY_RETURNED)

    to_return = _normalize_returns(sale, returns)

    with product_lock(*{str(line.product_id) for line, _ in to_return}):
        credit_note = CreditNote.objects.create(
            sale=sale,
            series=series,
            number=number,
            reason=reason or "",
            created_by=user if getattr(user, "pk", None) else None,
        )

        total = Decimal("0.00")
        for line, base in to_return:
            context = sale.movement_context(StockMovement.Reason.RETURN, unit_price=line.unit_price_base)
            context = replace(
                context,
                document_type="NOTA DE CREDITO",
                document_number=credit_note.document_label,
                note=f"Ref {sale.document_type} {sale.document_label}",
                user=user,
            )

            credited = reversal_engine.apply_partial_return(
                line.allocation(),
                base,
                context=context,
                already_returned=line.returned_allocations(),
            )

            amount = refund_amount(line, base)
            CreditNoteLine.objects.create(
                credit_note=credit_note,
                sale_line=line,
                quantity_base=base,
                refund_amount=amount,
                batch_allocations=allocation_to_json(credited),
            )

            SaleLine.objects.filter(pk=line.pk).update(
                quantity_returned=int(line.quantity_returned) + base
            )
            total += amount

        credit_note.total = total
        credit_note.save(update_fields=["total"])

        sale.status = lifecycle.STATUS_PARTIALLY_RETURNED
        sale.save()

    logger.info(
        "Credit note issued",
        extra={
            "sale_id": str(sale.id),
            "credit_note": credit_note.document_label,
            "lines": len(to_return),
            "total": str(total),
        },
    )
    return credit_note
