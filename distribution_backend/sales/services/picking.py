# sales/services/picking.py

"""
DISPATCH PICKING LIST

Read-only consolidation of what the warehouse must load for a set of
documents: base units per product (minus returns), split into whole
packages + loose units. Voided and draft documents are skipped.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass

from products.services import document_lifecycle as lifecycle
from products.services.units import split_base_units
from sales.models import SaleLine

PICKABLE_STATUSES = {
    lifecycle.STATUS_COMMITTED,
    lifecycle.STATUS_EDITED,
    lifecycle.STATUS_PARTIALLY_RETURNED,
}


@dataclass(frozen=True)
class PickingRow:
    product_id: str
    sku: str
    name: str
    unit_type: str
    package_type: str
    package_content: int
    quantity_base: int
    boxes: int
    loose_units: int


def build_picking_list(sales) -> list[PickingRow]:
    sale_ids = [str(getattr(s, "pk", s)) for s in sales]

    lines = (
        SaleLine.objects.filter(sale_id__in=sale_ids, sale__status__in=PICKABLE_STATUSES)
        .select_related("product")
        .order_by("product__name", "product__sku")
    )

    totals: OrderedDict[str, list] = OrderedDict()
    for line in lines:
        qty = int(line.quantity_base) - int(line.quantity_returned)
        if qty <= 0:
            continue
        key = str(line.product_id)
        if key not in totals:
            totals[key] = [line.product, 0]
        totals[key][1] += qty

    rows = []
    for product_id, (product, qty) in totals.items():
        boxes, loose = split_base_units(qty, product.package_content)
        rows.append(
            PickingRow(
                product_id=product_id,
                sku=product.sku,
                name=product.name,
                unit_type=product.unit_type,
                package_type=product.package_type,
                package_content=int(product.package_content),
                quantity_base=qty,
                boxes=boxes,
                loose_units=loose,
            )
        )
    return rows
