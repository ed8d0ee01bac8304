# products/services/costing.py

"""
COST ENGINE (READ-ONLY)

- weighted_average_cost = Σ(current · cost) / Σ(current), 4 places
  (falls back to product.last_cost when nothing is on hand)
- total_valuation      = Σ(current · cost), 2 places
- allocation_cost      = cost of goods for a stored allocation

No writes. Safe to call from reports and serializers.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import DecimalField, ExpressionWrapper, F, Sum

from products.models import Product, StockBatch

FOURPLACES = Decimal("0.0001")
TWOPLACES = Decimal("0.01")


def q4(value) -> Decimal:
    return Decimal(value or 0).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def q2(value) -> Decimal:
    return Decimal(value or 0).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


_VALUE_EXPR = ExpressionWrapper(
    F("quantity_current") * F("cost"),
    output_field=DecimalField(max_digits=24, decimal_places=4),
)


@dataclass(frozen=True)
class ValuationRow:
    product_id: str
    sku: str
    name: str
    stock: int
    average_cost: Decimal
    value: Decimal
    min_stock: int

    @property
    def below_min_stock(self) -> bool:
        return self.stock <= self.min_stock


@dataclass(frozen=True)
class ValuationReport:
    rows: tuple
    grand_total: Decimal


class CostEngine:
    def _totals(self, product) -> tuple[int, Decimal]:
        product_id = getattr(product, "pk", product)
        agg = StockBatch.objects.filter(product_id=product_id).aggregate(
            qty=Sum("quantity_current"),
            value=Sum(_VALUE_EXPR),
        )
        return int(agg["qty"] or 0), Decimal(agg["value"] or 0)

    def weighted_average_cost(self, product) -> Decimal:
        qty, value = self._totals(product)
        if qty <= 0:
            if not isinstance(product, Product):
                product = Product.objects.get(pk=product)
            return q4(product.last_cost)
        return q4(value / Decimal(qty))

    def total_valuation(self, product) -> Decimal:
        _, value = self._totals(product)
        return q2(value)

    def allocation_cost(self, allocation) -> Decimal:
        """Σ entry.quantity · batch.cost for an allocation (4 places)."""
        batch_ids = [str(e.batch_id) for e in allocation]
        costs = {
            str(pk): cost
            for pk, cost in StockBatch.objects.filter(pk__in=batch_ids).values_list("id", "cost")
        }
        total = Decimal("0")
        for entry in allocation:
            total += Decimal(costs.get(str(entry.batch_id)) or 0) * Decimal(int(entry.quantity))
        return q4(total)

    def valuation_report(self, products=None) -> ValuationReport:
        qs = products if products is not None else Product.objects.filter(is_active=True)

        rows = []
        grand_total = Decimal("0.00")
        for product in qs:
            qty, value = self._totals(product)
            avg = q4(value / Decimal(qty)) if qty > 0 else q4(product.last_cost)
            row = ValuationRow(
                product_id=str(product.pk),
                sku=product.sku,
                name=product.name,
                stock=qty,
                average_cost=avg,
                value=q2(value),
                min_stock=int(product.min_stock or 0),
            )
            rows.append(row)
            grand_total += row.value

        return ValuationReport(rows=tuple(rows), grand_total=q2(grand_total))


cost_engine = CostEngine()
