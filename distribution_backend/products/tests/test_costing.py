# products/tests/test_costing.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from products.services.allocation import allocation_engine
from products.services.costing import cost_engine
from products.tests.helpers import make_product, receive, sale_context, worked_example_batches


class CostEngineTests(TestCase):
    """
    GUARANTEES:
    - Weighted average cost is Σ(current · cost) / Σ(current), 4 places
    - Valuation is Σ(current · cost), 2 places
    - Cost of goods for an allocation uses the cost of the batches drawn
    """

    def setUp(self):
        self.product = make_product(last_cost=Decimal("12.3400"), min_stock=100)
        self.lot_a, self.lot_b = worked_example_batches(self.product)

    def test_weighted_average_cost(self):
        # (50 * 10 + 100 * 11) / 150
        self.assertEqual(cost_engine.weighted_average_cost(self.product), Decimal("10.6667"))

    def test_total_valuation(self):
        self.assertEqual(cost_engine.total_valuation(self.product), Decimal("1600.00"))

    def test_allocation_cost(self):
        allocation = allocation_engine.allocate(self.product, 70, context=sale_context())
        self.assertEqual(cost_engine.allocation_cost(allocation), Decimal("720.0000"))

    def test_no_stock_falls_back_to_last_cost(self):
        allocation_engine.allocate(self.product, 150, context=sale_context())
        self.assertEqual(cost_engine.weighted_average_cost(self.product), Decimal("12.3400"))
        self.assertEqual(cost_engine.weighted_average_cost(self.product.pk), Decimal("12.3400"))
        self.assertEqual(cost_engine.total_valuation(self.product), Decimal("0.00"))

    def test_bonus_stock_lowers_average(self):
        receive(self.product, 50, "0", date(2026, 5, 1), code="BONO")
        # 1600 / 200
        self.assertEqual(cost_engine.weighted_average_cost(self.product), Decimal("8.0000"))

    def test_valuation_report(self):
        other = make_product(sku="RON-CAR-750", name="Ron Cartavio 750ml", package_content=6)
        receive(other, 6, "28.5", date(2027, 1, 1))

        report = cost_engine.valuation_report()
        rows = {row.sku: row for row in report.rows}

        self.assertEqual(rows["CER-PIL-620"].stock, 150)
        self.assertEqual(rows["CER-PIL-620"].value, Decimal("1600.00"))
        self.assertFalse(rows["CER-PIL-620"].below_min_stock)
        self.assertEqual(rows["RON-CAR-750"].value, Decimal("171.00"))
        self.assertEqual(report.grand_total, Decimal("1771.00"))
