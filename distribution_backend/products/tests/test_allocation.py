# products/tests/test_allocation.py

from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings

from products.models import StockMovement
from products.services.allocation import (
    AllocationEngine,
    AllocationEntry,
    allocation_engine,
    allocation_from_json,
    allocation_to_json,
    resolve_policy,
)
from products.services.batch_store import batch_store
from products.services.costing import cost_engine
from products.services.exceptions import InsufficientStock, InvalidQuantity, ProductNotFound
from products.services.kardex import MovementContext
from products.services.reversal import reversal_engine
from products.tests.helpers import make_product, receive, sale_context, worked_example_batches


class FefoAllocationTests(TestCase):
    """
    GUARANTEES:
    - Earliest-expiring batches are drawn first (expired ones included)
    - Allocation covers the demand exactly or raises with nothing mutated
    - Reversing a stored allocation restores batch quantities exactly
    """

    def setUp(self):
        self.product = make_product()
        self.lot_a, self.lot_b = worked_example_batches(self.product)

    def test_allocate_walks_batches_by_expiration(self):
        allocation = allocation_engine.allocate(self.product, 70, context=sale_context())

        self.assertEqual(
            allocation,
            (
                AllocationEntry(str(self.lot_a.pk), "LOT-A", 50),
                AllocationEntry(str(self.lot_b.pk), "LOT-B", 20),
            ),
        )

        self.lot_a.refresh_from_db()
        self.lot_b.refresh_from_db()
        self.assertEqual(self.lot_a.quantity_current, 0)
        self.assertEqual(self.lot_b.quantity_current, 80)
        self.assertEqual(batch_store.total_stock(self.product), 80)
        self.assertEqual(cost_engine.weighted_average_cost(self.product), Decimal("11.0000"))

        outs = StockMovement.objects.filter(reason=StockMovement.Reason.SALE).order_by("created_at")
        self.assertEqual([(m.batch_id, m.quantity) for m in outs], [(self.lot_a.pk, 50), (self.lot_b.pk, 20)])

    def test_reversal_restores_quantities_exactly(self):
        allocation = allocation_engine.allocate(self.product, 70, context=sale_context())

        reversal_engine.reverse_sale_allocation(
            allocation,
            context=MovementContext(reason=StockMovement.Reason.VOID, document_number="B001-1"),
        )

        self.lot_a.refresh_from_db()
        self.lot_b.refresh_from_db()
        self.assertEqual(self.lot_a.quantity_current, 50)
        self.assertEqual(self.lot_b.quantity_current, 100)

    def test_insufficient_stock_mutates_nothing(self):
        with self.assertRaises(InsufficientStock) as ctx:
            allocation_engine.allocate(self.product, 151, context=sale_context())

        self.assertEqual(ctx.exception.available, 150)
        self.assertEqual(ctx.exception.required, 151)

        self.lot_a.refresh_from_db()
        self.lot_b.refresh_from_db()
        self.assertEqual((self.lot_a.quantity_current, self.lot_b.quantity_current), (50, 100))
        self.assertFalse(StockMovement.objects.filter(direction=StockMovement.Direction.OUT).exists())

    def test_exact_total_stock_is_allocatable(self):
        allocation = allocation_engine.allocate(self.product, 150, context=sale_context())
        self.assertEqual(sum(e.quantity for e in allocation), 150)
        self.assertEqual(batch_store.total_stock(self.product), 0)

    def test_empty_batches_are_skipped(self):
        allocation_engine.allocate(self.product, 50, context=sale_context())

        allocation = allocation_engine.allocate(self.product, 10, context=sale_context("B001-2"))
        self.assertEqual(allocation, (AllocationEntry(str(self.lot_b.pk), "LOT-B", 10),))

    def test_non_positive_demand_is_rejected(self):
        for qty in (0, -5):
            with self.assertRaises(InvalidQuantity):
                allocation_engine.allocate(self.product, qty, context=sale_context())

    def test_unknown_product_is_not_reported_as_missing_stock(self):
        for product_id in ("00000000-0000-0000-0000-000000000000", "not-a-uuid"):
            with self.assertRaises(ProductNotFound):
                allocation_engine.plan(product_id, 1)
            with self.assertRaises(ProductNotFound):
                allocation_engine.allocate(product_id, 1, context=sale_context())

    def test_product_id_is_accepted(self):
        plan = allocation_engine.plan(str(self.product.pk), 60)
        self.assertEqual([e.quantity for e in plan], [50, 10])

    def test_plan_does_not_write(self):
        plan = allocation_engine.plan(self.product, 60)
        self.assertEqual([e.quantity for e in plan], [50, 10])
        self.assertEqual(batch_store.total_stock(self.product), 150)

    def test_same_expiration_falls_back_to_receipt_order(self):
        product = make_product(sku="AGU-SLU-625", name="Agua San Luis", package_content=15)
        first = receive(product, 5, "1.00", date(2026, 3, 1), code="FIRST")
        receive(product, 5, "1.00", date(2026, 3, 1), code="SECOND")

        allocation = allocation_engine.plan(product, 3)
        self.assertEqual(allocation[0].batch_id, str(first.pk))

    def test_allocation_json_shape(self):
        allocation = allocation_engine.plan(self.product, 70)
        raw = allocation_to_json(allocation)

        self.assertEqual(raw[0], {"batch_id": str(self.lot_a.pk), "batch_code": "LOT-A", "quantity": 50})
        self.assertEqual(allocation_from_json(raw), allocation)


class FifoAllocationTests(TestCase):
    """
    GUARANTEES:
    - The FIFO policy draws strictly by receipt order
    - The default policy follows settings.INVENTORY_ALLOCATION_POLICY
    """

    def setUp(self):
        self.product = make_product()
        self.lot_a, self.lot_b = worked_example_batches(self.product)

    def test_fifo_engine_uses_receipt_order(self):
        engine = AllocationEngine(policy="fifo")
        allocation = engine.allocate(self.product, 70, context=sale_context())

        self.assertEqual(allocation, (AllocationEntry(str(self.lot_b.pk), "LOT-B", 70),))

    @override_settings(INVENTORY_ALLOCATION_POLICY="fifo")
    def test_policy_from_settings(self):
        allocation = AllocationEngine().plan(self.product, 10)
        self.assertEqual(allocation[0].batch_id, str(self.lot_b.pk))

    def test_unknown_policy_is_rejected(self):
        with self.assertRaises(ValueError):
            resolve_policy("lifo")
