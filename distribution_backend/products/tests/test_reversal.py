# products/tests/test_reversal.py

from datetime import date

from django.test import TestCase

from products.models import StockMovement
from products.services.allocation import allocation_engine, allocation_entries
from products.services.batch_store import batch_store
from products.services.exceptions import BatchAlreadyConsumed
from products.services.reversal import reversal_engine
from products.tests.helpers import make_product, receipt_context, receive, sale_context


class PurchaseReceiptReversalTests(TestCase):
    """
    GUARANTEES:
    - A received batch is reversed only while it is whole
    - Credits released in the same unit of work are applied before the reversal
    - A blocked reversal writes nothing
    """

    def setUp(self):
        self.product = make_product()
        self.batch = receive(self.product, 24, "5.00", date(2026, 6, 1), code="L-01")

    def test_whole_batch_is_reversed_to_zero(self):
        batch = reversal_engine.reverse_purchase_receipt(self.batch, context=receipt_context())

        self.assertEqual(batch.quantity_current, 0)
        self.assertIsNotNone(batch.reversed_at)
        movement = StockMovement.objects.get(reason="PURCHASE_REVERSAL")
        self.assertEqual((movement.direction, movement.quantity), ("OUT", 24))

    def test_consumed_batch_is_refused(self):
        allocation_engine.allocate(self.product, 5, context=sale_context())

        with self.assertRaises(BatchAlreadyConsumed) as ctx:
            reversal_engine.reverse_purchase_receipt(self.batch, context=receipt_context())

        self.assertEqual(ctx.exception.consumed, 5)
        self.assertEqual(batch_store.total_stock(self.product), 19)
        self.assertFalse(StockMovement.objects.filter(reason="PURCHASE_REVERSAL").exists())

    def test_released_credits_are_applied_first(self):
        allocation = allocation_engine.allocate(self.product, 5, context=sale_context())
        entries = allocation_entries(allocation)
        released = {str(self.batch.pk): 5}
        self.batch.refresh_from_db()

        reversal_engine.check_purchase_reversal(self.batch, released)
        with self.assertRaises(BatchAlreadyConsumed):
            reversal_engine.reverse_purchase_receipt(self.batch, context=receipt_context())

        batch_store.credit_many(entries, context=sale_context().with_reason(StockMovement.Reason.VOID))
        batch = reversal_engine.reverse_purchase_receipt(self.batch, context=receipt_context())
        self.assertEqual(batch.quantity_current, 0)

    def test_check_counts_only_what_is_released(self):
        allocation_engine.allocate(self.product, 5, context=sale_context())
        self.batch.refresh_from_db()

        with self.assertRaises(BatchAlreadyConsumed) as ctx:
            reversal_engine.check_purchase_reversal(self.batch, {str(self.batch.pk): 2})
        self.assertEqual(ctx.exception.consumed, 3)
