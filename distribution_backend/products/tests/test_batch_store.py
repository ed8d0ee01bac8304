# products/tests/test_batch_store.py

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from products.models import StockBatch, StockMovement
from products.services.batch_store import batch_store
from products.services.exceptions import InsufficientBatchStock, InvalidQuantity, OverCredit
from products.services.kardex import MovementContext
from products.tests.helpers import make_product, receive, sale_context


class BatchStoreTests(TestCase):
    """
    BatchStore is the only writer of quantity_current.

    GUARANTEES:
    - 0 <= quantity_current <= quantity_initial after every operation
    - Every mutation appends exactly one kardex row per touched batch
    - Failed validation leaves every batch untouched
    """

    def setUp(self):
        self.product = make_product()
        self.batch = receive(self.product, 20, "4.5000", date(2026, 12, 31), code="l-001")

    def test_create_batch_records_receipt(self):
        self.assertEqual(self.batch.quantity_initial, 20)
        self.assertEqual(self.batch.quantity_current, 20)
        self.assertEqual(self.batch.code, "L-001")
        self.assertEqual(self.batch.cost, Decimal("4.5000"))

        movement = StockMovement.objects.get(batch=self.batch)
        self.assertEqual(movement.direction, StockMovement.Direction.IN)
        self.assertEqual(movement.reason, StockMovement.Reason.RECEIPT)
        self.assertEqual(movement.quantity, 20)

    def test_blank_code_becomes_sin_lote(self):
        batch = receive(self.product, 5, "1.00", date(2026, 6, 1))
        self.assertEqual(batch.code, "SIN LOTE")

    def test_create_batch_rejects_non_positive_quantity(self):
        with self.assertRaises(InvalidQuantity):
            receive(self.product, 0, "1.00", date(2026, 6, 1))

    def test_debit_then_credit(self):
        batch_store.debit(self.batch.pk, 8, context=sale_context())
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_current, 12)

        credit_ctx = MovementContext(reason=StockMovement.Reason.VOID, document_number="B001-1")
        batch_store.credit(self.batch.pk, 8, context=credit_ctx)
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_current, 20)

        reasons = list(
            StockMovement.objects.filter(batch=self.batch).order_by("created_at").values_list("reason", flat=True)
        )
        self.assertEqual(reasons, ["RECEIPT", "SALE", "VOID"])

    def test_debit_more_than_available_is_rejected(self):
        with self.assertRaises(InsufficientBatchStock):
            batch_store.debit(self.batch.pk, 21, context=sale_context())

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_current, 20)
        self.assertEqual(StockMovement.objects.filter(direction="OUT").count(), 0)

    def test_credit_above_initial_is_never_clamped(self):
        batch_store.debit(self.batch.pk, 5, context=sale_context())

        with self.assertRaises(OverCredit):
            batch_store.credit(
                self.batch.pk,
                6,
                context=MovementContext(reason=StockMovement.Reason.RETURN),
            )

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_current, 15)

    def test_debit_many_aggregates_entries_per_batch(self):
        other = receive(self.product, 10, "4.00", date(2026, 11, 30))

        with self.assertRaises(InsufficientBatchStock):
            batch_store.debit_many(
                [(other.pk, 3), (self.batch.pk, 15), (self.batch.pk, 6)],
                context=sale_context(),
            )

        # All-or-nothing: the valid "other" entry was not applied either.
        other.refresh_from_db()
        self.batch.refresh_from_db()
        self.assertEqual(other.quantity_current, 10)
        self.assertEqual(self.batch.quantity_current, 20)

    def test_unknown_batch_is_rejected(self):
        with self.assertRaises(StockBatch.DoesNotExist):
            batch_store.debit("00000000-0000-0000-0000-000000000000", 1, context=sale_context())

    def test_adjust_writes_adjustment_movements(self):
        ctx = MovementContext(reason=StockMovement.Reason.ADJUSTMENT, note="broken bottles")

        batch_store.adjust(self.batch, -3, context=ctx)
        batch_store.adjust(self.batch, 2, context=ctx)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_current, 19)

        adjustments = StockMovement.objects.filter(reason=StockMovement.Reason.ADJUSTMENT).order_by("created_at")
        self.assertEqual([m.direction for m in adjustments], ["OUT", "IN"])
        self.assertEqual(adjustments[0].note, "broken bottles")

    def test_adjust_rejects_zero(self):
        with self.assertRaises(InvalidQuantity):
            batch_store.adjust(self.batch, 0, context=MovementContext(reason="ADJUSTMENT"))

    def test_batch_identity_fields_are_immutable(self):
        batch = StockBatch.objects.get(pk=self.batch.pk)
        batch.cost = Decimal("9.9900")
        with self.assertRaises(ValidationError):
            batch.save()

    def test_batches_are_never_deleted(self):
        with self.assertRaises(ValidationError):
            self.batch.delete()

    def test_movements_are_append_only(self):
        movement = StockMovement.objects.get(batch=self.batch)
        movement.note = "edited"
        with self.assertRaises(ValidationError):
            movement.save()
