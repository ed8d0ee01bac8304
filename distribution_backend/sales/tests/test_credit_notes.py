# sales/tests/test_credit_notes.py

from decimal import Decimal

from django.test import TestCase

from products.models import StockMovement
from products.services.batch_store import batch_store
from products.services.exceptions import InvalidDocumentTransition, InvalidQuantity
from products.services.kardex import ledger
from products.tests.helpers import make_product, worked_example_batches
from sales.services.credit_note_service import CreditNoteError, issue_credit_note
from sales.services.sale_service import commit_sale, create_sale, edit_sale_line, void_sale


class CreditNoteTests(TestCase):
    """
    GUARANTEES:
    - Returned units go back to the batches the line drew, in the order drawn
    - Returns never exceed what is still outstanding (cumulative)
    - Refund is proportional to the line total
    - A later void only credits what is still outstanding
    """

    def setUp(self):
        self.product = make_product()
        self.lot_a, self.lot_b = worked_example_batches(self.product)
        self.sale = commit_sale(
            create_sale(
                series="B001",
                number="1",
                client_name="Bodega Rosita",
                lines=[{"product_id": self.product.pk, "quantity": 70, "unit_price": "2.00"}],
            )
        )
        self.line = self.sale.lines.get()

    def _levels(self):
        self.lot_a.refresh_from_db()
        self.lot_b.refresh_from_db()
        return self.lot_a.quantity_current, self.lot_b.quantity_current

    def test_partial_return_credits_first_drawn_batch(self):
        note = issue_credit_note(self.sale, {self.line.pk: 30}, series="BC01", number="1", reason="botellas rotas")

        self.assertEqual(self._levels(), (30, 80))
        self.assertEqual(note.total, Decimal("60.00"))

        note_line = note.lines.get()
        self.assertEqual(note_line.quantity_base, 30)
        self.assertEqual(note_line.refund_amount, Decimal("60.00"))
        self.assertEqual(
            note_line.batch_allocations,
            [{"batch_id": str(self.lot_a.pk), "batch_code": "LOT-A", "quantity": 30}],
        )

        self.line.refresh_from_db()
        self.assertEqual(self.line.quantity_returned, 30)
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.status, "PARTIALLY_RETURNED")

        movement = StockMovement.objects.get(reason="RETURN")
        self.assertEqual(movement.document_type, "NOTA DE CREDITO")
        self.assertEqual(movement.document_number, "BC01-1")

    def test_returns_are_bounded_cumulatively(self):
        issue_credit_note(self.sale, {self.line.pk: 30}, series="BC01", number="1")

        with self.assertRaises(InvalidQuantity):
            issue_credit_note(self.sale, {self.line.pk: 41}, series="BC01", number="2")

        issue_credit_note(self.sale, {self.line.pk: 40}, series="BC01", number="3")
        self.assertEqual(self._levels(), (50, 100))

        with self.assertRaises(InvalidQuantity):
            issue_credit_note(self.sale, {self.line.pk: 1}, series="BC01", number="4")

    def test_return_in_packages(self):
        issue_credit_note(self.sale, {self.line.pk: {"quantity": 2, "unit": "PKG"}}, series="BC01", number="1")
        self.line.refresh_from_db()
        self.assertEqual(self.line.quantity_returned, 24)

    def test_void_after_partial_return_credits_only_outstanding(self):
        issue_credit_note(self.sale, {self.line.pk: 30}, series="BC01", number="1")
        void_sale(self.sale)

        self.assertEqual(self._levels(), (50, 100))
        self.assertEqual(batch_store.total_stock(self.product), 150)
        self.assertTrue(ledger.reconcile(self.product).balanced)

    def test_partially_returned_sale_cannot_be_edited(self):
        issue_credit_note(self.sale, {self.line.pk: 10}, series="BC01", number="1")
        with self.assertRaises(InvalidDocumentTransition):
            edit_sale_line(self.line, quantity=5)

    def test_draft_sale_cannot_take_returns(self):
        draft = create_sale(
            series="B001",
            number="2",
            client_name="X",
            lines=[{"product_id": self.product.pk, "quantity": 1}],
        )
        with self.assertRaises(InvalidDocumentTransition):
            issue_credit_note(draft, {draft.lines.get().pk: 1}, series="BC01", number="1")

    def test_foreign_line_is_rejected(self):
        with self.assertRaises(CreditNoteError):
            issue_credit_note(self.sale, {"00000000-0000-0000-0000-000000000000": 1}, series="BC01", number="1")

    def test_refund_is_proportional_and_rounds_half_up(self):
        note = issue_credit_note(self.sale, {self.line.pk: 7}, series="BC01", number="1")
        self.assertEqual(note.total, Decimal("14.00"))

        sale = commit_sale(
            create_sale(
                series="B001",
                number="9",
                client_name="X",
                lines=[{"product_id": self.product.pk, "quantity": 2, "unit_price": "0.025"}],
            )
        )
        line = sale.lines.get()
        self.assertEqual(line.total_price, Decimal("0.05"))

        note = issue_credit_note(sale, {line.pk: 1}, series="BC01", number="2")
        self.assertEqual(note.total, Decimal("0.03"))
