# sales/tests/test_picking.py

from django.test import TestCase

from products.tests.helpers import make_product, worked_example_batches
from sales.services.credit_note_service import issue_credit_note
from sales.services.picking import build_picking_list
from sales.services.sale_service import commit_sale, create_sale, void_sale


class PickingListTests(TestCase):
    """
    GUARANTEES:
    - Quantities are consolidated per product across documents
    - Returned units are not picked; voided and draft documents are skipped
    - Base units are split into whole packages + loose units
    """

    def setUp(self):
        self.product = make_product()
        worked_example_batches(self.product)

    def _sale(self, number, quantity, commit=True):
        sale = create_sale(
            series="B001",
            number=number,
            client_name="Cliente",
            lines=[{"product_id": self.product.pk, "quantity": quantity, "unit_price": "2.00"}],
        )
        return commit_sale(sale) if commit else sale

    def test_consolidates_and_splits_packages(self):
        s1 = self._sale("1", 30)
        s2 = self._sale("2", 20)

        rows = build_picking_list([s1, s2])
        self.assertEqual(len(rows), 1)
        self.assertEqual((rows[0].quantity_base, rows[0].boxes, rows[0].loose_units), (50, 4, 2))
        self.assertEqual(rows[0].package_type, "CAJA")

    def test_skips_voided_and_draft_documents(self):
        s1 = self._sale("1", 30)
        s2 = void_sale(self._sale("2", 20))
        s3 = self._sale("3", 5, commit=False)

        rows = build_picking_list([s1.pk, s2.pk, s3.pk])
        self.assertEqual(rows[0].quantity_base, 30)

    def test_subtracts_returns(self):
        s1 = self._sale("1", 30)
        issue_credit_note(s1, {s1.lines.get().pk: 6}, series="BC01", number="1")

        rows = build_picking_list([s1])
        self.assertEqual((rows[0].quantity_base, rows[0].boxes, rows[0].loose_units), (24, 2, 0))

    def test_fully_returned_line_disappears(self):
        s1 = self._sale("1", 12)
        issue_credit_note(s1, {s1.lines.get().pk: 12}, series="BC01", number="1")
        self.assertEqual(build_picking_list([s1]), [])
