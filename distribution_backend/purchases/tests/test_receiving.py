# purchases/tests/test_receiving.py

from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from products.models import Product, StockBatch, StockMovement
from products.services.batch_store import batch_store
from products.services.exceptions import BatchAlreadyConsumed, InvalidDocumentTransition
from products.services.units import UNIT_BASE, UNIT_PACKAGE
from purchases.models import Purchase, Supplier
from purchases.services.receiving_service import (
    PurchaseClosedError,
    PurchaseReceivingError,
    create_purchase,
    edit_purchase,
    mark_purchase_paid,
    receive_purchase,
    void_purchase,
)
from sales.services.sale_service import commit_sale, create_sale, void_sale

User = get_user_model()


def _item(product, quantity, unit_price, *, unit=UNIT_PACKAGE, code="L-01", is_bonus=False):
    return {
        "product_id": product.pk,
        "unit": unit,
        "quantity": quantity,
        "unit_price": unit_price,
        "batch_code": code,
        "expiration_date": date(2026, 12, 31),
        "is_bonus": is_bonus,
    }


class PurchaseReceivingTests(TestCase):
    """
    GUARANTEES:
    - Receiving creates one batch per item, in base units, at gross cost per base unit
    - Bonus items enter at cost 0 and never refresh last_cost
    - Totals are IGV-inclusive (bonus excluded)
    - A purchase is received once
    """

    def setUp(self):
        self.user = User.objects.create_user(username="compras", password="pass1234")
        self.supplier = Supplier.objects.create(name="Backus", ruc="20100113610")
        self.product = Product.objects.create(
            sku="CER-PIL-620",
            name="Cerveza Pilsen 620ml",
            unit_type="BOTELLA",
            package_type="CAJA",
            package_content=12,
        )

    def _purchase(self, items, number="F001-100"):
        return create_purchase(
            supplier=self.supplier,
            document_number=number,
            items=items,
            user=self.user,
        )

    def test_create_is_draft_and_touches_no_stock(self):
        purchase = self._purchase([_item(self.product, 2, "60.00")])

        self.assertEqual(purchase.status, "DRAFT")
        self.assertEqual(purchase.items.get().quantity_base, 24)
        self.assertEqual(batch_store.total_stock(self.product), 0)

    def test_receive_creates_batches_in_base_units(self):
        purchase = self._purchase([_item(self.product, 2, "60.00")])
        purchase = receive_purchase(purchase, user=self.user)

        batch = StockBatch.objects.get(purchase=purchase)
        self.assertEqual(batch.quantity_initial, 24)
        self.assertEqual(batch.cost, Decimal("5.0000"))
        self.assertEqual(batch.code, "L-01")

        self.product.refresh_from_db()
        self.assertEqual(self.product.last_cost, Decimal("5.0000"))

        self.assertEqual(purchase.status, "COMMITTED")
        self.assertEqual(purchase.total, Decimal("120.00"))
        self.assertEqual(purchase.subtotal, Decimal("101.69"))
        self.assertEqual(purchase.igv, Decimal("18.31"))

        movement = StockMovement.objects.get(batch=batch)
        self.assertEqual(movement.reason, "RECEIPT")
        self.assertEqual(movement.document_type, "COMPRA FACTURA")
        self.assertEqual(movement.counterparty, "Backus")
        self.assertEqual(movement.performed_by, self.user)

    def test_bonus_item_enters_at_zero_cost(self):
        purchase = self._purchase(
            [
                _item(self.product, 1, "60.00"),
                _item(self.product, 6, "4.00", unit=UNIT_BASE, code="BONO", is_bonus=True),
            ]
        )
        receive_purchase(purchase)

        bonus = StockBatch.objects.get(code="BONO")
        self.assertEqual(bonus.cost, Decimal("0.0000"))
        self.assertEqual(bonus.quantity_initial, 6)

        purchase.refresh_from_db()
        self.assertEqual(purchase.total, Decimal("60.00"))

        self.product.refresh_from_db()
        self.assertEqual(self.product.last_cost, Decimal("5.0000"))

    def test_receive_twice_is_rejected(self):
        purchase = receive_purchase(self._purchase([_item(self.product, 1, "60.00")]))
        with self.assertRaises(InvalidDocumentTransition):
            receive_purchase(purchase)
        self.assertEqual(StockBatch.objects.count(), 1)

    def test_missing_expiration_is_rejected(self):
        item = _item(self.product, 1, "60.00")
        item["expiration_date"] = None
        with self.assertRaises(PurchaseReceivingError):
            self._purchase([item])

    def test_unknown_product_is_rejected(self):
        item = _item(self.product, 1, "60.00")
        item["product_id"] = "not-a-uuid"
        with self.assertRaises(PurchaseReceivingError):
            self._purchase([item])


class PurchaseReversalTests(TestCase):
    """
    GUARANTEES:
    - A purchase whose stock was (partly) sold cannot be edited or voided
    - Voiding an untouched purchase removes its stock (PURCHASE_REVERSAL)
    - Editing reverses old batches and receives the new items
    - Paid purchases are closed
    """

    def setUp(self):
        self.user = User.objects.create_user(username="compras", password="pass1234")
        self.supplier = Supplier.objects.create(name="Backus")
        self.product = Product.objects.create(
            sku="CER-PIL-620",
            name="Cerveza Pilsen 620ml",
            package_content=12,
        )
        self.purchase = receive_purchase(
            create_purchase(
                supplier=self.supplier,
                document_number="F001-200",
                items=[_item(self.product, 1, "60.00")],
            )
        )
        self.batch = StockBatch.objects.get(purchase=self.purchase)

    def _sell(self, quantity, number="1"):
        sale = create_sale(
            series="B001",
            number=number,
            client_name="Bodega Rosita",
            lines=[{"product_id": self.product.pk, "quantity": quantity, "unit_price": "6.50"}],
        )
        return commit_sale(sale)

    def test_edit_after_full_sale_is_blocked(self):
        self._sell(12)

        with self.assertRaises(BatchAlreadyConsumed) as ctx:
            edit_purchase(self.purchase, [_item(self.product, 2, "60.00")])

        self.assertEqual(ctx.exception.consumed, 12)

        self.purchase.refresh_from_db()
        self.batch.refresh_from_db()
        self.assertEqual(self.purchase.status, "COMMITTED")
        self.assertEqual(self.batch.quantity_current, 0)
        self.assertIsNone(self.batch.reversed_at)
        self.assertEqual(self.purchase.items.count(), 1)

    def test_void_after_partial_sale_is_blocked(self):
        self._sell(1)

        with self.assertRaises(BatchAlreadyConsumed):
            void_purchase(self.purchase)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_current, 11)
        self.assertFalse(StockMovement.objects.filter(reason="PURCHASE_REVERSAL").exists())

    def test_void_untouched_purchase(self):
        purchase = void_purchase(self.purchase, user=self.user)

        self.assertEqual(purchase.status, "VOIDED")
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.quantity_current, 0)
        self.assertIsNotNone(self.batch.reversed_at)

        reversal = StockMovement.objects.get(reason="PURCHASE_REVERSAL")
        self.assertEqual(reversal.direction, "OUT")
        self.assertEqual(reversal.quantity, 12)

    def test_void_is_allowed_once_sold_stock_came_back(self):
        sale = self._sell(5)
        void_sale(sale)

        void_purchase(self.purchase)
        self.assertEqual(batch_store.total_stock(self.product), 0)

    def test_voided_purchase_cannot_be_voided_again(self):
        void_purchase(self.purchase)
        with self.assertRaises(InvalidDocumentTransition):
            void_purchase(self.purchase)

    def test_edit_replaces_batches(self):
        purchase = edit_purchase(self.purchase, [_item(self.product, 3, "66.00", code="L-02")], user=self.user)

        self.assertEqual(purchase.status, "COMMITTED")
        self.assertEqual(purchase.total, Decimal("198.00"))

        self.batch.refresh_from_db()
        self.assertIsNotNone(self.batch.reversed_at)

        live = StockBatch.objects.get(purchase=purchase, reversed_at__isnull=True)
        self.assertEqual(live.code, "L-02")
        self.assertEqual(live.quantity_current, 36)
        self.assertEqual(live.cost, Decimal("5.5000"))
        self.assertEqual(batch_store.total_stock(self.product), 36)

    def test_paid_purchase_is_closed(self):
        mark_purchase_paid(self.purchase)
        self.purchase.refresh_from_db()
        self.assertEqual(self.purchase.payment_status, Purchase.PAYMENT_PAID)

        with self.assertRaises(PurchaseClosedError):
            void_purchase(self.purchase)
        with self.assertRaises(PurchaseClosedError):
            edit_purchase(self.purchase, [_item(self.product, 1, "60.00")])

    def test_receive_paid_closes_at_once(self):
        purchase = receive_purchase(
            create_purchase(
                supplier=self.supplier,
                document_number="F001-201",
                items=[_item(self.product, 1, "60.00")],
            ),
            paid=True,
        )
        self.assertTrue(purchase.is_closed)
