# sales/tests/test_api.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from products.services.batch_store import batch_store
from products.tests.helpers import make_product, worked_example_batches

User = get_user_model()

SALES_URL = "/api/sales/sales/"


class SalesApiTests(TestCase):
    """
    GUARANTEES:
    - POST creates and commits in one atomic call (commit=false keeps a DRAFT)
    - Stock and lifecycle conflicts -> 409 with an error code
    - Document rules (FACTURA needs RUC) -> 400
    - Authentication is required
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="vendedor", password="pass1234")
        self.client.force_authenticate(self.user)

        self.product = make_product()
        self.lot_a, self.lot_b = worked_example_batches(self.product)

    def _payload(self, quantity=70, number="1", **extra):
        payload = {
            "series": "B001",
            "number": number,
            "client_name": "Bodega Rosita",
            "lines": [{"product_id": str(self.product.pk), "quantity": quantity, "unit_price": "2.00"}],
        }
        payload.update(extra)
        return payload

    def _create(self, **kwargs):
        return self.client.post(SALES_URL, self._payload(**kwargs), format="json")

    def test_requires_authentication(self):
        res = APIClient().get(SALES_URL)
        self.assertIn(res.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_create_commits_by_default(self):
        res = self._create()
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)

        self.assertEqual(res.data["status"], "COMMITTED")
        self.assertEqual(res.data["created_by_username"], "vendedor")
        allocation = res.data["lines"][0]["batch_allocations"]
        self.assertEqual([(a["batch_code"], a["quantity"]) for a in allocation], [("LOT-A", 50), ("LOT-B", 20)])
        self.assertEqual(batch_store.total_stock(self.product), 80)

    def test_insufficient_stock_is_conflict_and_atomic(self):
        res = self._create(quantity=151)

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "InsufficientStock")
        self.assertEqual((res.data["available"], res.data["required"]), (150, 151))

        # the draft created in the same request is rolled back too
        self.assertEqual(self.client.get(SALES_URL).data["count"], 0)

    def test_draft_then_commit(self):
        res = self._create(commit=False)
        self.assertEqual(res.data["status"], "DRAFT")
        self.assertEqual(batch_store.total_stock(self.product), 150)

        res = self.client.post(f"{SALES_URL}{res.data['id']}/commit/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "COMMITTED")

    def test_factura_without_ruc_is_rejected(self):
        res = self._create(document_type="FACTURA", client_doc_number="12345678")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_document_is_rejected(self):
        self._create(quantity=1)
        res = self._create(quantity=1)
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(batch_store.total_stock(self.product), 149)

    def test_edit_line(self):
        sale = self._create().data
        line_id = sale["lines"][0]["id"]

        res = self.client.post(f"{SALES_URL}{sale['id']}/edit-line/", {"line_id": line_id, "quantity": 30}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["lines"][0]["quantity_base"], 30)
        self.assertEqual(batch_store.total_stock(self.product), 120)

    def test_edit_unknown_line_is_not_found(self):
        sale = self._create().data
        res = self.client.post(
            f"{SALES_URL}{sale['id']}/edit-line/",
            {"line_id": "00000000-0000-0000-0000-000000000000", "quantity": 1},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_void_twice_is_conflict(self):
        sale = self._create().data
        url = f"{SALES_URL}{sale['id']}/void/"

        self.assertEqual(self.client.post(url).status_code, status.HTTP_200_OK)
        res = self.client.post(url)
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "InvalidDocumentTransition")
        self.assertEqual(batch_store.total_stock(self.product), 150)

    def test_credit_note(self):
        sale = self._create().data
        line_id = sale["lines"][0]["id"]
        url = f"{SALES_URL}{sale['id']}/credit-notes/"

        res = self.client.post(
            url,
            {"series": "BC01", "number": "1", "reason": "rotura", "lines": [{"line_id": line_id, "quantity": 30}]},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["total"], "60.00")
        self.assertEqual(res.data["lines"][0]["quantity_base"], 30)

        res = self.client.post(
            url,
            {"series": "BC01", "number": "2", "lines": [{"line_id": line_id, "quantity": 41}]},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "InvalidQuantity")

        detail = self.client.get(f"{SALES_URL}{sale['id']}/").data
        self.assertEqual(detail["status"], "PARTIALLY_RETURNED")
        self.assertEqual(len(detail["credit_notes"]), 1)

    def test_invoice_order(self):
        order = self._create(document_type="PEDIDO", series="P001", client_doc_number="20512345678").data

        res = self.client.post(f"{SALES_URL}{order['id']}/invoice/", {"series": "F001", "number": "10"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["document_type"], "FACTURA")
        self.assertEqual(res.data["order_reference"], "P001-1")

    def test_list_filters(self):
        self._create(quantity=1, number="1")
        self._create(quantity=1, number="2", commit=False)

        res = self.client.get(SALES_URL, {"status": "draft"})
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["number"], "2")

    def test_picking_list(self):
        s1 = self._create(quantity=30, number="1").data
        s2 = self._create(quantity=20, number="2").data

        res = self.client.get("/api/sales/picking/", {"sale_ids": f"{s1['id']},{s2['id']}"})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["documents"], 2)
        row = res.data["results"][0]
        self.assertEqual((row["quantity_base"], row["boxes"], row["loose_units"]), (50, 4, 2))

    def test_picking_list_rejects_bad_ids(self):
        res = self.client.get("/api/sales/picking/", {"sale_ids": "abc"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        res = self.client.get("/api/sales/picking/")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
