# products/tests/test_api.py

from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from products.models import StockMovement
from products.services.allocation import allocation_engine
from products.tests.helpers import make_product, sale_context, worked_example_batches

User = get_user_model()


class ProductsApiTests(TestCase):
    """
    GUARANTEES:
    - Endpoints require authentication
    - Stock figures come from batches
    - Manual adjustments are admin-only and land in the kardex
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username="almacen", password="pass1234")
        self.admin = User.objects.create_user(username="jefe", password="pass1234", is_staff=True)

        self.product = make_product()
        self.lot_a, self.lot_b = worked_example_batches(self.product)

    def test_requires_authentication(self):
        res = self.client.get("/api/products/products/")
        self.assertIn(res.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_product_list_shows_stock_from_batches(self):
        self.client.force_authenticate(self.user)
        res = self.client.get("/api/products/products/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        row = res.data["results"][0]
        self.assertEqual(row["sku"], "CER-PIL-620")
        self.assertEqual(row["total_stock"], 150)
        self.assertEqual(row["stock_packages"], {"boxes": 12, "loose_units": 6})
        self.assertEqual(row["average_cost"], "10.6667")

    def test_create_product_normalizes_sku(self):
        self.client.force_authenticate(self.user)
        res = self.client.post(
            "/api/products/products/",
            {"sku": " ron-car-750 ", "name": "Ron Cartavio", "package_content": 6},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["sku"], "RON-CAR-750")
        self.assertEqual(res.data["total_stock"], 0)

    def test_create_product_rejects_zero_package_content(self):
        self.client.force_authenticate(self.user)
        res = self.client.post(
            "/api/products/products/",
            {"sku": "X-1", "name": "X", "package_content": 0},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stock_batches_filter_with_stock(self):
        allocation_engine.allocate(self.product, 50, context=sale_context())

        self.client.force_authenticate(self.user)
        res = self.client.get(f"/api/products/stock-batches/?product={self.product.pk}&with_stock=true")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        codes = [b["code"] for b in res.data["results"]]
        self.assertEqual(codes, ["LOT-B"])

    def test_adjust_requires_admin(self):
        self.client.force_authenticate(self.user)
        res = self.client.post(
            f"/api/products/stock-batches/{self.lot_b.pk}/adjust/",
            {"quantity_delta": -2, "note": "rotura"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_adjust_writes_kardex_row(self):
        self.client.force_authenticate(self.admin)
        res = self.client.post(
            f"/api/products/stock-batches/{self.lot_b.pk}/adjust/",
            {"quantity_delta": -2, "note": "rotura"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["quantity_current"], 98)

        movement = StockMovement.objects.get(reason=StockMovement.Reason.ADJUSTMENT)
        self.assertEqual(movement.direction, "OUT")
        self.assertEqual(movement.performed_by, self.admin)

    def test_adjust_over_initial_is_conflict(self):
        self.client.force_authenticate(self.admin)
        res = self.client.post(
            f"/api/products/stock-batches/{self.lot_b.pk}/adjust/",
            {"quantity_delta": 1, "note": "conteo"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["code"], "OverCredit")

    def test_kardex_endpoint(self):
        allocation_engine.allocate(self.product, 70, context=sale_context())

        self.client.force_authenticate(self.user)
        res = self.client.get(f"/api/products/kardex/?product_id={self.product.pk}")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 4)
        self.assertEqual(res.data["results"][-1]["balance"], 80)

    def test_kardex_rejects_inverted_dates(self):
        self.client.force_authenticate(self.user)
        res = self.client.get("/api/products/kardex/?date_from=2026-02-01&date_to=2026-01-01")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reconcile_endpoint(self):
        self.client.force_authenticate(self.user)
        res = self.client.get(f"/api/products/kardex/reconcile/?product_id={self.product.pk}")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["balanced"])

    def test_reconcile_rejects_malformed_product_id(self):
        self.client.force_authenticate(self.user)
        res = self.client.get("/api/products/kardex/reconcile/", {"product_id": "not-a-uuid"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("product_id", res.data)

        res = self.client.get("/api/products/kardex/reconcile/")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reconcile_unknown_product_is_not_found(self):
        self.client.force_authenticate(self.user)
        res = self.client.get(
            "/api/products/kardex/reconcile/",
            {"product_id": "00000000-0000-0000-0000-000000000000"},
        )
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_valuation_endpoint(self):
        self.client.force_authenticate(self.user)
        res = self.client.get("/api/products/valuation/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["grand_total"], "1600.00")
        self.assertEqual(res.data["rows"][0]["stock"], 150)

    def test_expiring_filter(self):
        self.client.force_authenticate(self.user)
        res = self.client.get("/api/products/stock-batches/?expires_before=2024-01-31")
        self.assertEqual([b["code"] for b in res.data["results"]], ["LOT-A"])
        self.assertEqual(res.data["results"][0]["expiration_date"], date(2024, 1, 10).isoformat())
