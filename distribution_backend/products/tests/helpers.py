# products/tests/helpers.py

from datetime import date
from decimal import Decimal

from products.models import Product, StockMovement
from products.services.batch_store import batch_store
from products.services.kardex import MovementContext


def make_product(sku="CER-PIL-620", name="Cerveza Pilsen 620ml", package_content=12, **extra):
    return Product.objects.create(
        sku=sku,
        name=name,
        unit_type="BOTELLA",
        package_type="CAJA",
        package_content=package_content,
        **extra,
    )


def receipt_context(number="F001-100", supplier="Backus"):
    return MovementContext(
        reason=StockMovement.Reason.RECEIPT,
        document_type="COMPRA FACTURA",
        document_number=number,
        counterparty=supplier,
    )


def sale_context(number="B001-1", client="Bodega Rosita"):
    return MovementContext(
        reason=StockMovement.Reason.SALE,
        document_type="BOLETA",
        document_number=number,
        counterparty=client,
    )


def receive(product, quantity, cost, expiration_date, code=""):
    return batch_store.create_batch(
        product,
        quantity,
        Decimal(str(cost)),
        expiration_date,
        code=code,
        context=receipt_context(),
    )


def worked_example_batches(product):
    """
    Lot B is received BEFORE lot A, but A expires first:
      A: exp 2024-01-10, 50 units @ 10.00
      B: exp 2024-02-10, 100 units @ 11.00
    """
    b = receive(product, 100, "11.00", date(2024, 2, 10), code="LOT-B")
    a = receive(product, 50, "10.00", date(2024, 1, 10), code="LOT-A")
    return a, b
