import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from products.models import Product
from products.services.units import UNIT_PACKAGE
from purchases.models import Supplier
from purchases.services.receiving_service import create_purchase, receive_purchase


class Command(BaseCommand):
    help = "Seed demo products and receive their opening stock through a purchase"

    PRODUCTS = [
        ("CER-PIL-620", "Cerveza Pilsen 620ml", "BOTELLA", "CAJA", 12, "5.20"),
        ("CER-CUS-620", "Cerveza Cusquena 620ml", "BOTELLA", "CAJA", 12, "6.10"),
        ("GAS-INC-500", "Inca Kola 500ml", "BOTELLA", "PAQUETE", 15, "2.10"),
        ("AGU-SLU-625", "Agua San Luis 625ml", "BOTELLA", "PAQUETE", 15, "1.20"),
        ("RON-CAR-750", "Ron Cartavio 750ml", "BOTELLA", "CAJA", 6, "28.50"),
    ]

    def add_arguments(self, parser):
        parser.add_argument("--document", default="F001-SEED", help="Seed purchase document number")

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        supplier, _ = Supplier.objects.get_or_create(
            name="Distribuidora Demo S.A.C.",
            defaults={"ruc": "20123456789"},
        )

        items = []
        today = timezone.localdate()

        for sku, name, unit_type, package_type, content, cost in self.PRODUCTS:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "unit_type": unit_type,
                    "package_type": package_type,
                    "package_content": content,
                    "min_stock": content * 2,
                },
            )

            for i in range(2):
                boxes = random.randint(5, 20)
                items.append(
                    {
                        "product": product,
                        "unit": UNIT_PACKAGE,
                        "quantity": boxes,
                        "unit_price": Decimal(cost) * product.package_content,
                        "batch_code": f"L{today:%y%m}-{i + 1}",
                        "expiration_date": today + timedelta(days=180 + i * 60),
                    }
                )

        document = options["document"]
        if supplier.purchases.filter(document_number=document.upper()).exists():
            self.stdout.write(self.style.WARNING(f"Purchase {document} already exists; nothing to do."))
            return

        purchase = create_purchase(supplier=supplier, document_number=document, items=items)
        receive_purchase(purchase)

        self.stdout.write(
            self.style.SUCCESS(
                f"Products and stock seeded ({len(items)} batches via purchase {purchase.document_number})."
            )
        )
