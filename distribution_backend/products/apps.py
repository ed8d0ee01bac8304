# products/apps.py

"""
PRODUCTS APP CONFIG

Product master data plus the batch inventory engine:
- StockBatch / StockMovement (kardex)
- BatchStore, AllocationEngine, CostEngine, ReversalEngine
"""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "products"
    verbose_name = "Products & Inventory"
