# purchases/apps.py

"""
PURCHASES APP CONFIG

Supplier purchase documents. Receiving a purchase creates stock batches;
editing or voiding one reverses them.
"""

from django.apps import AppConfig


class PurchasesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "purchases"
    verbose_name = "Purchases"
