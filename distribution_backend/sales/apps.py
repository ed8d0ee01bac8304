# sales/apps.py

"""
SALES APP CONFIG

Sales, customer orders, credit notes and dispatch picking.
"""

from django.apps import AppConfig


class SalesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sales"
    verbose_name = "Sales"
