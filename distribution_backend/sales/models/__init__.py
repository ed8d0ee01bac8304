# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS
"""

from .credit_note import CreditNote, CreditNoteLine
from .sale import Sale
from .sale_line import SaleLine

__all__ = [
    "Sale",
    "SaleLine",
    "CreditNote",
    "CreditNoteLine",
]
