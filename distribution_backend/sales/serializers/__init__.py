# sales/serializers/__init__.py

from .commands import (
    CreditNoteInputSerializer,
    EditLineSerializer,
    InvoiceOrderSerializer,
    PickingRowSerializer,
    SaleCreateSerializer,
)
from .sale import CreditNoteSerializer, SaleLineSerializer, SaleSerializer

__all__ = [
    "SaleSerializer",
    "SaleLineSerializer",
    "CreditNoteSerializer",
    "SaleCreateSerializer",
    "EditLineSerializer",
    "CreditNoteInputSerializer",
    "InvoiceOrderSerializer",
    "PickingRowSerializer",
]
