# products/views/__init__.py

"""
Products views package exports (router + report views).
"""

from .product import ProductViewSet
from .reports import KardexReconcileView, KardexView, ValuationView
from .stock_batch import StockBatchViewSet

__all__ = [
    "ProductViewSet",
    "StockBatchViewSet",
    "KardexView",
    "KardexReconcileView",
    "ValuationView",
]
