# products/serializers/__init__.py

from .kardex import (
    KardexEntrySerializer,
    KardexQuerySerializer,
    KardexReconcileQuerySerializer,
    ValuationReportSerializer,
)
from .product import ProductSerializer
from .stock_batch import StockAdjustmentSerializer, StockBatchSerializer

__all__ = [
    "KardexEntrySerializer",
    "KardexQuerySerializer",
    "KardexReconcileQuerySerializer",
    "ValuationReportSerializer",
    "ProductSerializer",
    "StockBatchSerializer",
    "StockAdjustmentSerializer",
]
