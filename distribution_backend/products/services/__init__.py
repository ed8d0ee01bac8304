from .allocation import AllocationEngine, AllocationEntry, allocation_engine
from .batch_store import BatchStore, batch_store
from .costing import CostEngine, cost_engine
from .kardex import MovementContext, MovementLedger, ledger
from .reversal import ReversalEngine, reversal_engine

__all__ = [
    "AllocationEngine",
    "AllocationEntry",
    "allocation_engine",
    "BatchStore",
    "batch_store",
    "CostEngine",
    "cost_engine",
    "MovementContext",
    "MovementLedger",
    "ledger",
    "ReversalEngine",
    "reversal_engine",
]
