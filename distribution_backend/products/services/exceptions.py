# products/services/exceptions.py

"""
INVENTORY ENGINE DOMAIN ERRORS

All errors are raised BEFORE any batch mutation is applied.
Nothing here is ever silently clamped or retried.
"""


class InventoryError(Exception):
    """Base class for inventory engine failures."""


class InvalidQuantity(InventoryError):
    """Non-positive (or non-integer) quantity passed to the engine. Caller bug."""


class InsufficientStock(InventoryError):
    def __init__(self, available: int, required: int, *, product=None):
        self.available = int(available)
        self.required = int(required)
        self.product = product
        name = getattr(product, "name", None) or "product"
        super().__init__(
            f"Insufficient stock for {name}. "
            f"Requested: {self.required}, Available: {self.available}"
        )


class InsufficientBatchStock(InventoryError):
    def __init__(self, batch_id, available: int, requested: int):
        self.batch_id = batch_id
        self.available = int(available)
        self.requested = int(requested)
        super().__init__(
            f"Batch {batch_id} has {self.available} units; cannot debit {self.requested}"
        )


class OverCredit(InventoryError):
    """A credit would push a batch above quantity_initial (e.g. double reversal)."""

    def __init__(self, batch_id, current: int, initial: int, requested: int):
        self.batch_id = batch_id
        self.current = int(current)
        self.initial = int(initial)
        self.requested = int(requested)
        super().__init__(
            f"Crediting {self.requested} to batch {batch_id} would exceed its received "
            f"quantity ({self.current} + {self.requested} > {self.initial})"
        )


class BatchAlreadyConsumed(InventoryError):
    """Purchase reversal blocked: stock from this batch already left through a sale."""

    def __init__(self, batch_id, consumed: int, batch_code: str = ""):
        self.batch_id = batch_id
        self.consumed = int(consumed)
        self.batch_code = batch_code
        label = batch_code or str(batch_id)
        super().__init__(
            f"Lot {label} has {self.consumed} units already sold; the purchase cannot be reversed."
        )


class InvalidDocumentTransition(InventoryError):
    pass


class ProductNotFound(InventoryError):
    """The engine was handed a product id that does not exist. Caller bug."""

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} does not exist")
