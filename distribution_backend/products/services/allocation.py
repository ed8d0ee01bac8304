# products/services/allocation.py

"""
ALLOCATION ENGINE (FEFO / FIFO)

Purpose:
- Decide which batches satisfy a demand of N base units.
- Debit them atomically and hand back the Allocation so the document can
  store it and reverse it exactly later.

HARD RULES:
- No partial allocation: total_stock < required -> InsufficientStock, nothing mutated
- Walk batches in policy order, take min(remaining, quantity_current)
- Expired batches are NOT skipped; FEFO just uses them first
- Policy is a named ordering function, configurable via
  settings.INVENTORY_ALLOCATION_POLICY ("fefo" | "fifo")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.exceptions import ValidationError

from products.models import Product
from products.services.exceptions import InsufficientStock, InvalidQuantity, ProductNotFound
from products.services.kardex import MovementContext
from products.services.units import to_int_qty

logger = logging.getLogger(__name__)


# ============================================================
# VALUE OBJECTS
# ============================================================


@dataclass(frozen=True)
class AllocationEntry:
    batch_id: str
    batch_code: str
    quantity: int

    def to_dict(self) -> dict:
        return {
            "batch_id": str(self.batch_id),
            "batch_code": self.batch_code,
            "quantity": int(self.quantity),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AllocationEntry":
        return cls(
            batch_id=str(data["batch_id"]),
            batch_code=data.get("batch_code") or "",
            quantity=int(data["quantity"]),
        )


# Ordered as drawn; stored verbatim on document lines.
Allocation = tuple[AllocationEntry, ...]


def allocation_from_json(raw) -> Allocation:
    return tuple(AllocationEntry.from_dict(d) for d in (raw or []))


def allocation_to_json(allocation) -> list[dict]:
    return [entry.to_dict() for entry in allocation]


def allocation_total(allocation) -> int:
    return sum(int(entry.quantity) for entry in allocation)


def allocation_entries(allocation) -> list[tuple[str, int]]:
    """(batch_id, qty) pairs in the shape BatchStore's *_many methods expect."""
    return [(str(e.batch_id), int(e.quantity)) for e in allocation]


# ============================================================
# ORDERING POLICIES
# ============================================================


def order_batches_by_expiration_ascending(batches):
    """FEFO: earliest expiration first; ties by receipt time then id."""
    return sorted(batches, key=lambda b: (b.expiration_date, b.created_at, str(b.id)))


def order_batches_by_receipt(batches):
    """Strict FIFO by receipt time."""
    return sorted(batches, key=lambda b: (b.created_at, str(b.id)))


POLICIES = {
    "fefo": order_batches_by_expiration_ascending,
    "fifo": order_batches_by_receipt,
}


def resolve_policy(policy=None):
    if callable(policy):
        return policy

    name = (policy or getattr(settings, "INVENTORY_ALLOCATION_POLICY", "fefo") or "fefo")
    name = str(name).strip().lower()
    try:
        return POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown allocation policy: {name!r}") from None


def resolve_product(product) -> Product:
    if isinstance(product, Product):
        return product
    try:
        return Product.objects.get(pk=product)
    except (Product.DoesNotExist, ValueError, ValidationError):
        raise ProductNotFound(product) from None


# ============================================================
# ENGINE
# ============================================================


class AllocationEngine:
    def __init__(self, store=None, policy=None):
        if store is None:
            from products.services.batch_store import batch_store as store
        self.store = store
        self.policy = policy

    def plan(self, product, required_base_qty, *, for_update: bool = False) -> Allocation:
        """
        Pure planning step. Reads batches, never writes.
        """
        required = to_int_qty(required_base_qty, field_name="required_base_qty")
        if required <= 0:
            raise InvalidQuantity("required quantity must be greater than zero")

        product = resolve_product(product)
        batches = self.store.batches_for(product, self.policy, for_update=for_update)
        available = sum(int(b.quantity_current) for b in batches)

        if available < required:
            raise InsufficientStock(available, required, product=product)

        remaining = required
        entries = []
        for batch in batches:
            if remaining <= 0:
                break
            current = int(batch.quantity_current)
            if current <= 0:
                continue

            take = min(remaining, current)
            entries.append(AllocationEntry(batch_id=str(batch.id), batch_code=batch.code, quantity=take))
            remaining -= take

        return tuple(entries)

    def allocate(self, product, required_base_qty, *, context: MovementContext) -> Allocation:
        from products.services.locking import product_lock

        product = resolve_product(product)
        with product_lock(product):
            try:
                allocation = self.plan(product, required_base_qty, for_update=True)
            except InsufficientStock as exc:
                logger.warning(
                    "Allocation rejected: insufficient stock",
                    extra={
                        "product_id": str(getattr(product, "pk", product)),
                        "required": exc.required,
                        "available": exc.available,
                        "document_number": context.document_number,
                    },
                )
                raise

            self.store.debit_many(allocation_entries(allocation), context=context)

        logger.info(
            "Stock allocated",
            extra={
                "product_id": str(getattr(product, "pk", product)),
                "required": allocation_total(allocation),
                "batches": len(allocation),
                "document_number": context.document_number,
            },
        )
        return allocation


allocation_engine = AllocationEngine()
