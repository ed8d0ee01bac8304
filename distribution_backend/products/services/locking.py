# products/services/locking.py

"""
PER-PRODUCT SERIALIZATION

All allocate/debit/credit paths for one product run under product_lock(),
so two concurrent sales cannot both validate stock against a stale snapshot.

Two layers:
- in-process: one re-entrant lock per product id (nested engine calls in the
  same thread are fine)
- database: SELECT ... FOR UPDATE on the product rows inside transaction.atomic()

Locks are always taken in sorted id order to avoid deadlocks when a
document touches several products.

Scope of each layer:
- the in-process lock is released when the block exits, which can be
  before an enclosing transaction.atomic() commits (the sale and void
  services open one first). Past that point only the row lock serializes
  writers, and it holds until the outer commit.
- SQLite ignores FOR UPDATE, so there the guarantee ends with the block.
  prod settings refuse SQLite for this reason.
- the registry keeps one RLock per product id ever locked; it is bounded
  by the size of the catalogue and never pruned.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager

from django.db import transaction

from products.models import Product

_registry_guard = threading.Lock()
_product_locks: dict[str, threading.RLock] = {}


def _lock_for(product_id: str) -> threading.RLock:
    with _registry_guard:
        lock = _product_locks.get(product_id)
        if lock is None:
            lock = threading.RLock()
            _product_locks[product_id] = lock
        return lock


def _normalize_ids(products) -> list[str]:
    ids = set()
    for p in products:
        if p is None:
            continue
        ids.add(str(getattr(p, "pk", p)))
    return sorted(ids)


@contextmanager
def product_lock(*products):
    """
    Serialize stock mutations for the given products (instances or ids).

    Yields inside a transaction; everything done in the block commits or
    rolls back together.
    """
    ids = _normalize_ids(products)
    locks = [_lock_for(pid) for pid in ids]

    for lock in locks:
        lock.acquire()
    try:
        with transaction.atomic():
            list(
                Product.objects.select_for_update()
                .filter(id__in=ids)
                .order_by("id")
                .values_list("id", flat=True)
            )
            yield ids
    finally:
        for lock in reversed(locks):
            lock.release()
