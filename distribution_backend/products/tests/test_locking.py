# products/tests/test_locking.py

import threading
from datetime import date

from django.test import SimpleTestCase, TestCase

from products.services.batch_store import batch_store
from products.services.locking import _lock_for, _normalize_ids, product_lock
from products.tests.helpers import make_product, receive, sale_context


class LockRegistryTests(SimpleTestCase):
    """
    GUARANTEES:
    - One lock per product id, shared by every caller
    - Ids are de-duplicated and taken in sorted order
    - A held product lock blocks other threads until released
    """

    def test_same_id_same_lock(self):
        self.assertIs(_lock_for("p-1"), _lock_for("p-1"))
        self.assertIsNot(_lock_for("p-1"), _lock_for("p-2"))

    def test_ids_sorted_and_unique(self):
        self.assertEqual(_normalize_ids(["b", "a", None, "b"]), ["a", "b"])

    def test_lock_blocks_other_threads(self):
        lock = _lock_for("p-blocking")
        acquired = []

        def worker():
            acquired.append(lock.acquire(timeout=0.05))

        lock.acquire()
        try:
            t = threading.Thread(target=worker)
            t.start()
            t.join()
        finally:
            lock.release()

        self.assertEqual(acquired, [False])


class ProductLockTests(TestCase):
    """
    GUARANTEES:
    - product_lock is re-entrant within one thread
    - Work done inside it rolls back as a unit
    """

    def setUp(self):
        self.product = make_product()
        self.batch = receive(self.product, 10, "1.00", date(2026, 1, 1))

    def test_nested_locks_do_not_deadlock(self):
        with product_lock(self.product):
            with product_lock(self.product.pk):
                batch_store.debit(self.batch.pk, 3, context=sale_context())
        self.assertEqual(batch_store.total_stock(self.product), 7)

    def test_block_rolls_back_on_error(self):
        with self.assertRaises(RuntimeError):
            with product_lock(self.product):
                batch_store.debit(self.batch.pk, 4, context=sale_context())
                raise RuntimeError("abort")

        self.assertEqual(batch_store.total_stock(self.product), 10)

    def test_in_process_lock_is_released_on_exit(self):
        acquired = []

        def worker():
            lock = _lock_for(str(self.product.pk))
            got = lock.acquire(timeout=1)
            acquired.append(got)
            if got:
                lock.release()

        with product_lock(self.product):
            pass

        t = threading.Thread(target=worker)
        t.start()
        t.join()
        self.assertEqual(acquired, [True])
