"""
test_record.py: Unit tests for records and record stores.
"""

import random
import unittest
import kvload.keygen as keygen
import kvload.param as param
import kvload.record as record
from kvload.client import Context


class RecordTest(unittest.TestCase):
    def test_expired(self):
        self.assertFalse(record.Record(b"k").is_expired())
        rec = record.Record(b"k", Context(100, 10))
        self.assertFalse(rec.is_expired(now=105))
        self.assertFalse(rec.is_expired(now=110))
        self.assertTrue(rec.is_expired(now=111))


class DynamicStoreTest(unittest.TestCase):
    def setUp(self):
        self.now = 1000
        self.store = record.DynamicRecordStore(random.Random(7), clock=lambda: self.now)

    def test_empty(self):
        self.assertTrue(self.store.empty())
        self.assertFalse(self.store.delete_exhausted())
        self.assertFalse(self.store.preloaded)
        with self.assertRaises(record.NoRecordError):
            self.store.get()
        with self.assertRaises(record.NoRecordError):
            self.store.take()

    def test_single_record(self):
        rec = record.Record(b"k1", Context(self.now, 60))
        self.store.add(rec)
        self.assertEqual(self.store.get(), rec)
        self.assertEqual(len(self.store), 1)
        self.assertEqual(self.store.take(), rec)
        self.assertTrue(self.store.empty())

    def test_expired_get(self):
        self.store.add(record.Record(b"k1", Context(self.now - 100, 10)))
        with self.assertRaises(record.NoRecordError):
            self.store.get()
        self.assertTrue(self.store.empty())
        with self.assertRaises(record.NoRecordError):
            self.store.get()

    def test_expired_take(self):
        self.store.add(record.Record(b"k1", Context(self.now - 100, 10)))
        with self.assertRaises(record.NoRecordError):
            self.store.take()
        self.assertTrue(self.store.empty())

    def test_get_skips_expired(self):
        live = record.Record(b"live", Context(self.now, 60))
        for i in range(20):
            self.store.add(record.Record(b"dead%d" % i, Context(0, 1)))
        self.store.add(live)
        self.assertEqual(self.store.get(), live)
        self.assertIn(live, self.store._records)

    def test_take_all(self):
        recs = [record.Record(b"k%d" % i) for i in range(50)]
        for rec in recs:
            self.store.add(rec)
        taken = [self.store.take() for _ in range(50)]
        self.assertTrue(self.store.empty())
        self.assertEqual(sorted(r.key for r in taken), sorted(r.key for r in recs))


class PreloadedStoreTest(unittest.TestCase):
    def test_take_small_range(self):
        store = record.PreloadedRecordStore(5, offset_get=0, offset_del=100, rng=random.Random(1))
        self.assertTrue(store.preloaded)
        for i in range(5):
            self.assertFalse(store.delete_exhausted())
            self.assertFalse(store.last_delete)
            rec = store.take()
            self.assertEqual(rec.key, keygen.derive_key(100 + i))
            self.assertIsNone(rec.context)
        self.assertTrue(store.last_delete)
        self.assertTrue(store.delete_exhausted())
        self.assertEqual(store.next_delete, 5)
        with self.assertRaises(record.NoRecordError):
            store.take()
        self.assertEqual(store.next_delete, 5)
        self.assertEqual(list(store.deleted_keys()),
                         [keygen.derive_key(100 + i) for i in range(5)])

    def test_take_large_range(self):
        store = record.PreloadedRecordStore(param.MAX_DELETES + 5, rng=random.Random(1))
        count = 0
        while True:
            try:
                store.take()
            except record.NoRecordError:
                break
            count += 1
        self.assertEqual(count, param.MAX_DELETES)
        self.assertTrue(store.delete_exhausted())

    def test_add_noop(self):
        store = record.PreloadedRecordStore(10, rng=random.Random(1))
        before = repr(store)
        store.add(record.Record(b"k1"))
        self.assertEqual(repr(store), before)
        self.assertEqual(len(store), 10)
        self.assertFalse(store.empty())

    def test_get(self):
        store = record.PreloadedRecordStore(50, offset_get=1000, rng=random.Random(3))
        keys = set(keygen.derive_key(1000 + i) for i in range(50))
        for _ in range(500):
            rec = store.get()
            self.assertIn(rec.key, keys)
            self.assertEqual(rec.key, keygen.derive_key(1000 + store.curr_get))
        self.assertEqual(store.next_delete, 0)

    def test_get_narrowed(self):
        num_keys = param.MAX_DELETES * 2
        store = record.PreloadedRecordStore(num_keys, rng=random.Random(3))
        for _ in range(2000):
            store.get()
            self.assertLess(store.curr_get, num_keys // 4)

    def test_invalid(self):
        with self.assertRaises(ValueError):
            record.PreloadedRecordStore(0)


class FactoryTest(unittest.TestCase):
    def test_new_record_store(self):
        self.assertIsInstance(record.new_record_store(0), record.DynamicRecordStore)
        store = record.new_record_store(10, 1, 2)
        self.assertIsInstance(store, record.PreloadedRecordStore)
        self.assertEqual(store.offset_get, 1)
        self.assertEqual(store.offset_del, 2)
