"""
record.py: Records and the working set of keys a test engine operates on.
"""

import logging
import random
import time

import kvload.keygen as keygen
import kvload.param as param

logger = logging.getLogger(__name__)


class NoRecordError(LookupError):
    """
    No usable record in the store. Raised by ``get`` and ``take``.
    """
    pass


class Record(object):
    """
    A key plus the context returned by the store when it was written.
    A record without context never expires.
    """
    def __init__(self, key, context=None):
        self.key = key
        self.context = context

    def is_expired(self, now=None):
        if self.context is None:
            return False
        if now is None:
            now = time.time()
        return self.context.creation_time + self.context.time_to_live < now

    def __eq__(self, other):
        if isinstance(other, Record):
            return self.key == other.key and self.context == other.context
        return False

    def __repr__(self):
        return "Record(key={})".format(self.key.hex())


class RecordStore(object):
    """
    Abstract class. Tracks the keys a single engine reads, updates and
    deletes. Subclass of ``RecordStore`` should implement ``add``,
    ``get``, ``take``, ``empty`` and ``delete_exhausted``.
    """
    preloaded = False

    def __init__(self, rng=None):
        self._rng = rng if rng is not None else random.Random()
        self.last_delete = False

    def add(self, record):
        raise NotImplementedError

    def get(self):
        """
        Return a record to read or overwrite. Raises ``NoRecordError``.
        """
        raise NotImplementedError

    def take(self):
        """
        Remove and return a record to delete. Raises ``NoRecordError``.
        """
        raise NotImplementedError

    def empty(self):
        raise NotImplementedError

    def delete_exhausted(self):
        raise NotImplementedError


class DynamicRecordStore(RecordStore):
    """
    Store holding the records created during the run. Records are kept
    in a dense list; removal swaps the last record into the freed slot,
    so picks stay uniform and removal is constant time.
    """
    def __init__(self, rng=None, clock=time.time):
        super().__init__(rng)
        self._records = []
        self._clock = clock

    def __len__(self):
        return len(self._records)

    def __repr__(self):
        return "DynamicRecordStore(records={})".format(len(self._records))

    def _remove(self, index):
        last = self._records.pop()
        if index < len(self._records):
            record = self._records[index]
            self._records[index] = last
            return record
        return last

    def add(self, record):
        self._records.append(record)

    def get(self):
        while not self.empty():
            index = self._rng.randrange(len(self._records))
            record = self._records[index]
            if not record.is_expired(self._clock()):
                return record
            self._remove(index)
            logger.debug("Dropped expired record %s", record)
        raise NoRecordError("no record")

    def take(self):
        while not self.empty():
            record = self._remove(self._rng.randrange(len(self._records)))
            if not record.is_expired(self._clock()):
                return record
        raise NoRecordError("no unexpired record")

    def empty(self):
        return len(self._records) == 0

    def delete_exhausted(self):
        return False


class PreloadedRecordStore(RecordStore):
    """
    Store over a fixed range of keys written before the run. Keys are
    derived from their index on demand and never held in memory. Reads
    use [offset_get, offset_get + num_keys); deletes walk
    [offset_del, offset_del + min(num_keys, MAX_DELETES)) in order.
    """
    preloaded = True

    def __init__(self, num_keys, offset_get=0, offset_del=0, rng=None):
        if num_keys <= 0:
            raise ValueError("Preloaded store needs a positive key count")
        super().__init__(rng)
        self.num_keys = num_keys
        self.offset_get = offset_get
        self.offset_del = offset_del
        self.curr_get = 0
        self.next_delete = 0

    def __len__(self):
        return self.num_keys

    def __repr__(self):
        return "num_keys={} curr_get={} next_delete={} offset_del={} offset_get={}".format(
            self.num_keys, self.curr_get, self.next_delete, self.offset_del, self.offset_get)

    def add(self, record):
        pass

    def get(self):
        count = self.num_keys
        if self.num_keys >= param.MAX_DELETES:
            count = self.num_keys >> param.SKEW_NARROW_SHIFT
        self.curr_get = keygen.sample_skewed(count, self._rng)
        return Record(keygen.derive_key(self.offset_get + self.curr_get))

    def take(self):
        if self.delete_exhausted():
            raise NoRecordError("no more record for destroy")
        record = Record(keygen.derive_key(self.offset_del + self.next_delete))
        self.next_delete += 1
        if self.delete_exhausted():
            self.last_delete = True
        return record

    def deleted_keys(self):
        """
        Keys deleted so far, in deletion order.
        """
        for i in range(self.next_delete):
            yield keygen.derive_key(self.offset_del + i)

    def empty(self):
        return False

    def delete_exhausted(self):
        return self.next_delete >= min(self.num_keys, param.MAX_DELETES)


def new_record_store(num_keys=0, offset_get=0, offset_del=0, rng=None):
    """
    A zero ``num_keys`` gives a dynamic store, anything above gives a
    store over preloaded keys.
    """
    if num_keys > 0:
        return PreloadedRecordStore(num_keys, offset_get, offset_del, rng)
    return DynamicRecordStore(rng)
