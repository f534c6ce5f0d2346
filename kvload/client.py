"""
client.py: Key-value store client interface and an in-memory store.
"""

import importlib
import threading
import time

import kvload.keygen as keygen
import kvload.param as param


class StoreError(Exception):
    """
    Base class of errors reported by a store client.
    """
    pass


class KeyNotFoundError(StoreError):
    pass


class DuplicateKeyError(StoreError):
    pass


class Context(object):
    """
    Per-key metadata returned by the store.
    """
    def __init__(self, creation_time, time_to_live, version=1):
        self.creation_time = creation_time
        self.time_to_live = time_to_live
        self.version = version

    def __eq__(self, other):
        if isinstance(other, Context):
            return self.creation_time == other.creation_time and \
                self.time_to_live == other.time_to_live and \
                self.version == other.version
        return False

    def __repr__(self):
        return "Context(creation_time={}, time_to_live={}, version={})".format(
            self.creation_time, self.time_to_live, self.version)


class StoreClient(object):
    """
    Abstract class. Defines the store operations a test engine issues.
    Subclass of ``StoreClient`` should implement all five operations and
    report failures by raising ``StoreError``. A ``ttl`` of ``None``
    leaves the choice to the store.
    """
    def create(self, key, value, ttl=None):
        """
        Insert a new key. Returns the ``Context`` of the new record.
        """
        raise NotImplementedError

    def get(self, key, ttl=None):
        """
        Returns a (value, context) tuple.
        """
        raise NotImplementedError

    def update(self, key, value, ttl=None):
        raise NotImplementedError

    def set(self, key, value, ttl=None):
        raise NotImplementedError

    def destroy(self, key):
        raise NotImplementedError


class InMemoryClient(StoreClient):
    """
    Store client backed by a local dictionary, with the same TTL rules
    as the remote store. Safe to share between engines.
    """
    def __init__(self, default_ttl=param.DEFAULT_TTL, clock=time.time):
        self._store = {}
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            now = self._clock()
            return sum(1 for _, ctx in self._store.values() if not self._expired(ctx, now))

    def _ttl(self, ttl):
        if ttl is None or ttl == 0:
            return self._default_ttl
        return ttl

    @staticmethod
    def _expired(ctx, now):
        return ctx.creation_time + ctx.time_to_live < now

    def _lookup(self, key, now):
        entry = self._store.get(key)
        if entry is None or self._expired(entry[1], now):
            self._store.pop(key, None)
            raise KeyNotFoundError("no key {}".format(key.hex()))
        return entry

    def create(self, key, value, ttl=None):
        with self._lock:
            now = self._clock()
            entry = self._store.get(key)
            if entry is not None and not self._expired(entry[1], now):
                raise DuplicateKeyError("key {} exists".format(key.hex()))
            ctx = Context(int(now), self._ttl(ttl))
            self._store[key] = (value, ctx)
            return ctx

    def get(self, key, ttl=None):
        with self._lock:
            now = self._clock()
            value, ctx = self._lookup(key, now)
            if ttl:
                # Extend the lifetime so at least ``ttl`` seconds remain
                remaining = ctx.creation_time + ctx.time_to_live - now
                if remaining < ttl:
                    ctx.time_to_live += int(ttl - remaining)
            return value, ctx

    def update(self, key, value, ttl=None):
        with self._lock:
            now = self._clock()
            _, ctx = self._lookup(key, now)
            new_ctx = Context(ctx.creation_time, ctx.time_to_live, ctx.version + 1)
            if ttl:
                new_ctx.time_to_live = max(ctx.time_to_live, int(now - ctx.creation_time + ttl))
            self._store[key] = (value, new_ctx)
            return new_ctx

    def set(self, key, value, ttl=None):
        with self._lock:
            now = self._clock()
            entry = self._store.get(key)
            if entry is None or self._expired(entry[1], now):
                ctx = Context(int(now), self._ttl(ttl))
            else:
                old = entry[1]
                ctx = Context(old.creation_time, old.time_to_live, old.version + 1)
                if ttl:
                    ctx.time_to_live = max(old.time_to_live, int(now - old.creation_time + ttl))
            self._store[key] = (value, ctx)
            return ctx

    def destroy(self, key):
        with self._lock:
            self._store.pop(key, None)


def preload(store_client, num_keys, offset=0, value=b"", ttl=None):
    """
    Write ``num_keys`` derived keys starting at index ``offset``.
    """
    for i in range(num_keys):
        store_client.set(keygen.derive_key(offset + i), value, ttl)


def load_client(path, **kwargs):
    """
    Build a client from a ``module:factory`` path.
    """
    module_name, sep, attr = path.partition(':')
    if not sep or not module_name or not attr:
        raise ValueError("Invalid client path: " + path)
    factory = getattr(importlib.import_module(module_name), attr)
    return factory(**kwargs)
