"""
engine.py: Test engine issuing a cyclic request sequence against a store.
"""

import enum
import logging
import random
import threading
import time

import kvload.keygen as keygen
import kvload.param as param
from kvload.client import StoreError
from kvload.ratectl import FixedRateController, VariableRateController
from kvload.record import NoRecordError, Record, new_record_store
from kvload.sequence import RequestType
from kvload.stats import Statistics

logger = logging.getLogger(__name__)


class EngineState(enum.Enum):
    RUNNING = 1
    DRAINING = 2
    STOPPED = 3


class TestEngine(object):
    """
    Walks ``sequence`` over and over, issuing each item's requests
    against ``client`` until cancelled. With ``num_keys`` > 0 the engine
    works on a preloaded key range, skips creates, and writes back every
    key it deleted once cancelled. Each engine owns its record store,
    statistics and rate controller; run several engines on separate
    threads to scale the load.
    """
    def __init__(self, client, rdgen, sequence,
                 num_keys=0, offset_get=0, offset_del=0,
                 num_req_per_second=param.DEFAULT_REQUESTS_PER_SECOND,
                 rng=None, clock=time.monotonic, sleep=time.sleep):
        self.client = client
        self.rdgen = rdgen
        self.sequence = sequence
        self.rng = rng if rng is not None else random.Random()
        self.rec_store = new_record_store(num_keys, offset_get, offset_del, self.rng)
        self.stats = Statistics(clock)
        self.moving_stats = Statistics(clock)
        self.num_req_per_second = num_req_per_second
        self.state = EngineState.STOPPED
        self.done = threading.Event()
        self.restored = 0
        self._clock = clock
        self._sleep = sleep
        self._handlers = None
        self._rate_ctl = None

    def initialize(self):
        self._handlers = {
            RequestType.CREATE: self._invoke_create,
            RequestType.GET: self._invoke_get,
            RequestType.UPDATE: self._invoke_update,
            RequestType.SET: self._invoke_set,
            RequestType.DESTROY: self._invoke_destroy,
        }
        missing = [str(t) for t in RequestType if t not in self._handlers]
        if missing:
            raise ValueError("No handler for request types: " + ", ".join(missing))

        if self.rdgen.is_variable:
            # The schedule is first read at the end of the first window
            self._rate_ctl = VariableRateController(self.rdgen,
                                                    self.num_req_per_second,
                                                    clock=self._clock,
                                                    sleep=self._sleep)
        else:
            self._rate_ctl = FixedRateController(self.num_req_per_second,
                                                 self.stats,
                                                 sleep=self._sleep)

    def _invoke_create(self):
        if self.rec_store.preloaded:
            return
        key = keygen.new_test_key(self.rng)
        ctx = self.client.create(key, self.rdgen.create_payload(), ttl=self.rdgen.get_ttl())
        self.rec_store.add(Record(key, ctx))

    def _invoke_get(self):
        rec = self.rec_store.get()
        ttl = 0
        if not self.rdgen.disable_get_ttl:
            ttl = self.rdgen.get_ttl()
        self.client.get(rec.key, ttl=ttl)

    def _invoke_update(self):
        rec = self.rec_store.get()
        self.client.update(rec.key, self.rdgen.create_payload(), ttl=self.rdgen.get_ttl())

    def _invoke_set(self):
        rec = self.rec_store.get()
        self.client.set(rec.key, self.rdgen.create_payload(), ttl=self.rdgen.get_ttl())

    def _invoke_destroy(self):
        if self.rec_store.delete_exhausted():
            return
        rec = self.rec_store.take()
        self.client.destroy(rec.key)

    def invoke(self, req_type):
        """
        Issue one request. Returns the error it failed with, or ``None``.
        """
        handler = self._handlers.get(req_type)
        if handler is None:
            raise ValueError("Unsupported request type: {}".format(req_type))
        try:
            handler()
        except (StoreError, NoRecordError) as e:
            return e
        return None

    def _record(self, req_type, elapsed, error):
        self.stats.put(req_type, elapsed, error)
        self.moving_stats.put(req_type, elapsed, error)

    def restore_data(self):
        """
        Create again every preloaded key deleted during the run.
        Failures are logged and counted; the pass continues.
        """
        if not self.rec_store.preloaded or self.rec_store.next_delete <= 0:
            return
        logger.info("Add back deleted keys: count=%d", self.rec_store.next_delete)
        for key in self.rec_store.deleted_keys():
            now = self._clock()
            error = None
            try:
                self.client.create(key, self.rdgen.create_payload())
            except StoreError as e:
                error = e
            self._record(RequestType.CREATE, self._clock() - now, error)
            self.restored += 1
            if error is not None:
                logger.error("%s error: %s", RequestType.CREATE, error)
                logger.error("%r", self.rec_store)

    def _run_requests(self, cancel):
        """
        Main loop. Returns True when cancelled, False when the circuit
        breaker tripped. The breaker only guards preloaded runs.
        """
        err_count = 0
        while True:
            if cancel.is_set():
                return True
            for item in self.sequence:
                if self.rec_store.preloaded and item.req_type == RequestType.CREATE:
                    continue
                for _ in range(item.num_requests):
                    if cancel.is_set():
                        return True
                    now = self._clock()
                    error = self.invoke(item.req_type)
                    elapsed = self._clock() - now
                    if item.req_type == RequestType.DESTROY and \
                            self.rec_store.delete_exhausted():
                        if not self.rec_store.last_delete:
                            continue
                        self.rec_store.last_delete = False
                    self._record(item.req_type, elapsed, error)
                    if error is not None:
                        logger.error("%s error: %s", item.req_type, error)
                        logger.error("%r", self.rec_store)
                        if self.rec_store.preloaded:
                            err_count += 1
                            if err_count > param.MAX_CONSECUTIVE_ERRORS:
                                logger.error("Too many consecutive errors, stopping engine")
                                return False
                    else:
                        err_count = 0
                    self._rate_ctl.pace(now)

    def run(self, cancel):
        """
        Run until ``cancel`` is set or the circuit breaker trips. Blocks;
        ``done`` is set on return.
        """
        if self._handlers is None:
            self.initialize()
        self.done.clear()
        self.state = EngineState.RUNNING
        self.stats.start()
        self.moving_stats.start()
        if isinstance(self._rate_ctl, VariableRateController):
            self._rate_ctl.start()
        try:
            if self._run_requests(cancel):
                self.state = EngineState.DRAINING
                self.restore_data()
        finally:
            self.state = EngineState.STOPPED
            self.done.set()
