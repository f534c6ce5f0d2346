"""
stats.py: Classes and functions related to statistics collection and dumping.
"""

import sys
import threading
import time

from sortedcontainers import SortedDict

from kvload.sequence import RequestType


class LatencyHistogram(object):
    """
    Request count per latency (in usecs), walked in latency order.
    """
    def __init__(self):
        self.latencies = SortedDict()
        self.total_ops = 0

    def add(self, latency, count=1):
        self.latencies[latency] = self.latencies.get(latency, 0) + count
        self.total_ops += count

    def merge(self, other):
        for latency, count in other.latencies.items():
            self.add(latency, count)

    def summary(self):
        """
        Returns a (average, median, 90%, 99%) latency tuple.
        """
        if self.total_ops == 0:
            return (0, -1, -1, -1)
        count = 0
        total_latency = 0
        med_latency = -1
        n_latency = -1
        nn_latency = -1
        for latency, n in self.latencies.items():
            total_latency += (latency * n)
            count += n
            if count >= self.total_ops // 2 and med_latency == -1:
                med_latency = latency
            if count >= self.total_ops * 0.9 and n_latency == -1:
                n_latency = latency
            if count >= self.total_ops * 0.99 and nn_latency == -1:
                nn_latency = latency
        return (total_latency / self.total_ops, med_latency, n_latency, nn_latency)


class Statistics(object):
    """
    Collects per request type counts, errors and latencies for one or
    more engines. ``start_time`` uses the same clock the engine uses.
    """
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self.start_time = clock()
        self._reset()

    def _reset(self):
        self.requests = {}
        self.errors = {}
        self.histograms = {}
        for req_type in RequestType:
            self.requests[req_type] = 0
            self.errors[req_type] = 0
            self.histograms[req_type] = LatencyHistogram()

    def start(self, now=None):
        with self._lock:
            self.start_time = self._clock() if now is None else now

    def reset(self):
        with self._lock:
            self._reset()
            self.start_time = self._clock()

    def put(self, req_type, elapsed, error=None):
        """
        Record one request that took ``elapsed`` seconds.
        """
        with self._lock:
            self.requests[req_type] += 1
            if error is not None:
                self.errors[req_type] += 1
            self.histograms[req_type].add(round(elapsed * 1000000))

    def get_request_count(self, req_type=None):
        with self._lock:
            if req_type is None:
                return sum(self.requests.values())
            return self.requests[req_type]

    def get_error_count(self, req_type=None):
        with self._lock:
            if req_type is None:
                return sum(self.errors.values())
            return self.errors[req_type]

    def merge(self, other):
        """
        Add the counts of ``other``. Keeps the earlier start time.
        """
        with other._lock:
            requests = dict(other.requests)
            errors = dict(other.errors)
            histograms = {req_type: LatencyHistogram() for req_type in RequestType}
            for req_type, hist in other.histograms.items():
                histograms[req_type].merge(hist)
            start_time = other.start_time
        with self._lock:
            for req_type in RequestType:
                self.requests[req_type] += requests[req_type]
                self.errors[req_type] += errors[req_type]
                self.histograms[req_type].merge(histograms[req_type])
            self.start_time = min(self.start_time, start_time)

    def dump(self, title="", out=None, now=None):
        if out is None:
            out = sys.stdout
        with self._lock:
            if now is None:
                now = self._clock()
            elapsed = now - self.start_time
            total = LatencyHistogram()
            for hist in self.histograms.values():
                total.merge(hist)
            if title:
                print(title, file=out)
            if elapsed > 0:
                print("Throughput:", "{0:.2f}".format(total.total_ops / elapsed), file=out)
            print("Requests:", total.total_ops, "Errors:", sum(self.errors.values()), file=out)
            for req_type in RequestType:
                if self.requests[req_type] == 0:
                    continue
                avg, med, n, nn = self.histograms[req_type].summary()
                print("{:<8} count: {} errors: {} avg: {:.2f} median: {} 90%: {} 99%: {}".format(
                    str(req_type), self.requests[req_type], self.errors[req_type],
                    avg, med, n, nn), file=out)
            avg, med, n, nn = total.summary()
            print("Average Latency:", "{0:.2f}".format(avg), file=out)
            print("Median Latency:", med, file=out)
            print("90% Latency:", n, file=out)
            print("99% Latency:", nn, file=out)
