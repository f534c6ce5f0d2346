"""
ratectl.py: Request rate control for test engines.

Both controllers compare the time ``count`` requests should have taken
at the target rate with the time they actually took, and sleep the
difference when the engine is ahead. Requests are never dropped.
"""

import time

import kvload.param as param


def correction(count, rate, elapsed):
    """
    Seconds to sleep after ``count`` requests issued in ``elapsed``
    seconds, for a target of ``rate`` requests per second.
    """
    if count < param.RATE_CHECK_MIN_REQUESTS or rate <= 0:
        return 0
    delta = count / rate - elapsed
    return delta if delta > 0 else 0


class RateController(object):
    """
    Abstract class. Subclass of ``RateController`` should implement
    ``delay``.
    """
    def __init__(self, sleep=time.sleep):
        self._sleep = sleep

    def delay(self, now):
        raise NotImplementedError

    def pace(self, now):
        """
        Called once per request, with the time the request started.
        """
        delay = self.delay(now)
        if delay > 0:
            self._sleep(delay)
        return delay


class FixedRateController(RateController):
    """
    Holds ``rate`` requests per second measured from the start time of
    ``stats``.
    """
    def __init__(self, rate, stats, sleep=time.sleep):
        super().__init__(sleep)
        self.rate = rate
        self._stats = stats

    def delay(self, now):
        return correction(self._stats.get_request_count(),
                          self.rate,
                          now - self._stats.start_time)


class VariableRateController(RateController):
    """
    Takes a new target rate from ``rdgen.get_throughput`` every
    ``interval`` seconds and measures against that window only.
    """
    def __init__(self, rdgen, rate=param.DEFAULT_REQUESTS_PER_SECOND,
                 clock=time.monotonic, sleep=time.sleep,
                 interval=param.VARIABLE_TP_INTERVAL):
        super().__init__(sleep)
        self.rate = rate
        self._rdgen = rdgen
        self._clock = clock
        self._interval = interval
        self.window_start = clock()
        self.count = 0

    def start(self):
        self.window_start = self._clock()
        self.count = 0

    def delay(self, now):
        if now - self.window_start > self._interval:
            self.rate = self._rdgen.get_throughput()
            self.window_start = self._clock()
            self.count = 0
        self.count += 1
        return correction(self.count, self.rate, now - self.window_start)
