"""
valuegen.py: Payload, TTL and throughput generation.
"""

import itertools
import random

import kvload.param as param


class RandomGen(object):
    """
    Generates request payloads and TTLs for an engine. When
    ``throughputs`` is given the engine runs at a variable rate, taking
    the next value of the schedule every time it recalibrates. The
    schedule is cycled, so ``[1000, 2000, 4000, 2000]`` oscillates.
    """
    def __init__(self, rng=None,
                 value_min_len=param.DEFAULT_VALUE_MIN_LEN,
                 value_max_len=param.DEFAULT_VALUE_MAX_LEN,
                 ttl=param.DEFAULT_TTL,
                 disable_get_ttl=False,
                 throughputs=None):
        assert 0 <= value_min_len <= value_max_len
        self._rng = rng if rng is not None else random.Random()
        self._value_min_len = value_min_len
        self._value_max_len = value_max_len
        self._ttl = ttl
        self.disable_get_ttl = disable_get_ttl
        self.is_variable = bool(throughputs)
        self._throughputs = itertools.cycle(throughputs) if throughputs else None

    def create_payload(self):
        length = self._rng.randint(self._value_min_len, self._value_max_len)
        return self._rng.randbytes(length)

    def get_ttl(self):
        return self._ttl

    def get_throughput(self):
        if self._throughputs is None:
            raise ValueError("No throughput schedule configured")
        return next(self._throughputs)
