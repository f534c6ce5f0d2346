"""
keygen.py: Key synthesis and skewed index sampling.
"""

import math
import struct
import uuid

LCG_MULTIPLIER = 25214903917
LCG_INCREMENT = 11
DERIVED_KEY_MARKER = 0xff
TEST_KEY_MARK_BYTE = 11
TEST_KEY_MARK_BIT = 0x2


def derive_key(index):
    """
    Map ``index`` to a 16 byte key. The same index always yields the
    same key. Bytes 0-3 hold a scrambled value so that sequential
    indices do not give sequential keys, bytes 4-7 hold the index
    itself, and the last 4 bytes hold a marker. Byte 11 is always zero,
    which keeps derived keys apart from ``new_test_key`` keys.
    """
    if index < 0:
        raise ValueError("Key index must be non-negative")
    scrambled = (((index + 1) * LCG_MULTIPLIER + LCG_INCREMENT) >> 5) & 0x7fffffff
    return struct.pack(">IIII", scrambled, index & 0xffffffff, 0, DERIVED_KEY_MARKER)


def new_test_key(rng):
    """
    Return a fresh time-ordered key for records created during a run.
    """
    node = rng.getrandbits(48) | (1 << 40) # multicast bit, as for random nodes
    key = bytearray(uuid.uuid1(node=node, clock_seq=rng.getrandbits(14)).bytes)
    key[TEST_KEY_MARK_BYTE] |= TEST_KEY_MARK_BIT
    return bytes(key)


def sample_skewed(n, rng):
    """
    Return an index in [0, n), biased towards 0. A single uniform draw
    ``m`` in [1, n] is mapped through n - 1 - n*ln(m)/ln(n+1).
    """
    if n <= 0:
        raise ValueError("Sample range must be positive")
    m = rng.randrange(n) + 1
    return n - 1 - int(n * math.log(m) / math.log(n + 1))
