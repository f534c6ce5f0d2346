"""
param.py: Parameters and default options for the load driver.
"""

# Upper bound on deletes issued against a preloaded key range. Also the
# key count above which reads are narrowed to the most recent quarter.
MAX_DELETES = 10000
SKEW_NARROW_SHIFT = 2

# Circuit breaker
MAX_CONSECUTIVE_ERRORS = 100

# Rate control
RATE_CHECK_MIN_REQUESTS = 10
VARIABLE_TP_INTERVAL = 12 # seconds
DEFAULT_REQUESTS_PER_SECOND = 1000

# Payload and TTL
DEFAULT_VALUE_MIN_LEN = 1024
DEFAULT_VALUE_MAX_LEN = 1024
DEFAULT_TTL = 1800 # seconds

# Runner
DEFAULT_DURATION = 60 # seconds
DEFAULT_REPORT_INTERVAL = 10 # seconds
RUNNER_TICK = 0.1 # seconds
DEFAULT_SEQUENCE = "C:1,G:1,U:1,S:1,D:1"
