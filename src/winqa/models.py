"""Centralized timing defaults (all values in milliseconds)."""

# Element waits
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_POLL_INTERVAL_MS = 500

# Adaptive polling curve
ADAPTIVE_MIN_INTERVAL_MS = 100
ADAPTIVE_MEDIUM_INTERVAL_MS = 300
ADAPTIVE_MAX_INTERVAL_MS = 1000
ADAPTIVE_INTERVAL_STEP_MS = 100
ADAPTIVE_FAST_PHASE_MS = 2000
ADAPTIVE_MEDIUM_PHASE_MS = 5000

# Adaptive timeouts
DEFAULT_INITIAL_TIMEOUT_MS = 5000
DEFAULT_MIN_TIMEOUT_MS = 2000
DEFAULT_MAX_TIMEOUT_MS = 30000
DEFAULT_RESPONSE_TIME_WINDOW = 10
MIN_SAMPLES_FOR_ADAPTIVE = 3
PERCENTILE = 0.95
SAFETY_FACTOR = 2.0

# Retry
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000

# Window acquisition
DEFAULT_ACQUIRE_TIMEOUT_MS = 10000
ACQUIRE_POLL_INTERVAL_MS = 500
STRICT_PHASE_MS = 5000
ATTACH_SETTLE_MS = 500
LAUNCH_SETTLE_MS = 1500
FOREGROUND_SETTLE_MS = 500
MAX_REPORTED_CANDIDATES = 10
