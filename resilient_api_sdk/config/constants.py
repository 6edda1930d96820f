"""
Request Layer Defaults

Central location for timing defaults, retry defaults and telemetry thresholds.
All durations are milliseconds.

Environment overrides are read by ``resilient_api_sdk.config.settings``.
"""

# Request deadline applied when a descriptor does not set one
DEFAULT_TIMEOUT_MS = 10000

# Requests slower than this are logged as slow
SLOW_REQUEST_THRESHOLD_MS = 1000

# Retry defaults
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 10000
JITTER_RATIO = 0.3  # up to 30% of the base delay

# Telemetry
TELEMETRY_BUFFER_CAPACITY = 1000
TELEMETRY_AVERAGE_WINDOW_MS = 60000
REQUEST_METRIC_NAME = "apiRequest"

# Read cache
DEFAULT_STALE_TIME_MS = 5 * 60 * 1000

# Threshold table per metric name: (warning, error, unit)
PERFORMANCE_THRESHOLDS = {
    "apiRequest": {"warning": 1000, "error": 3000, "unit": "ms"},
    "renderTime": {"warning": 16, "error": 100, "unit": "ms"},
    "animation": {"warning": 16, "error": 32, "unit": "ms"},
    "dataProcessing": {"warning": 100, "error": 500, "unit": "ms"},
    "memoryUsage": {"warning": 50, "error": 80, "unit": "percentage"},
}

# Environment variable names
ENV_PREFIX = "RESILIENT_API_"
ENV_BASE_URL = ENV_PREFIX + "BASE_URL"
ENV_TIMEOUT_MS = ENV_PREFIX + "TIMEOUT_MS"
ENV_MAX_RETRIES = ENV_PREFIX + "MAX_RETRIES"
ENV_INITIAL_DELAY_MS = ENV_PREFIX + "INITIAL_DELAY_MS"
ENV_MAX_DELAY_MS = ENV_PREFIX + "MAX_DELAY_MS"
ENV_SLOW_THRESHOLD_MS = ENV_PREFIX + "SLOW_THRESHOLD_MS"
ENV_TELEMETRY_CAPACITY = ENV_PREFIX + "TELEMETRY_CAPACITY"
