"""
Constants for the health scout system.

This module defines default values for all configurable parameters
of the monitoring system. These constants are used as fallback values
when neither command-line arguments, environment variables nor the
configuration file provide them.
"""

# Engine defaults
DEFAULT_CHECK_INTERVAL = "30s"
DEFAULT_TIMEOUT = "5s"
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_NOTIFICATION_TIMEOUT_SECONDS = 5.0

# Probe defaults
DEFAULT_EXPECTED_STATUS_CODE = 200
DEFAULT_TLS_WARNING_DAYS = 30
DEFAULT_TLS_PORT = 443
DEFAULT_LATENCY_THRESHOLD_MS = 5000

# Configuration file defaults
DEFAULT_CONFIG_FILE = "~/.config/health-scout/config.yml"

# Instance configuration defaults
DEFAULT_INSTANCE_ID_PREFIX = "health-scout-"

# Notification defaults
DEFAULT_NOTIFICATIONS_ENABLED = "true"

# Logging configuration defaults
DEFAULT_LOGGING_TYPE = "prod"
DEFAULT_LOGGING_CONFIG_FILE = ""
