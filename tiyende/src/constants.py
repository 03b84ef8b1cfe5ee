"""
Application configuration and constants for the Tiyende Vendor API Server.

This module centralizes environment-based configuration, session settings,
regular expressions, query limits and other constants.

Configuration values can be overridden via environment variables.
"""

from os import environ


# ---------------------------------------------------------------------------
# Application metadata
# ---------------------------------------------------------------------------
API_TITLE = "Tiyende Vendor API Server"
API_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# PostgreSQL configuration
# ---------------------------------------------------------------------------
PSQL_DB_DRIVER = environ.get("PSQL_DB_DRIVER", "postgresql")
PSQL_DB_USERNAME = environ.get("PSQL_DB_USERNAME", "postgres")
PSQL_DB_PORT = environ.get("PSQL_DB_PORT", "5432")
PSQL_DB_PASSWORD = environ.get("PSQL_DB_PASSWORD", "password")
PSQL_DB_HOST = environ.get("PSQL_DB_HOST", "localhost")
PSQL_DB_NAME = environ.get("PSQL_DB_NAME", "postgres")

# Full SQLAlchemy URL, takes precedence over the PSQL_* parts (eg: "sqlite://")
DB_URL = environ.get(
    "DB_URL",
    f"{PSQL_DB_DRIVER}://{PSQL_DB_USERNAME}:{PSQL_DB_PASSWORD}@{PSQL_DB_HOST}:{PSQL_DB_PORT}/{PSQL_DB_NAME}",
)


# ---------------------------------------------------------------------------
# OpenObserve configuration
# ---------------------------------------------------------------------------
OPENOBSERVE_ENABLED = environ.get("OPENOBSERVE_ENABLED", "false").lower() == "true"
OPENOBSERVE_PROTOCOL = environ.get("OPENOBSERVE_PROTOCOL", "http")
OPENOBSERVE_HOST = environ.get("OPENOBSERVE_HOST", "localhost")
OPENOBSERVE_PORT = environ.get("OPENOBSERVE_PORT", "5080")
OPENOBSERVE_USERNAME = environ.get("OPENOBSERVE_USERNAME", "admin@tiyende.co.zm")
OPENOBSERVE_PASSWORD = environ.get("OPENOBSERVE_PASSWORD", "password")
OPENOBSERVE_ORG = environ.get("OPENOBSERVE_ORG", "tiyende")
OPENOBSERVE_STREAM = environ.get("OPENOBSERVE_STREAM", "tiyende-vendor-server")
OPENOBSERVE_TIMEOUT = 5  # Request timeout (in seconds)


# ---------------------------------------------------------------------------
# Session configuration
# ---------------------------------------------------------------------------
SESSION_COOKIE_NAME = environ.get("SESSION_COOKIE_NAME", "tiyende.sid")
SESSION_COOKIE_SECURE = environ.get("SESSION_COOKIE_SECURE", "false").lower() == "true"
SESSION_MAX_IDLE = int(environ.get("SESSION_MAX_IDLE", 24 * 60 * 60))  # (in seconds, 24 hours)
SESSION_SWEEP_INTERVAL = int(environ.get("SESSION_SWEEP_INTERVAL", 24 * 60 * 60))  # 0 disables


# ---------------------------------------------------------------------------
# Dashboard statistics
# ---------------------------------------------------------------------------
STATS_PERIOD = int(environ.get("STATS_PERIOD", 30 * 24 * 60 * 60))  # (in seconds, 30 days)


# ---------------------------------------------------------------------------
# Query limits
# ---------------------------------------------------------------------------
DEFAULT_DASHBOARD_LIMIT = 5  # Upcoming trips / recent bookings
MAX_DASHBOARD_LIMIT = 100


# ---------------------------------------------------------------------------
# Regex constants (input validation)
# ---------------------------------------------------------------------------
REGEX_USERNAME = r"^[a-zA-Z][a-zA-Z0-9-.@_]*$"
REGEX_PASSWORD = r"^[a-zA-Z0-9-+,.@_$%&*#!^=/?]*$"
