"""Runtime settings for the SplitExpress client, read from the environment."""

import logging
import os

API_BASE_URL = os.environ.get("SPLIT_API_BASE_URL", "https://split-go.onrender.com/")

# Transport policy (seconds)
CONNECT_TIMEOUT = float(os.environ.get("SPLIT_CONNECT_TIMEOUT", "60"))
READ_TIMEOUT = float(os.environ.get("SPLIT_READ_TIMEOUT", "120"))
CALL_TIMEOUT = float(os.environ.get("SPLIT_CALL_TIMEOUT", "180"))
CONNECT_RETRIES = int(os.environ.get("SPLIT_CONNECT_RETRIES", "3"))

# Upper bound on simultaneous payment calls for one split submission
MAX_CONCURRENCY = int(os.environ.get("SPLIT_MAX_CONCURRENCY", "4"))

# SQLite file backing the session key-value store; ":memory:" keeps it for the process lifetime
PREFS_PATH = os.environ.get("SPLIT_PREFS_PATH", ":memory:")

LOG_LEVEL = os.environ.get("SPLIT_LOG_LEVEL", "WARNING")
LOG_BODIES = os.environ.get("SPLIT_LOG_BODIES", "false").lower() in ("1", "true", "yes")

MIN_INVITE_CODE_LENGTH = 6
OTP_LENGTH = 6
MIN_PASSWORD_LENGTH = 6
MIN_TRIP_NAME_LENGTH = 3
MAX_TRIP_MEMBERS = 20

TRIPS_PAGE_SIZE = 100
TRANSACTIONS_PAGE_SIZE = 10


def configure_logging(level: str = LOG_LEVEL):
    """Install a basic handler for the client's loggers."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
