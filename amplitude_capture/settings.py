from __future__ import annotations

"""Library configuration helpers (env → constants).

Only cheap, dependency-free values live here so the module can be imported
anywhere, including at middleware construction time before traffic starts.
"""

# Standard library
import os

from dotenv import load_dotenv

load_dotenv()

__all__ = [
    "AMPLITUDE_API_KEY",
    "AMPLITUDE_BASE_URL",
    "AMPLITUDE_USER_AGENT",
    "AMPLITUDE_FLUSH_INTERVAL",
    "AMPLITUDE_FLUSH_TIMEOUT",
    "DEFAULT_BASE_URL",
    "DEFAULT_USER_AGENT",
    "LOG_LEVEL",
    "MAX_ERRORS",
    "MAX_EVENTS",
    "get_env_float",
    "get_env_int",
]

DEFAULT_BASE_URL = "https://api2.amplitude.com"
DEFAULT_USER_AGENT = "go-amplitude/v0"
DEFAULT_MEDIA_TYPE = "application/json"
DEFAULT_CONTENT_TYPE = "application/json"

# Max number of events / errors buffered per middleware before dropping occurs
MAX_EVENTS = 1024
MAX_ERRORS = 1024


def get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    return int(raw)


def get_env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    return float(raw)


AMPLITUDE_API_KEY = os.getenv("AMPLITUDE_API_KEY", "")
AMPLITUDE_BASE_URL = os.getenv("AMPLITUDE_BASE_URL") or DEFAULT_BASE_URL
AMPLITUDE_USER_AGENT = os.getenv("AMPLITUDE_USER_AGENT") or DEFAULT_USER_AGENT

# Seconds between scheduled flushes and the budget for each flush
AMPLITUDE_FLUSH_INTERVAL = get_env_float("AMPLITUDE_FLUSH_INTERVAL", 10.0)
AMPLITUDE_FLUSH_TIMEOUT = get_env_float("AMPLITUDE_FLUSH_TIMEOUT", 5.0)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
