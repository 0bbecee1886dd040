"""
Logging for the cart engine and the Cart Storage API.

    from shoecart.logging import get_logger
    logger = get_logger(__name__)

The root logger is set up once, on first import. On Vercel (VERCEL=1) the
platform adds timestamps itself, so the short format is used there.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Chatty client libraries: one line per request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "supabase", "upstash_redis")

# Characters that would let a user-supplied id forge log lines (CWE-117)
_UNSAFE_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})

MAX_LOGGED_ID_LENGTH = 8


def _level_from_env() -> int:
    name = os.environ.get("CART_LOG_LEVEL") or os.environ.get("LOG_LEVEL", "INFO")
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _setup() -> None:
    root = logging.getLogger()
    if root.handlers:
        # The host application (or pytest) already configured logging
        return

    handler = logging.StreamHandler(sys.stdout)
    fmt = LOG_FORMAT_SIMPLE if os.environ.get("VERCEL") == "1" else LOG_FORMAT
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)
    root.setLevel(_level_from_env())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_setup()


@cache
def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | int | None) -> str:
    """
    Make a user-controlled id safe to log.

    Control characters are escaped and the value is cut to its first
    MAX_LOGGED_ID_LENGTH characters; missing ids log as "N/A".
    """
    if id_value is None or id_value == "":
        return "N/A"
    return str(id_value).translate(_UNSAFE_CHARS)[:MAX_LOGGED_ID_LENGTH]


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "sanitize_id_for_logging",
]
