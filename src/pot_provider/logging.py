"""Logging configuration and utilities."""

import logging
import os
import re
from urllib.parse import urlsplit, urlunsplit

__all__ = [
    "setup_logging",
    "get_logger",
    "truncate_token",
    "redact_proxy_url",
    "REDACTED",
]

REDACTED = "****"
_USERINFO_PASSWORD = re.compile(r"^(?P<prefix>[^:/?#@]+://)?(?P<user>[^:/?#@]*):[^/?#]*@")


def setup_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable.

    Valid levels: DEBUG, INFO, WARNING, ERROR (default: INFO)
    """
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)

    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger("pot_provider")
    logger.setLevel(level)
    logger.propagate = False  # Prevent duplicate logs to root logger

    # Only add handler if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        logger.addHandler(handler)


def truncate_token(token: str) -> str:
    """Truncate token to show first 3 and last 3 chars.

    Tokens 8 chars or shorter show *** for security.
    """
    if len(token) <= 8:
        return "***"
    return f"{token[:3]}...{token[-3:]}"


def redact_proxy_url(url: str) -> str:
    """Replace the password embedded in a proxy URL with a placeholder.

    Works on strings that are not valid URLs so that rejected proxy specs
    can be logged safely too.
    """
    try:
        parts = urlsplit(url)
        password = parts.password
    except ValueError:
        parts, password = None, None

    if parts is not None and parts.scheme and parts.netloc:
        if password is None:
            return url
        # userinfo ends at the last @, same as urlsplit
        hostinfo = parts.netloc.rpartition("@")[2]
        netloc = f"{parts.username}:{REDACTED}@{hostinfo}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    return _USERINFO_PASSWORD.sub(rf"\g<prefix>\g<user>:{REDACTED}@", url, count=1)


def get_logger(name: str) -> logging.Logger:
    """Get a child logger under the pot_provider namespace."""
    return logging.getLogger(f"pot_provider.{name}")
