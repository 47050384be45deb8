"""Logging helpers shared by registry, manifest and runtime modules.

Structured fields are attached through ``extra=extra_context(...)`` so that
handlers can render or ship them; the default formatter only prints the
message. Secrets never reach the log: URLs go through :func:`safe_url` and
free text through :func:`redact`.
"""
from __future__ import annotations

import logging
import re
import time
import urllib.parse
from typing import Any, Dict, Optional

from ..constants import Constants

_SENSITIVE_QUERY_KEYS = {"token", "access_token", "api_key", "apikey", "key", "secret", "password"}
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9\-\._~\+/=]+", re.IGNORECASE)
REDACTED = "[REDACTED]"


def configure_logging(level: int = logging.INFO) -> None:
    """Install the project log format on the root logger once."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=Constants.LOG_FORMAT, level=level)
    else:
        root.setLevel(level)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when ``logger`` would emit DEBUG records."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log call.

    ``None`` values are dropped so records only carry what is known.
    """
    return {k: v for k, v in fields.items() if v is not None}


def redact(text: Optional[str]) -> str:
    """Mask bearer tokens embedded in free text."""
    if not text:
        return ""
    return _BEARER.sub(r"\1" + REDACTED, text)


def safe_url(url: str) -> str:
    """Strip credentials and sensitive query values from a URL for logging."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.netloc
    if "@" in netloc:
        netloc = REDACTED + "@" + netloc.rsplit("@", 1)[1]
    query = parts.query
    if query:
        pairs = urllib.parse.parse_qsl(query, keep_blank_values=True)
        query = urllib.parse.urlencode(
            [(k, REDACTED if k.lower() in _SENSITIVE_QUERY_KEYS else v) for k, v in pairs],
            safe="[]",
        )
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self) -> None:
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        if self._start is None:
            return 0
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
