"""Blocking HTTP helpers for use outside the event loop (CLI inspection).

Retries transport failures and 5xx answers with exponential backoff so
callers only deal with a final status. Async paths use aiohttp instead; see
``registry.client`` and ``runtime.client``.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, NamedTuple, Optional

import requests

from ..constants import Constants
from .logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

HTTP_RETRY_MAX = 3
HTTP_RETRY_BASE_DELAY_SEC = 0.3


class HttpResult(NamedTuple):
    """Outcome of a GET; ``status`` is 0 when no response was received."""

    status: int
    headers: Dict[str, str]
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _trace(message: str, **fields: Any) -> None:
    if is_debug_enabled(logger):
        logger.debug(message, extra=extra_context(component="http_client", action="GET", **fields))


def _backoff(attempt: int) -> None:
    time.sleep(HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    retries: int = HTTP_RETRY_MAX,
    **kwargs: Any
) -> HttpResult:
    """GET ``url``, retrying timeouts, connection errors and 5xx answers.

    Args:
        url: Target URL.
        headers: Optional request headers.
        retries: Total number of attempts.
        **kwargs: Passed through to ``requests.get``.

    Returns:
        HttpResult; after exhausting retries on transport errors the status
        is 0 and the body carries the last failure reason.
    """
    target = safe_url(url)
    failure = "no attempt made"

    for attempt in range(retries):
        last_attempt = attempt + 1 >= retries
        _trace("HTTP request", event="http_request", target=target, attempt=attempt + 1)
        with Timer() as t:
            try:
                response = requests.get(
                    url, timeout=Constants.REQUEST_TIMEOUT, headers=headers, **kwargs
                )
            except requests.RequestException as exc:
                failure = "timeout" if isinstance(exc, requests.Timeout) else str(exc)
                _trace("HTTP request failed", event="http_exception", outcome=failure,
                       attempt=attempt + 1, target=target)
                if not last_attempt:
                    _backoff(attempt)
                continue

        _trace("HTTP response", event="http_response", status_code=response.status_code,
               duration_ms=t.duration_ms(), target=target)
        if response.status_code >= 500 and not last_attempt:
            failure = f"status {response.status_code}"
            _backoff(attempt)
            continue
        return HttpResult(response.status_code, dict(response.headers), response.text)

    logger.warning("GET %s failed after %d attempts: %s", target, retries, failure)
    return HttpResult(0, {}, failure)


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> tuple:
    """GET ``url`` and decode a JSON body.

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none). The body is
        only decoded for 2xx answers.
    """
    result = robust_get(url, headers=headers, **kwargs)
    if not result.ok or not result.body:
        return result.status, result.headers, None
    try:
        return result.status, result.headers, json.loads(result.body)
    except ValueError:
        _trace("JSON decode error", event="parse", outcome="json_decode_error",
               status_code=result.status, target=safe_url(url))
        return result.status, result.headers, None
