"""Async client for the Zephyr registry API."""

from __future__ import annotations

import asyncio
import logging
import urllib.parse
from typing import Any, Dict, Optional

import aiohttp

from ..common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from ..constants import Constants
from ..errors import ZeErrors, ZephyrError

logger = logging.getLogger(__name__)

# encodeURIComponent leaves these unescaped; the registry expects the same.
_URI_COMPONENT_SAFE = "!*'()"


def encode_path_segment(value: str) -> str:
    return urllib.parse.quote(value, safe=_URI_COMPONENT_SAFE)


class RegistryClient:
    """Client for resolving application versions and exchanging tokens."""

    def __init__(self, base_url: str = Constants.API_BASE_URL, timeout: int = Constants.REQUEST_TIMEOUT):
        """Initialize the registry client.

        Args:
            base_url: Registry API base URL.
            timeout: Request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    def build_resolve_url(
        self,
        application_uid: str,
        version: str,
        platform: Optional[str] = None,
    ) -> str:
        """Build ``{base}/resolve/{uid}/{version}`` with optional build target."""
        url = (
            f"{self._base_url}{Constants.API_RESOLVE_PATH}/"
            f"{encode_path_segment(application_uid)}/{encode_path_segment(version)}"
        )
        if platform:
            url += "?" + urllib.parse.urlencode({"build_target": platform})
        return url

    def build_token_exchange_url(self, email: str) -> str:
        return (
            f"{self._base_url}{Constants.API_TOKEN_EXCHANGE_PATH}?"
            + urllib.parse.urlencode({"email": email})
        )

    async def _get_json(self, url: str, headers: Dict[str, str]) -> tuple[int, Any]:
        if self._session is None:
            await self.start()
        assert self._session is not None
        safe_target = safe_url(url)
        with Timer() as t:
            async with self._session.get(url, headers=headers) as response:
                status = response.status
                try:
                    data = await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError):
                    data = None
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="registry_client",
                    action="GET",
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                ),
            )
        return status, data

    async def resolve(
        self,
        application_uid: str,
        version: str,
        token: str,
        platform: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Resolve one application version to the registry's deployment record.

        Raises:
            ZephyrError: ``ERR_RESOLVE_REMOTES`` on transport errors or non-2xx,
                ``ERR_INVALID_RESOLVE_RESPONSE`` when ``value`` is missing.
        """
        url = self.build_resolve_url(application_uid, version, platform)
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        try:
            status, data = await self._get_json(url, headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ZephyrError(
                ZeErrors.ERR_RESOLVE_REMOTES,
                cause=exc,
                app_uid=application_uid,
                version=version,
                status="network error",
            ) from exc

        if status < 200 or status >= 300:
            raise ZephyrError(
                ZeErrors.ERR_RESOLVE_REMOTES,
                app_uid=application_uid,
                version=version,
                status=status,
                data={"url": safe_url(url), "error": data},
            )

        value = data.get("value") if isinstance(data, dict) else None
        if not isinstance(value, dict):
            raise ZephyrError(
                ZeErrors.ERR_INVALID_RESOLVE_RESPONSE,
                app_uid=application_uid,
                version=version,
                data={"response": data},
            )
        return value

    async def exchange_server_token(self, server_token: str, email: str) -> str:
        """Trade a long-lived server token for a short-lived access token."""
        url = self.build_token_exchange_url(email)
        try:
            status, data = await self._get_json(url, {"Authorization": f"Bearer {server_token}"})
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ZephyrError(ZeErrors.ERR_AUTH_EXCHANGE, cause=exc, status="network error") from exc
        token = data.get("access_token") if isinstance(data, dict) else None
        if status < 200 or status >= 300 or not token:
            raise ZephyrError(ZeErrors.ERR_AUTH_EXCHANGE, status=status)
        return str(token)

    async def __aenter__(self) -> "RegistryClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
