"""Runtime manifest client: single-flight fetch, cache and refresh diffs."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional, Protocol

import aiohttp

from ..common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from ..constants import Constants
from ..errors import ZeErrors, ZephyrError
from ..manifest.builder import manifest_from_json
from ..models import Manifest, RemoteUrlChange
from .cache import CacheEntry, CacheState, ManifestCache

logger = logging.getLogger(__name__)

ManifestChangeCallback = Callable[[Manifest, Manifest], Any]
ManifestErrorCallback = Callable[[BaseException], Any]
RemoteUrlChangeCallback = Callable[[RemoteUrlChange], Any]


class ManifestFetcher(Protocol):
    async def fetch(self, url: str) -> Manifest:
        ...


class AiohttpManifestFetcher:
    """Fetches published manifests over HTTP with aiohttp."""

    def __init__(
        self,
        timeout: int = Constants.REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Total request timeout in seconds.
            session: Shared session; one is created on first use otherwise.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def fetch(self, url: str) -> Manifest:
        """GET ``url`` and parse it as a manifest.

        Raises:
            ZephyrError: ``ERR_MANIFEST_FETCH`` for transport errors and
                non-2xx responses, ``ERR_INVALID_MANIFEST`` for bad bodies.
        """
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        target = safe_url(url)
        try:
            with Timer() as t:
                async with self._session.get(url, headers={"Accept": "application/json"}) as response:
                    status = response.status
                    text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ZephyrError(
                ZeErrors.ERR_MANIFEST_FETCH, cause=exc, url=target, reason=str(exc) or "timeout"
            ) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Manifest response",
                extra=extra_context(
                    event="http_response",
                    component="manifest_client",
                    action="GET",
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    target=target,
                ),
            )
        if status < 200 or status >= 300:
            raise ZephyrError(ZeErrors.ERR_MANIFEST_FETCH, url=target, reason=f"HTTP {status}")
        return manifest_from_json(text)

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None


def diff_manifests(old: Manifest, new: Manifest) -> List[RemoteUrlChange]:
    """Remotes present in both manifests whose entry URL differs."""
    changes = []
    for name, remote in new.dependencies.items():
        previous = old.get(name)
        if previous is None or previous.remote_entry_url == remote.remote_entry_url:
            continue
        changes.append(
            RemoteUrlChange(
                remote_name=name,
                old_url=previous.remote_entry_url,
                new_url=remote.remote_entry_url,
                manifest=new,
            )
        )
    return changes


class ManifestClient:
    """Keeps the current manifest for one application.

    Concurrent callers share one fetch through the cache entry's future.
    Failures are reported through ``on_manifest_error`` and surface as None;
    nothing here raises into the host runtime.
    """

    def __init__(
        self,
        manifest_url: str,
        *,
        application_uid: Optional[str] = None,
        cache: Optional[ManifestCache] = None,
        fetcher: Optional[ManifestFetcher] = None,
        on_manifest_change: Optional[ManifestChangeCallback] = None,
        on_manifest_error: Optional[ManifestErrorCallback] = None,
        on_remote_url_change: Optional[RemoteUrlChangeCallback] = None,
    ):
        self.manifest_url = manifest_url
        self.cache = cache if cache is not None else ManifestCache()
        self._key = application_uid or manifest_url
        self._fetcher = fetcher or AiohttpManifestFetcher()
        self._on_manifest_change = on_manifest_change
        self._on_manifest_error = on_manifest_error
        self._on_remote_url_change = on_remote_url_change
        self._last_manifest: Optional[Manifest] = None

    @property
    def cache_key(self) -> str:
        return self._key

    def _entry(self) -> CacheEntry:
        return self.cache.get_or_create(self._key)

    def _ensure_fetch(self, entry: CacheEntry) -> "asyncio.Future[Optional[Manifest]]":
        if (
            entry.state is CacheState.FETCHING
            and entry.future is not None
            and not entry.future.done()
        ):
            return entry.future
        future = asyncio.ensure_future(self._fetch_into(entry))
        entry.start_fetch(future)
        return future

    async def _fetch_into(self, entry: CacheEntry) -> Optional[Manifest]:
        try:
            manifest = await self._fetcher.fetch(self.manifest_url)
        except Exception as exc:
            entry.mark_failed(exc)
            logger.warning(
                "Failed to load manifest from %s: %s",
                safe_url(self.manifest_url),
                exc,
                extra=extra_context(event="manifest_fetch", component="manifest_client", outcome="error"),
            )
            await self._invoke("on_manifest_error", self._on_manifest_error, exc)
            return None

        previous, entry.previous = entry.previous, None
        entry.mark_ready(manifest)
        self._adopt(manifest.application_uid, entry)
        if previous is not None and previous is not manifest:
            await self._notify_changes(previous, manifest)
        return manifest

    async def _notify_changes(self, previous: Manifest, manifest: Manifest) -> None:
        changes = diff_manifests(previous, manifest)
        if not changes:
            logger.debug("Manifest refreshed, no remote changes")
            return
        logger.info(
            "Manifest refreshed, %d remote(s) changed: %s",
            len(changes),
            ", ".join(c.remote_name for c in changes),
        )
        await self._invoke("on_manifest_change", self._on_manifest_change, manifest, previous)
        for change in changes:
            await self._invoke("on_remote_url_change", self._on_remote_url_change, change)

    def _adopt(self, application_uid: str, entry: CacheEntry) -> None:
        """Store ``entry`` under the manifest's own uid and key on it from now on."""
        if not application_uid:
            return
        if self.cache.get(application_uid) is not entry:
            self.cache.set(application_uid, entry)
        self._key = application_uid

    async def _invoke(self, label: str, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Manifest callback %s raised", label)

    async def get_current_manifest(self) -> Optional[Manifest]:
        """Cached manifest, or the result of the (shared) fetch; None on failure."""
        entry = self._entry()
        if entry.state is CacheState.READY and entry.manifest is not None:
            self._last_manifest = entry.manifest
            return entry.manifest
        manifest = await asyncio.shield(self._ensure_fetch(entry))
        if manifest is not None:
            self._last_manifest = manifest
        return manifest

    async def refresh(self) -> Optional[Manifest]:
        """Re-fetch the manifest and report remotes whose URL moved.

        Joins a fetch that is already in flight instead of starting another;
        change callbacks fire once, from the fetch that replaced the manifest.
        """
        entry = self._entry()
        entry.invalidate(previous=self._last_manifest)
        manifest = await asyncio.shield(self._ensure_fetch(entry))
        if manifest is not None:
            self._last_manifest = manifest
        return manifest

    async def close(self) -> None:
        close = getattr(self._fetcher, "close", None)
        if close is not None:
            await close()
