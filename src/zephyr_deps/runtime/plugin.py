"""Federation runtime hook that points remotes at their live entry URLs."""

from __future__ import annotations

import logging
from typing import Any, Dict, MutableMapping, Optional, Protocol, Tuple

from ..constants import Constants
from ..models import Manifest, ResolvedRemote
from .cache import ManifestCache
from .client import (
    ManifestChangeCallback,
    ManifestClient,
    ManifestErrorCallback,
    ManifestFetcher,
    RemoteUrlChangeCallback,
)

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Per-session URL overrides keyed by application uid."""

    def get(self, key: str) -> Optional[str]:
        ...


class InMemorySessionStore:
    """Dict-backed session store."""

    def __init__(self, overrides: Optional[Dict[str, str]] = None):
        self._overrides: Dict[str, str] = dict(overrides or {})

    def get(self, key: str) -> Optional[str]:
        return self._overrides.get(key)

    def set(self, key: str, url: str) -> None:
        self._overrides[key] = url

    def delete(self, key: str) -> None:
        self._overrides.pop(key, None)

    def clear(self) -> None:
        self._overrides.clear()


def strip_versioned_prefix(url: str) -> str:
    """``name@https://...`` -> ``https://...``; split on the first ``@``."""
    if "@" not in url:
        return url
    head, _, tail = url.partition("@")
    # userinfo in a plain URL (https://user@host) is not a name prefix
    if "://" in head:
        return url
    return tail


class ZephyrRuntimePlugin:
    """Rewrites a remote's ``entry`` just before the runtime loads it.

    The remote-name lookup table is built on first use and kept until the
    client reports a different manifest.
    """

    name = Constants.RUNTIME_PLUGIN_NAME

    def __init__(self, client: ManifestClient, session_store: Optional[SessionStore] = None):
        self.client = client
        self.session_store = session_store if session_store is not None else InMemorySessionStore()
        self._lookup: Optional[Dict[str, ResolvedRemote]] = None
        self._lookup_manifest: Optional[Manifest] = None

    @staticmethod
    def build_lookup(manifest: Manifest, remotes: Any) -> Dict[str, ResolvedRemote]:
        """Map each configured remote name and alias to its manifest entry."""
        table: Dict[str, ResolvedRemote] = {}
        for remote in remotes or ():
            if not isinstance(remote, MutableMapping):
                continue
            for label in (remote.get("name"), remote.get("alias")):
                if not label:
                    continue
                resolved = manifest.get(label)
                if resolved is not None:
                    table[label] = resolved
        return table

    def _table_for(self, manifest: Manifest, remotes: Any) -> Dict[str, ResolvedRemote]:
        if self._lookup is None or self._lookup_manifest is not manifest:
            self._lookup = self.build_lookup(manifest, remotes)
            self._lookup_manifest = manifest
        return self._lookup

    def resolved_url(self, resolved: ResolvedRemote) -> str:
        override = self.session_store.get(resolved.application_uid)
        return strip_versioned_prefix(override or resolved.remote_entry_url)

    async def before_request(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Point the requested remote at its manifest URL; pass through otherwise."""
        try:
            remote_name = str(args["id"]).split("/", 1)[0]
            remotes = args.get("options", {}).get("remotes") or []
            if not remotes:
                return args

            manifest = await self.client.get_current_manifest()
            if manifest is None:
                return args

            resolved = self._table_for(manifest, remotes).get(remote_name)
            if resolved is None:
                return args

            url = self.resolved_url(resolved)
            for remote in remotes:
                if isinstance(remote, MutableMapping) and remote_name in (
                    remote.get("name"),
                    remote.get("alias"),
                ):
                    if remote.get("entry") != url:
                        logger.debug("Remote %s -> %s", remote_name, url)
                    remote["entry"] = url
                    break
            return args
        except Exception:
            logger.exception("Remote resolution failed for %r, using static entry", args.get("id"))
            return args

    async def refresh(self) -> Optional[Manifest]:
        return await self.client.refresh()

    async def get_current_manifest(self) -> Optional[Manifest]:
        return await self.client.get_current_manifest()


def create_zephyr_runtime_plugin(
    manifest_url: str = Constants.MANIFEST_PATH,
    *,
    application_uid: Optional[str] = None,
    cache: Optional[ManifestCache] = None,
    fetcher: Optional[ManifestFetcher] = None,
    session_store: Optional[SessionStore] = None,
    on_manifest_change: Optional[ManifestChangeCallback] = None,
    on_manifest_error: Optional[ManifestErrorCallback] = None,
    on_remote_url_change: Optional[RemoteUrlChangeCallback] = None,
) -> Tuple[ZephyrRuntimePlugin, ManifestClient]:
    """Create the runtime plugin and the manifest client behind it.

    The client is returned as the control handle: ``refresh()`` and
    ``get_current_manifest()`` for OTA updates.
    """
    client = ManifestClient(
        manifest_url,
        application_uid=application_uid,
        cache=cache,
        fetcher=fetcher,
        on_manifest_change=on_manifest_change,
        on_manifest_error=on_manifest_error,
        on_remote_url_change=on_remote_url_change,
    )
    return ZephyrRuntimePlugin(client, session_store), client
