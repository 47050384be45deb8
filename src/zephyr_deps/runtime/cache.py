"""Manifest cache shared by runtime clients."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..models import Manifest


class CacheState(Enum):
    """Lifecycle of one cache entry."""

    EMPTY = "empty"
    FETCHING = "fetching"
    READY = "ready"
    FAILED = "failed"


@dataclass
class CacheEntry:
    """Manifest state for one application uid.

    ``future`` is set only while FETCHING; ``manifest`` only once READY.
    ``previous`` holds the manifest a refresh replaced until the next fetch
    settles and diffs against it.
    """

    state: CacheState = CacheState.EMPTY
    manifest: Optional[Manifest] = None
    future: Optional["asyncio.Future[Optional[Manifest]]"] = None
    error: Optional[BaseException] = None
    previous: Optional[Manifest] = None
    updated_at: float = field(default_factory=time.time)

    def start_fetch(self, future: "asyncio.Future[Optional[Manifest]]") -> None:
        self.state = CacheState.FETCHING
        self.future = future
        self.error = None
        self.updated_at = time.time()

    def mark_ready(self, manifest: Manifest) -> None:
        self.state = CacheState.READY
        self.manifest = manifest
        self.future = None
        self.error = None
        self.updated_at = time.time()

    def mark_failed(self, error: BaseException) -> None:
        self.state = CacheState.FAILED
        self.future = None
        self.error = error
        self.updated_at = time.time()

    def invalidate(self, previous: Optional[Manifest] = None) -> None:
        """Drop the cached manifest; an in-flight fetch is left alone."""
        if self.state is CacheState.FETCHING:
            return
        self.previous = self.manifest or self.previous or previous
        self.state = CacheState.EMPTY
        self.manifest = None
        self.error = None


class ManifestCache:
    """Entries keyed by application uid.

    Several keys may point at the same entry, so clients seeded with a
    manifest URL and clients that know the uid share a single fetch.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def get_or_create(self, key: str) -> CacheEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry()
            self._entries[key] = entry
        return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        by_state: Dict[str, int] = {}
        for entry in {id(e): e for e in self._entries.values()}.values():
            by_state[entry.state.value] = by_state.get(entry.state.value, 0) + 1
        return {"keys": len(self._entries), "entries": by_state}
