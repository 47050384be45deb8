"""Runtime manifest client and federation plugin."""

from .cache import CacheEntry, CacheState, ManifestCache
from .client import AiohttpManifestFetcher, ManifestClient, diff_manifests
from .plugin import (
    InMemorySessionStore,
    ZephyrRuntimePlugin,
    create_zephyr_runtime_plugin,
    strip_versioned_prefix,
)

__all__ = [
    "AiohttpManifestFetcher",
    "CacheEntry",
    "CacheState",
    "InMemorySessionStore",
    "ManifestCache",
    "ManifestClient",
    "ZephyrRuntimePlugin",
    "create_zephyr_runtime_plugin",
    "diff_manifests",
    "strip_versioned_prefix",
]
