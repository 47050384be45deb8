"""zephyr-deps: federated remote dependency resolution and runtime manifests."""

from .descriptors import descriptors_for_platform, parse_ze_dependencies, parse_ze_dependency
from .errors import ZeErrors, ZephyrError
from .manifest import build_manifest, write_manifest
from .models import DependencyDescriptor, Manifest, ResolvedRemote
from .registry import resolve_remote_dependencies
from .runtime import ManifestCache, ManifestClient, ZephyrRuntimePlugin, create_zephyr_runtime_plugin

__version__ = "0.1.0"

__all__ = [
    "DependencyDescriptor",
    "Manifest",
    "ManifestCache",
    "ManifestClient",
    "ResolvedRemote",
    "ZeErrors",
    "ZephyrError",
    "ZephyrRuntimePlugin",
    "build_manifest",
    "create_zephyr_runtime_plugin",
    "descriptors_for_platform",
    "parse_ze_dependencies",
    "parse_ze_dependency",
    "write_manifest",
]
