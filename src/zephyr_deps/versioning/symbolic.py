"""Rewrite ``catalog:`` and ``workspace:`` placeholders into semver ranges.

A miss always falls back to the original string with a warning; the registry
stays the final authority on what a version means.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from ..constants import Constants
from .workspace import WorkspaceResolver

logger = logging.getLogger(__name__)

_default_resolver: Optional[WorkspaceResolver] = None


def get_workspace_resolver() -> WorkspaceResolver:
    """Process-wide resolver rooted at the current working directory."""
    global _default_resolver  # pylint: disable=global-statement
    if _default_resolver is None:
        _default_resolver = WorkspaceResolver()
    return _default_resolver


def reset_workspace_cache() -> None:
    """Forget the memoized workspace config and package index."""
    global _default_resolver  # pylint: disable=global-statement
    _default_resolver = None


def resolve_catalog_version(
    version: str, package_name: Optional[str], resolver: Optional[WorkspaceResolver] = None
) -> str:
    """Resolve ``catalog:<name>`` to the range the catalog pins for ``package_name``."""
    if not isinstance(version, str) or not version.startswith(Constants.CATALOG_PREFIX):
        return version
    resolver = resolver or get_workspace_resolver()

    catalog_name = version[len(Constants.CATALOG_PREFIX):] or Constants.DEFAULT_CATALOG
    catalog = resolver.catalog(catalog_name)
    if catalog is None:
        logger.warning('Catalog "%s" not found in %s', catalog_name, Constants.PNPM_WORKSPACE_FILE)
        return version
    if package_name and package_name in catalog:
        return catalog[package_name]

    logger.warning(
        "Package %s not found in catalog %s, using original reference", package_name, catalog_name
    )
    return version


def resolve_workspace_version(
    version: str, package_name: Optional[str], resolver: Optional[WorkspaceResolver] = None
) -> str:
    """Resolve ``workspace:*`` to the version declared by the sibling package."""
    if not isinstance(version, str) or not version.startswith(Constants.WORKSPACE_PREFIX):
        return version
    resolver = resolver or get_workspace_resolver()

    resolved = resolver.package_version(package_name) if package_name else None
    if resolved:
        return resolved

    logger.warning("Package %s not found in workspace, using original reference", package_name)
    return version


def resolve_symbolic_version(
    version: str, package_name: Optional[str], resolver: Optional[WorkspaceResolver] = None
) -> str:
    """Resolve either placeholder form; other versions pass through untouched."""
    if version.startswith(Constants.CATALOG_PREFIX):
        return resolve_catalog_version(version, package_name, resolver)
    if version.startswith(Constants.WORKSPACE_PREFIX):
        return resolve_workspace_version(version, package_name, resolver)
    return version


def get_catalog_packages(
    catalog_name: str, resolver: Optional[WorkspaceResolver] = None
) -> Optional[Dict[str, str]]:
    """Return every package pinned by a catalog, or None when it is missing."""
    resolver = resolver or get_workspace_resolver()
    catalog = resolver.catalog(catalog_name)
    if catalog is None:
        logger.warning('Catalog "%s" not found in %s', catalog_name, Constants.PNPM_WORKSPACE_FILE)
        return None
    return dict(catalog)


def _resolve_entry(name: str, version: Any, resolver: Optional[WorkspaceResolver]) -> Any:
    if isinstance(version, str):
        if not version:
            logger.warning("No valid version found for %s, using wildcard '*'", name)
            return "*"
        return resolve_symbolic_version(version, name, resolver)
    if isinstance(version, Mapping):
        return {
            platform: _resolve_entry(name, value, resolver) for platform, value in version.items()
        }
    return version


def resolve_catalog_dependencies(
    dependencies: Optional[Mapping[str, Any]], resolver: Optional[WorkspaceResolver] = None
) -> Dict[str, Any]:
    """Resolve placeholders across a ``name -> version`` dependency table.

    Per-platform tables are resolved entry by entry. Values that are neither
    strings nor tables are returned as-is for the descriptor parser to reject.
    """
    if not dependencies:
        return {}
    return {name: _resolve_entry(name, version, resolver) for name, version in dependencies.items()}
