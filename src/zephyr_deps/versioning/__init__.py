"""Workspace and catalog version resolution."""

from .symbolic import (
    get_catalog_packages,
    get_workspace_resolver,
    reset_workspace_cache,
    resolve_catalog_dependencies,
    resolve_catalog_version,
    resolve_symbolic_version,
    resolve_workspace_version,
)
from .workspace import WorkspaceResolver, find_workspace_file, parse_workspace_config

__all__ = [
    "WorkspaceResolver",
    "find_workspace_file",
    "get_catalog_packages",
    "get_workspace_resolver",
    "parse_workspace_config",
    "reset_workspace_cache",
    "resolve_catalog_dependencies",
    "resolve_catalog_version",
    "resolve_symbolic_version",
    "resolve_workspace_version",
]
