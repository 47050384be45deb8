"""pnpm workspace metadata: catalogs and sibling package index.

Both lookups are best-effort conveniences. A missing workspace file, catalog
or package yields an empty result plus a warning; it never fails the build.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from ..common.logging_utils import extra_context, is_debug_enabled
from ..constants import Constants
from ..models import WorkspaceConfig

logger = logging.getLogger(__name__)

_SKIP_DIRS = {"node_modules", ".git"}


def find_workspace_file(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start`` (default: cwd) looking for pnpm-workspace.yaml."""
    current = Path(start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / Constants.PNPM_WORKSPACE_FILE
        if candidate.is_file():
            return candidate
    return None


def parse_workspace_config(text: str) -> WorkspaceConfig:
    """Parse pnpm-workspace.yaml content into a :class:`WorkspaceConfig`.

    The top-level ``catalog`` table is exposed as the ``default`` catalog,
    alongside the named ``catalogs``.
    """
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("workspace file must contain a mapping")

    packages = [str(p) for p in data.get("packages") or [] if p is not None]

    catalogs: Dict[str, Dict[str, str]] = {}
    default_catalog = data.get("catalog")
    if isinstance(default_catalog, dict):
        catalogs[Constants.DEFAULT_CATALOG] = _string_table(default_catalog)
    named = data.get("catalogs")
    if isinstance(named, dict):
        for name, table in named.items():
            if isinstance(table, dict):
                catalogs[str(name)] = _string_table(table)

    return WorkspaceConfig(packages=packages, catalogs=catalogs)


def _string_table(table: dict) -> Dict[str, str]:
    return {str(k): str(v) for k, v in table.items() if v is not None}


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile a workspace glob (``*``, ``**``, ``?``) matching relative posix paths."""
    pattern = pattern.strip().strip("/")
    if pattern.startswith("./"):
        pattern = pattern[2:]
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == len(pattern):
            out.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


def split_patterns(patterns: List[str]) -> Tuple[List[str], List[str]]:
    """Separate include patterns from ``!``-prefixed exclude patterns."""
    includes: List[str] = []
    excludes: List[str] = []
    for pattern in patterns:
        if pattern.startswith("!"):
            excludes.append(pattern[1:])
        else:
            includes.append(pattern)
    return includes, excludes


class WorkspaceResolver:
    """Lazily loaded, memoized view of one pnpm workspace.

    The workspace file and the package index are each read at most once per
    instance.
    """

    def __init__(self, workspace_file: Optional[Path] = None, start_dir: Optional[Path] = None):
        self._workspace_file = Path(workspace_file) if workspace_file else None
        self._start_dir = start_dir
        self._located = workspace_file is not None
        self._config: Optional[WorkspaceConfig] = None
        self._packages: Optional[Dict[str, dict]] = None

    @property
    def workspace_file(self) -> Optional[Path]:
        if not self._located:
            self._workspace_file = find_workspace_file(self._start_dir)
            self._located = True
        return self._workspace_file

    @property
    def root(self) -> Optional[Path]:
        path = self.workspace_file
        return path.parent if path else None

    @property
    def config(self) -> WorkspaceConfig:
        if self._config is None:
            self._config = self._read_config()
        return self._config

    def _read_config(self) -> WorkspaceConfig:
        path = self.workspace_file
        if path is None:
            logger.warning("Could not find %s", Constants.PNPM_WORKSPACE_FILE)
            return WorkspaceConfig()
        try:
            return parse_workspace_config(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.warning("Error reading %s: %s", path, exc)
            return WorkspaceConfig()

    def catalog(self, name: str) -> Optional[Dict[str, str]]:
        """Return one catalog table, or None when it is not defined."""
        return self.config.catalogs.get(name or Constants.DEFAULT_CATALOG)

    def packages(self) -> Dict[str, dict]:
        """Map of package name to parsed package.json for every workspace member."""
        if self._packages is None:
            self._packages = self._index_packages()
        return self._packages

    def package_version(self, name: str) -> Optional[str]:
        manifest = self.packages().get(name)
        if not manifest:
            return None
        version = manifest.get("version")
        return str(version) if version else None

    def _index_packages(self) -> Dict[str, dict]:
        root = self.root
        if root is None:
            logger.warning("Could not find workspace root directory")
            return {}
        if not self.config.packages:
            logger.warning("No workspace packages defined in %s", Constants.PNPM_WORKSPACE_FILE)
            return {}

        include_globs, exclude_globs = split_patterns(self.config.packages)
        includes = [glob_to_regex(p) for p in include_globs]
        excludes = [glob_to_regex(p) for p in exclude_globs]

        index: Dict[str, dict] = {}
        for dirpath, dirnames, filenames in os.walk(root):
            rel = Path(dirpath).relative_to(root).as_posix()
            rel = "" if rel == "." else rel
            if rel and any(rx.match(rel) for rx in excludes):
                dirnames[:] = []
                continue
            dirnames[:] = [d for d in dirnames if d not in _SKIP_DIRS and not d.startswith(".")]
            if not rel or Constants.PACKAGE_JSON_FILE not in filenames:
                continue
            if not any(rx.match(rel) for rx in includes):
                continue
            manifest = self._read_package_json(Path(dirpath) / Constants.PACKAGE_JSON_FILE)
            if manifest and manifest.get("name"):
                index[str(manifest["name"])] = manifest

        if is_debug_enabled(logger):
            logger.debug(
                "Indexed workspace packages",
                extra=extra_context(
                    event="workspace_index",
                    component="workspace",
                    outcome="success",
                    count=len(index),
                    target=str(root),
                ),
            )
        return index

    @staticmethod
    def _read_package_json(path: Path) -> Optional[dict]:
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Error reading package.json at %s: %s", path, exc)
            return None
        return data if isinstance(data, dict) else None
