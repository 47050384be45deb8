"""Application identity: package.json lookup and org/project discovery.

Org/project come from, in priority order, the ``ZE_APP_ORG``/``ZE_APP_PROJECT``
environment variables, the ``repository`` field of package.json, and the
``origin`` git remote.
"""

from __future__ import annotations

import json
import logging
import subprocess
import urllib.parse
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .config import first_env
from .constants import Constants
from .errors import ZeErrors, ZephyrError
from .models import OrgProject

logger = logging.getLogger(__name__)


def create_application_uid(name: str, project: str, org: str) -> str:
    """Build the ``name.project.org`` uid.

    Scoped package names are flattened: ``@scope/app`` becomes ``scope-app``.
    """
    clean_name = name.lstrip("@").replace("/", "-")
    return ".".join(part.strip().lower() for part in (clean_name, project, org))


def is_fully_qualified(candidate: str) -> bool:
    """True when ``candidate`` already has the 3-part ``name.project.org`` shape."""
    return len(candidate.split(".")) >= 3


def parse_repo_slug(repo_url: str) -> Optional[OrgProject]:
    """Extract org/project from an https, ssh or scp-style git URL."""
    cleaned = repo_url.strip()
    if cleaned.startswith("git+"):
        cleaned = cleaned[4:]
    if cleaned.endswith(".git"):
        cleaned = cleaned[:-4]

    if cleaned.startswith("git@"):
        _, _, path_part = cleaned.partition(":")
        segments = [s for s in path_part.split("/") if s]
    else:
        parsed = urllib.parse.urlsplit(cleaned)
        if not parsed.scheme or not parsed.netloc:
            return None
        segments = [s for s in parsed.path.split("/") if s]

    if len(segments) >= 2:
        return OrgProject(org=segments[0], project=segments[1])
    return None


def get_repo_slug_from_git(cwd: Path) -> Optional[OrgProject]:
    """Read ``remote.origin.url`` with git; None if git or the remote is absent."""
    try:
        result = subprocess.run(
            ["git", "config", "--get", "remote.origin.url"],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=Constants.GIT_COMMAND_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("git remote lookup failed: %s", exc)
        return None
    if result.returncode != 0 or not result.stdout.strip():
        return None
    return parse_repo_slug(result.stdout.strip())


def get_repo_slug_from_package_json(package_json: Mapping[str, Any]) -> Optional[OrgProject]:
    repo = package_json.get("repository")
    if isinstance(repo, str):
        repo_url = repo
    elif isinstance(repo, Mapping):
        repo_url = repo.get("url")
    else:
        repo_url = None
    if not repo_url:
        return None
    return parse_repo_slug(str(repo_url))


def get_org_project(
    project_root: Path, package_json: Optional[Mapping[str, Any]] = None
) -> Optional[OrgProject]:
    """Discover the ambient org/project, or None when no source provides it."""
    env_org = first_env(Constants.ENV_APP_ORG)
    env_project = first_env(Constants.ENV_APP_PROJECT)
    if env_org and env_project:
        return OrgProject(org=env_org, project=env_project)

    if package_json:
        from_pkg = get_repo_slug_from_package_json(package_json)
        if from_pkg:
            return from_pkg

    return get_repo_slug_from_git(project_root)


def find_nearest_package_json(start: Path) -> Path:
    """Walk up from ``start`` to the closest package.json."""
    current = Path(start).resolve()
    for directory in (current, *current.parents):
        candidate = directory / Constants.PACKAGE_JSON_FILE
        if candidate.is_file():
            return candidate
    raise ZephyrError(ZeErrors.ERR_PACKAGE_JSON_NOT_FOUND, path=str(start))


def read_package_json(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def get_zephyr_dependencies(package_json: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the raw ``zephyr:dependencies`` (or ``zephyrDependencies``) table."""
    for key in Constants.PACKAGE_JSON_DEPENDENCY_KEYS:
        table = package_json.get(key)
        if isinstance(table, Mapping) and table:
            return dict(table)
    return {}
