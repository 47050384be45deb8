"""Manifest assembly, serialisation and publication."""

from __future__ import annotations

import json
import logging
import os
import urllib.parse
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Protocol

from ..common.http_client import get_json
from ..common.logging_utils import extra_context, safe_url
from ..constants import Constants
from ..errors import ZeErrors, ZephyrError
from ..models import Manifest, ResolvedRemote

logger = logging.getLogger(__name__)


class ManifestWriter(Protocol):
    """Anything that can persist the serialised manifest."""

    def write(self, filename: str, content: str) -> None:
        ...


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_manifest(
    application_uid: str,
    remotes: Iterable[ResolvedRemote],
    timestamp: Optional[str] = None,
    version: str = Constants.MANIFEST_SCHEMA_VERSION,
) -> Manifest:
    """Assemble the manifest for one consuming application.

    Args:
        application_uid: Uid of the consuming application.
        remotes: Resolved remotes, keyed by name in the result.
        timestamp: ISO-8601 timestamp; now (UTC) when omitted.
        version: Manifest schema version.

    Returns:
        Immutable Manifest.
    """
    dependencies = {}
    for remote in remotes:
        if remote.name in dependencies:
            logger.warning("Duplicate remote %s in manifest, keeping the last one", remote.name)
        dependencies[remote.name] = remote
    return Manifest(
        version=version,
        timestamp=timestamp or utc_timestamp(),
        application_uid=application_uid,
        dependencies=dependencies,
    )


def manifest_to_json(manifest: Manifest) -> str:
    return json.dumps(manifest.to_dict(), indent=2, sort_keys=True)


def manifest_from_dict(data: Any) -> Manifest:
    """Validate and convert the wire form to a Manifest."""
    if not isinstance(data, Mapping):
        raise ZephyrError(ZeErrors.ERR_INVALID_MANIFEST, reason="expected a JSON object")
    dependencies = data.get("dependencies")
    if not isinstance(dependencies, Mapping):
        raise ZephyrError(ZeErrors.ERR_INVALID_MANIFEST, reason="dependencies must be an object")

    remotes = {}
    for name, entry in dependencies.items():
        if not isinstance(entry, Mapping):
            raise ZephyrError(
                ZeErrors.ERR_INVALID_MANIFEST, reason=f"dependency {name} must be an object"
            )
        remotes[name] = ResolvedRemote.from_dict(name, entry)

    return Manifest(
        version=str(data.get("version") or ""),
        timestamp=str(data.get("timestamp") or ""),
        application_uid=str(data.get("application_uid") or ""),
        dependencies=remotes,
    )


def manifest_from_json(text: str) -> Manifest:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ZephyrError(ZeErrors.ERR_INVALID_MANIFEST, cause=exc, reason="not valid JSON") from exc
    return manifest_from_dict(data)


class FileManifestWriter:
    """Writes manifests into a build output directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def write(self, filename: str, content: str) -> None:
        os.makedirs(self.directory, exist_ok=True)
        path = self.directory / filename
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.write("\n")
        logger.info("Wrote %s", path)


def write_manifest(manifest: Manifest, writer: ManifestWriter) -> str:
    """Serialise ``manifest`` and hand it to ``writer``; returns the JSON written."""
    content = manifest_to_json(manifest)
    writer.write(Constants.MANIFEST_FILENAME, content)
    return content


def resolve_manifest_url(base_url: str) -> str:
    """Manifest URL for an application base URL.

    URLs that already point at a ``.json`` file are returned unchanged.
    """
    if base_url.startswith(Constants.PROTOCOL_RELATIVE_PREFIX):
        base_url = "https:" + base_url
    parts = urllib.parse.urlsplit(base_url)
    if parts.path.endswith(".json"):
        return base_url
    path = parts.path.rstrip("/") + Constants.MANIFEST_PATH
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def fetch_manifest(url: str) -> Manifest:
    """Blocking fetch of a published manifest.

    Raises:
        ZephyrError: ``ERR_MANIFEST_FETCH`` for transport or HTTP errors,
            ``ERR_INVALID_MANIFEST`` for a malformed body.
    """
    status, _, data = get_json(url, headers={"Accept": "application/json"})
    if status == 0 or not 200 <= status < 300:
        logger.warning(
            "Manifest fetch failed",
            extra=extra_context(
                event="manifest_fetch",
                component="manifest",
                outcome="error",
                status_code=status,
                target=safe_url(url),
            ),
        )
        reason = f"HTTP {status}" if status else "network error"
        raise ZephyrError(ZeErrors.ERR_MANIFEST_FETCH, url=safe_url(url), reason=reason)
    if data is None:
        raise ZephyrError(ZeErrors.ERR_INVALID_MANIFEST, reason="response is not JSON")
    return manifest_from_dict(data)
