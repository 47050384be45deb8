"""Manifest assembly and publication."""

from .builder import (
    FileManifestWriter,
    ManifestWriter,
    build_manifest,
    fetch_manifest,
    manifest_from_dict,
    manifest_from_json,
    manifest_to_json,
    resolve_manifest_url,
    write_manifest,
)

__all__ = [
    "FileManifestWriter",
    "ManifestWriter",
    "build_manifest",
    "fetch_manifest",
    "manifest_from_dict",
    "manifest_from_json",
    "manifest_to_json",
    "resolve_manifest_url",
    "write_manifest",
]
