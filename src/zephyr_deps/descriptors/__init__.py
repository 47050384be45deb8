"""Dependency specifier parsing."""

from .parser import (
    classify_version,
    descriptors_for_platform,
    is_url_like,
    parse_ze_dependencies,
    parse_ze_dependency,
    to_dependency_value,
)

__all__ = [
    "classify_version",
    "descriptors_for_platform",
    "is_url_like",
    "parse_ze_dependencies",
    "parse_ze_dependency",
    "to_dependency_value",
]
