"""Dependency specifier parsing.

Specifiers look like ``"^1.0.0"``, ``"zephyr:remote-app@beta"``,
``"zephyr:@org/@scope/app@beta"``, ``"workspace:*"`` or a literal URL. Parsing
is purely structural: any string parses, and only values outside the
``Scalar | PerPlatform`` union are rejected.
"""

from typing import Any, Dict, List, Mapping, Optional

import semantic_version

from ..constants import Constants
from ..errors import ZeErrors, ZephyrError
from ..models import DependencyDescriptor, DependencyValue, PerPlatform, Scalar, VersionKind


def parse_ze_dependency(key: str, value: str) -> DependencyDescriptor:
    """Parse a single specifier into a :class:`DependencyDescriptor`.

    The registry prefix is split on the first ``:`` (except for the literal
    ``workspace:*``); the remote name and version are split on the last
    ``@`` so scoped names keep their own ``@`` characters.
    """
    registry = Constants.DEFAULT_REGISTRY
    reference = value

    if ":" in value and value != Constants.WORKSPACE_WILDCARD:
        registry, reference = value.split(":", 1)

    if "@" in reference:
        app_uid, version = reference.rsplit("@", 1)
    else:
        app_uid, version = key, reference

    return DependencyDescriptor(key=key, registry=registry, app_uid=app_uid, version=version)


def to_dependency_value(key: str, raw: Any) -> DependencyValue:
    """Narrow a raw ``package.json`` value to the dependency value union."""
    if isinstance(raw, str):
        return Scalar(raw)
    if isinstance(raw, Mapping):
        values: Dict[str, str] = {}
        for platform, spec in raw.items():
            if not isinstance(spec, str):
                raise ZephyrError(
                    ZeErrors.ERR_INVALID_DEPENDENCY_VALUE,
                    key=f"{key}:{platform}",
                    kind=type(spec).__name__,
                )
            values[str(platform)] = spec
        return PerPlatform(values)
    raise ZephyrError(ZeErrors.ERR_INVALID_DEPENDENCY_VALUE, key=key, kind=type(raw).__name__)


def parse_ze_dependencies(dependencies: Mapping[str, Any]) -> Dict[str, DependencyDescriptor]:
    """Parse a whole ``zephyr:dependencies`` table.

    Per-platform entries expand to one descriptor per target, keyed
    ``"<name>:<platform>"``. Values are validated before anything is parsed,
    so a bad entry fails the whole table.
    """
    values = {key: to_dependency_value(key, raw) for key, raw in dependencies.items()}

    parsed: Dict[str, DependencyDescriptor] = {}
    for key, dep_value in values.items():
        if isinstance(dep_value, Scalar):
            parsed[key] = parse_ze_dependency(key, dep_value.value)
        elif isinstance(dep_value, PerPlatform):
            for platform, spec in dep_value.values.items():
                platform_key = f"{key}:{platform}"
                parsed[platform_key] = parse_ze_dependency(platform_key, spec)
        else:  # pragma: no cover - exhaustive over DependencyValue
            raise ZephyrError(ZeErrors.ERR_INVALID_DEPENDENCY_VALUE, key=key, kind=type(dep_value).__name__)
    return parsed


def descriptors_for_platform(
    dependencies: Mapping[str, Any], platform: Optional[str] = None
) -> List[DependencyDescriptor]:
    """Parse a dependency table for one build target.

    Scalar entries apply to every target. Per-platform entries contribute the
    specifier for ``platform`` under the plain name, or nothing when that
    target is not listed.
    """
    descriptors: List[DependencyDescriptor] = []
    for key, raw in dependencies.items():
        dep_value = to_dependency_value(key, raw)
        if isinstance(dep_value, Scalar):
            descriptors.append(parse_ze_dependency(key, dep_value.value))
        elif isinstance(dep_value, PerPlatform):
            if platform and platform in dep_value.values:
                descriptors.append(parse_ze_dependency(key, dep_value.values[platform]))
        else:  # pragma: no cover - exhaustive over DependencyValue
            raise ZephyrError(ZeErrors.ERR_INVALID_DEPENDENCY_VALUE, key=key, kind=type(dep_value).__name__)
    return descriptors


def is_url_like(value: str) -> bool:
    """Return True for absolute or protocol-relative URLs."""
    return value.startswith(Constants.URL_PREFIXES) or value.startswith(Constants.PROTOCOL_RELATIVE_PREFIX)


def classify_version(version: str) -> VersionKind:
    """Determine the kind of a descriptor version string."""
    spec = version.strip()
    if is_url_like(spec):
        return VersionKind.URL
    if spec.startswith(Constants.WORKSPACE_PREFIX):
        return VersionKind.WORKSPACE
    if spec.startswith(Constants.CATALOG_PREFIX):
        return VersionKind.CATALOG
    if semantic_version.validate(spec.lstrip("v")):
        return VersionKind.EXACT
    if spec and (spec[0] in "^~=><*" or spec[0].isdigit()):
        try:
            semantic_version.NpmSpec(spec)
            return VersionKind.RANGE
        except ValueError:
            pass
    return VersionKind.TAG
