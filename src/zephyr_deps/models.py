"""Data models for dependency descriptors, resolutions and manifests."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union


class VersionKind(Enum):
    """Classification of the version part of a descriptor."""
    EXACT = "exact"
    RANGE = "range"
    WORKSPACE = "workspace"
    CATALOG = "catalog"
    TAG = "tag"
    URL = "url"


@dataclass(frozen=True)
class DependencyDescriptor:
    """Parsed dependency specifier."""
    key: str  # local alias
    registry: str
    app_uid: str
    version: str


@dataclass(frozen=True)
class Scalar:
    """A dependency declared with a single specifier string."""
    value: str


@dataclass(frozen=True)
class PerPlatform:
    """A dependency declared per build target, e.g. ``{"ios": ..., "android": ...}``."""
    values: Mapping[str, str]


DependencyValue = Union[Scalar, PerPlatform]


@dataclass(frozen=True)
class ResolvedRemote:
    """Concrete deployed remote for one dependency."""
    name: str
    application_uid: str
    remote_entry_url: str
    public_path: str
    version: str

    def to_dict(self) -> Dict[str, str]:
        """Wire form; the name is carried by the enclosing mapping key."""
        return {
            "application_uid": self.application_uid,
            "remote_entry_url": self.remote_entry_url,
            "public_path": self.public_path,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "ResolvedRemote":
        return cls(
            name=name,
            application_uid=str(data.get("application_uid") or ""),
            remote_entry_url=str(data.get("remote_entry_url") or ""),
            public_path=str(data.get("public_path") or ""),
            version=str(data.get("version") or ""),
        )


@dataclass(frozen=True)
class Manifest:
    """Snapshot of the remotes one consuming application resolved at build time.

    ``dependencies`` is exposed read-only; a redeploy produces a new Manifest.
    """
    version: str
    timestamp: str
    application_uid: str
    dependencies: Mapping[str, ResolvedRemote] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))

    def get(self, name: str) -> Optional[ResolvedRemote]:
        return self.dependencies.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "application_uid": self.application_uid,
            "dependencies": {name: dep.to_dict() for name, dep in self.dependencies.items()},
        }


@dataclass(frozen=True)
class RemoteUrlChange:
    """One remote whose entry URL moved between two manifests."""
    remote_name: str
    old_url: str
    new_url: str
    manifest: Manifest


@dataclass
class WorkspaceConfig:
    """Typed view of ``pnpm-workspace.yaml``."""
    packages: list = field(default_factory=list)
    catalogs: Dict[str, Dict[str, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class OrgProject:
    """Organization and project the current application belongs to."""
    org: str
    project: str
