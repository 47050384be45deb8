"""Registry access and build-time remote resolution."""

from .client import RegistryClient
from .resolver import RemoteResolver, resolve_remote_dependencies

__all__ = ["RegistryClient", "RemoteResolver", "resolve_remote_dependencies"]
