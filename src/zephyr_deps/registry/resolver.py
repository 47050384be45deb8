"""Build-time resolution of dependency descriptors to deployed remotes.

This is the single entry point bundler adapters call once they have extracted
``(name, specifier)`` pairs from their own configuration.
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
import urllib.parse
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..app_context import create_application_uid, get_org_project, is_fully_qualified
from ..auth import resolve_auth_token
from ..common.logging_utils import extra_context, is_debug_enabled
from ..config import ZephyrConfig
from ..constants import Constants
from ..descriptors.parser import is_url_like
from ..errors import ZeErrors, ZephyrError
from ..models import DependencyDescriptor, OrgProject, ResolvedRemote
from ..versioning.symbolic import resolve_symbolic_version
from ..versioning.workspace import WorkspaceResolver
from .client import RegistryClient

logger = logging.getLogger(__name__)

_UNSET = object()


def normalize_remote_url(value: str) -> str:
    """Qualify protocol-relative URLs with https."""
    if value.startswith(Constants.PROTOCOL_RELATIVE_PREFIX):
        return "https:" + value
    return value


def normalize_version(value: str) -> str:
    """Map workspace placeholders the workspace index could not pin to ``*``."""
    if value.startswith(Constants.WORKSPACE_PREFIX):
        return "*"
    return value


def is_absolute_url(value: str) -> bool:
    parsed = urllib.parse.urlsplit(value)
    return bool(parsed.scheme) and (bool(parsed.netloc) or parsed.scheme == "file")


def public_path_for(entry_url: str) -> str:
    """Directory of an entry URL, with a trailing slash."""
    parsed = urllib.parse.urlsplit(entry_url)
    directory = posixpath.dirname(parsed.path)
    if not directory.endswith("/"):
        directory += "/"
    return urllib.parse.urlunsplit((parsed.scheme, parsed.netloc, directory, "", ""))


def remote_from_url(descriptor: DependencyDescriptor) -> ResolvedRemote:
    """Synthesize a resolution for a descriptor whose version is already a URL."""
    url = normalize_remote_url(descriptor.version)
    return ResolvedRemote(
        name=descriptor.key,
        application_uid=descriptor.app_uid,
        remote_entry_url=url,
        public_path=public_path_for(url),
        version=url,
    )


class RemoteResolver:
    """Resolves descriptors against the registry, concurrently.

    Org/project and the auth token are discovered lazily, once, and only
    when a descriptor actually needs them.
    """

    def __init__(
        self,
        client: RegistryClient,
        *,
        token: Optional[str] = None,
        platform: Optional[str] = None,
        project_root: Optional[Path] = None,
        package_json: Optional[Mapping[str, Any]] = None,
        org_project: Any = _UNSET,
        workspace: Optional[WorkspaceResolver] = None,
    ):
        self._client = client
        self._token = token
        self._platform = platform
        self._project_root = Path(project_root or Path.cwd())
        self._package_json = package_json
        self._org_project = org_project
        self._workspace = workspace

    @property
    def org_project(self) -> Optional[OrgProject]:
        if self._org_project is _UNSET:
            self._org_project = get_org_project(self._project_root, self._package_json)
        return self._org_project

    def application_uid(self, descriptor: DependencyDescriptor) -> str:
        """Fully qualified ``name.project.org`` uid for a descriptor."""
        for candidate in (descriptor.app_uid, descriptor.key):
            if candidate and is_fully_qualified(candidate):
                return candidate

        org_project = self.org_project
        if org_project is None:
            raise ZephyrError(ZeErrors.ERR_MISSING_ORG_PROJECT, key=descriptor.key)
        return create_application_uid(
            descriptor.app_uid or descriptor.key, org_project.project, org_project.org
        )

    @staticmethod
    def needs_network(descriptor: DependencyDescriptor) -> bool:
        return descriptor.registry == Constants.DEFAULT_REGISTRY and not is_url_like(descriptor.version)

    async def resolve_all(
        self, descriptors: Sequence[DependencyDescriptor], abort_on_error: bool = True
    ) -> List[ResolvedRemote]:
        """Resolve every descriptor; results keep the input order.

        With ``abort_on_error`` the first failure cancels outstanding work and
        is raised. Otherwise failed descriptors are logged and dropped.
        """
        token: Optional[str] = None
        if any(self.needs_network(d) for d in descriptors):
            token = await resolve_auth_token(self._client, self._token)
            if not token and abort_on_error:
                raise ZephyrError(ZeErrors.ERR_MISSING_AUTH_TOKEN)

        tasks = [asyncio.ensure_future(self._resolve_one(d, token)) for d in descriptors]
        if not tasks:
            return []

        if abort_on_error:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            failed = [t for t in tasks if t.done() and not t.cancelled() and t.exception()]
            if failed:
                for task in tasks:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise failed[0].exception()
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        resolved: List[ResolvedRemote] = []
        errors: List[tuple] = []
        for descriptor, outcome in zip(descriptors, outcomes):
            if isinstance(outcome, ZephyrError):
                errors.append((descriptor, outcome))
                logger.warning(
                    "Failed to resolve remote dependency %s@%s, skipping",
                    descriptor.key,
                    descriptor.version,
                    extra=extra_context(
                        event="resolve_remote",
                        component="resolver",
                        outcome="skipped",
                        error_code=outcome.code,
                    ),
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome is not None:
                resolved.append(outcome)

        if errors:
            summary = "\n".join(f"  - {d.key}@{d.version} -> {e.code}" for d, e in errors)
            logger.warning("Failed to resolve remote dependencies:\n%s", summary)
        if resolved:
            listing = "\n".join(f"  {r.name} -> {r.remote_entry_url}" for r in resolved)
            logger.info("Resolved remotes:\n%s", listing)
        return resolved

    async def _resolve_one(
        self, descriptor: DependencyDescriptor, token: Optional[str]
    ) -> Optional[ResolvedRemote]:
        if descriptor.registry != Constants.DEFAULT_REGISTRY:
            logger.info("Skipping non-zephyr dependency: %s (%s)", descriptor.key, descriptor.registry)
            return None

        if is_url_like(descriptor.version):
            return remote_from_url(descriptor)

        application_uid = self.application_uid(descriptor)
        version = normalize_version(
            resolve_symbolic_version(descriptor.version, descriptor.key, self._workspace)
        )

        if not token:
            raise ZephyrError(ZeErrors.ERR_MISSING_AUTH_TOKEN)

        if is_debug_enabled(logger):
            logger.debug(
                "Resolving remote dependency",
                extra=extra_context(
                    event="resolve_remote",
                    component="resolver",
                    action="resolve",
                    target=application_uid,
                    version=version,
                    platform=self._platform,
                ),
            )
        value = await self._client.resolve(application_uid, version, token, self._platform)
        return self._to_resolved(descriptor, application_uid, version, value)

    @staticmethod
    def _to_resolved(
        descriptor: DependencyDescriptor,
        application_uid: str,
        version: str,
        value: Dict[str, Any],
    ) -> ResolvedRemote:
        default_url = normalize_remote_url(str(value.get("default_url") or ""))
        entry_url = normalize_remote_url(str(value.get("remote_entry_url") or default_url))
        if entry_url and not is_absolute_url(entry_url) and is_absolute_url(default_url):
            entry_url = urllib.parse.urljoin(default_url.rstrip("/") + "/", entry_url)
        if not entry_url or not is_absolute_url(entry_url):
            raise ZephyrError(
                ZeErrors.ERR_INVALID_RESOLVE_RESPONSE,
                app_uid=application_uid,
                version=version,
                data={"response": value},
            )

        public_path = normalize_remote_url(str(value.get("public_path") or ""))
        if not is_absolute_url(public_path):
            public_path = default_url if is_absolute_url(default_url) else public_path_for(entry_url)

        return ResolvedRemote(
            name=descriptor.key,
            application_uid=str(value.get("application_uid") or application_uid),
            remote_entry_url=entry_url,
            public_path=public_path,
            version=str(value.get("version") or version),
        )


async def resolve_remote_dependencies(
    descriptors: Sequence[DependencyDescriptor],
    *,
    config: Optional[ZephyrConfig] = None,
    client: Optional[RegistryClient] = None,
    abort_on_error: Optional[bool] = None,
    package_json: Optional[Mapping[str, Any]] = None,
    org_project: Any = _UNSET,
    workspace: Optional[WorkspaceResolver] = None,
) -> List[ResolvedRemote]:
    """Resolve descriptors to :class:`ResolvedRemote` values.

    Args:
        descriptors: Parsed dependency descriptors, in declaration order.
        config: Settings; defaults to :meth:`ZephyrConfig.from_env`.
        client: Registry client; one is created (and closed) when omitted.
        abort_on_error: Overrides ``config.abort_on_error``.
        package_json: Consumer package.json, used for org/project discovery.
        org_project: Explicit org/project; discovered when omitted.
        workspace: Workspace metadata for catalog/workspace placeholders.

    Returns:
        Resolved remotes in input order, minus skipped or failed ones.
    """
    config = config or ZephyrConfig.from_env()
    abort = config.abort_on_error if abort_on_error is None else abort_on_error
    owns_client = client is None
    client = client or RegistryClient(config.api_url, timeout=config.timeout)

    resolver = RemoteResolver(
        client,
        token=config.token,
        platform=config.platform,
        project_root=config.project_root,
        package_json=package_json,
        org_project=org_project,
        workspace=workspace,
    )
    try:
        return await resolver.resolve_all(descriptors, abort_on_error=abort)
    finally:
        if owns_client:
            await client.stop()
