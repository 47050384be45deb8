"""zephyr-deps command line entry point."""

import asyncio
import json
import logging
import sys

from .app_context import (
    create_application_uid,
    find_nearest_package_json,
    get_org_project,
    get_zephyr_dependencies,
    read_package_json,
)
from .args import parse_args
from .common.logging_utils import configure_logging, extra_context, is_debug_enabled
from .config import ZephyrConfig
from .constants import ExitCodes
from .descriptors import descriptors_for_platform
from .errors import ErrorCategory, ZeErrors, ZephyrError
from .manifest import (
    FileManifestWriter,
    build_manifest,
    fetch_manifest,
    manifest_to_json,
    resolve_manifest_url,
    write_manifest,
)
from .registry import resolve_remote_dependencies
from .versioning import WorkspaceResolver, resolve_catalog_dependencies

logger = logging.getLogger(__name__)

_EXIT_CODES = {
    ZeErrors.ERR_PACKAGE_JSON_NOT_FOUND: ExitCodes.FILE_ERROR,
    ZeErrors.ERR_MANIFEST_FETCH: ExitCodes.CONNECTION_ERROR,
    ZeErrors.ERR_AUTH_EXCHANGE: ExitCodes.CONNECTION_ERROR,
}


def exit_code_for(error: ZephyrError) -> ExitCodes:
    """Map a ZephyrError to the process exit code."""
    if error.error in _EXIT_CODES:
        return _EXIT_CODES[error.error]
    if error.error.category in (ErrorCategory.CONFIG, ErrorCategory.BUILD):
        return ExitCodes.CONFIGURATION_ERROR
    return ExitCodes.RESOLUTION_ERROR


def consumer_application_uid(args, package_json, config) -> str:
    explicit = getattr(args, "APPLICATION_UID", None)
    if explicit:
        return explicit
    name = str(package_json.get("name") or config.project_root.name)
    org_project = get_org_project(config.project_root, package_json)
    if org_project is None:
        raise ZephyrError(ZeErrors.ERR_MISSING_ORG_PROJECT, key=name)
    return create_application_uid(name, org_project.project, org_project.org)


def run_resolve(args) -> int:
    """Resolve declared dependencies and emit the manifest."""
    config = ZephyrConfig.from_args(args)
    package_json_path = config.package_json_path or find_nearest_package_json(config.project_root)
    try:
        package_json = read_package_json(package_json_path)
    except (OSError, ValueError) as exc:
        logger.error("Cannot read %s: %s", package_json_path, exc)
        return ExitCodes.FILE_ERROR.value

    workspace = WorkspaceResolver(start_dir=package_json_path.parent)
    raw = get_zephyr_dependencies(package_json)
    if not raw:
        logger.warning("No zephyr dependencies declared in %s", package_json_path)
    raw = resolve_catalog_dependencies(raw, workspace)
    descriptors = descriptors_for_platform(raw, config.platform)
    if is_debug_enabled(logger):
        logger.debug(
            "Parsed dependency descriptors",
            extra=extra_context(
                event="decision",
                component="cli",
                action="parse_dependencies",
                count=len(descriptors),
                platform=config.platform,
            ),
        )

    application_uid = consumer_application_uid(args, package_json, config)
    remotes = asyncio.run(
        resolve_remote_dependencies(
            descriptors,
            config=config,
            package_json=package_json,
            workspace=workspace,
        )
    )
    manifest = build_manifest(application_uid, remotes)

    if config.output_dir:
        write_manifest(manifest, FileManifestWriter(config.output_dir))
    else:
        sys.stdout.write(manifest_to_json(manifest) + "\n")
    return ExitCodes.SUCCESS.value


def run_inspect(args) -> int:
    """Print a published manifest, or one of its remotes."""
    url = resolve_manifest_url(args.URL)
    manifest = fetch_manifest(url)
    if args.REMOTE:
        remote = manifest.get(args.REMOTE)
        if remote is None:
            logger.error("Remote %s is not in the manifest at %s", args.REMOTE, url)
            return ExitCodes.RESOLUTION_ERROR.value
        sys.stdout.write(json.dumps(remote.to_dict(), indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(manifest_to_json(manifest) + "\n")
    return ExitCodes.SUCCESS.value


_COMMANDS = {
    "resolve": run_resolve,
    "inspect": run_inspect,
}


def main(argv=None) -> int:
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(getattr(logging, args.LOG_LEVEL, logging.INFO))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND),
        )

    try:
        return _COMMANDS[args.COMMAND](args)
    except ZephyrError as exc:
        logger.error("%s", exc)
        return exit_code_for(exc).value


if __name__ == "__main__":
    sys.exit(main())
