"""Argument parsing for the zephyr-deps command line."""

import argparse

from .constants import Constants


def _add_logging_args(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')


def build_parser():
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="zephyr-deps",
        description="Resolve federated remote dependencies and inspect published manifests",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="command")
    subparsers.required = True

    resolve = subparsers.add_parser(
        "resolve",
        help="Resolve zephyr:dependencies from package.json and write the manifest",
    )
    resolve.add_argument("-r", "--root",
                         dest="ROOT",
                         help="Project directory (default: current directory)",
                         action="store",
                         type=str)
    resolve.add_argument("--package-json",
                         dest="PACKAGE_JSON",
                         help="Path to package.json (default: nearest to --root)",
                         action="store",
                         type=str)
    resolve.add_argument("-o", "--output-dir",
                         dest="OUTPUT_DIR",
                         help=f"Directory to write {Constants.MANIFEST_FILENAME} into; prints to stdout when omitted",
                         action="store",
                         type=str)
    resolve.add_argument("--platform",
                         dest="PLATFORM",
                         help="Build target used for per-platform dependencies, i.e. ios, android, web",
                         action="store",
                         type=str)
    resolve.add_argument("--application-uid",
                         dest="APPLICATION_UID",
                         help="Uid of the consuming application (default: derived from package.json name)",
                         action="store",
                         type=str)
    resolve.add_argument("--api-url",
                         dest="API_URL",
                         help=f"Registry API base URL (default: ${Constants.ENV_API_URL} or {Constants.API_BASE_URL})",
                         action="store",
                         type=str)
    resolve.add_argument("--token",
                         dest="TOKEN",
                         help="Auth token; overrides ZE_SECRET_TOKEN/ZE_AUTH_TOKEN",
                         action="store",
                         type=str)
    resolve.add_argument("--continue-on-error",
                         dest="CONTINUE_ON_ERROR",
                         help="Drop dependencies that fail to resolve instead of aborting",
                         action="store_true")
    resolve.add_argument("--timeout",
                         dest="TIMEOUT",
                         help="Registry request timeout in seconds",
                         action="store",
                         type=int)
    _add_logging_args(resolve)

    inspect = subparsers.add_parser(
        "inspect",
        help="Fetch and print a published manifest",
    )
    inspect.add_argument("-u", "--url",
                         dest="URL",
                         help=f"Application URL or direct {Constants.MANIFEST_FILENAME} URL",
                         action="store",
                         type=str,
                         required=True)
    inspect.add_argument("--remote",
                         dest="REMOTE",
                         help="Only print the entry for this remote",
                         action="store",
                         type=str)
    _add_logging_args(inspect)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
