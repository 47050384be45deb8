"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    CONFIGURATION_ERROR = 4


class Registries(Enum):
    """Registries a dependency specifier may point at.

    Args:
        Enum (string): Registry prefixes understood by the parser.
    """

    ZEPHYR = "zephyr"
    NPM = "npm"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_REGISTRY = Registries.ZEPHYR.value
    WORKSPACE_WILDCARD = "workspace:*"
    WORKSPACE_PREFIX = "workspace:"
    CATALOG_PREFIX = "catalog:"
    DEFAULT_CATALOG = "default"
    URL_PREFIXES = ("http://", "https://", "file://")
    PROTOCOL_RELATIVE_PREFIX = "//"

    PACKAGE_JSON_FILE = "package.json"
    PNPM_WORKSPACE_FILE = "pnpm-workspace.yaml"
    PACKAGE_JSON_DEPENDENCY_KEYS = ("zephyr:dependencies", "zephyrDependencies")

    MANIFEST_FILENAME = "zephyr-manifest.json"
    MANIFEST_PATH = "/" + MANIFEST_FILENAME
    MANIFEST_SCHEMA_VERSION = "1.0.0"

    API_BASE_URL = "https://zeapi.zephyrcloud.app"
    API_RESOLVE_PATH = "/resolve"
    API_TOKEN_EXCHANGE_PATH = "/v2/builder-packages-api/get-access-token-by-server-token"

    ENV_API_URL = "ZE_API"
    ENV_APP_ORG = ("ZE_APP_ORG", "ZE_ORG")
    ENV_APP_PROJECT = ("ZE_APP_PROJECT", "ZE_PROJECT")
    ENV_TOKENS = ("ZE_SECRET_TOKEN", "ZE_AUTH_TOKEN", "ZE_TOKEN")
    ENV_SERVER_TOKEN = "ZE_SERVER_TOKEN"
    ENV_USER_EMAIL = ("ZE_USER_EMAIL", "GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL")

    RUNTIME_PLUGIN_NAME = "zephyr-runtime-remote-resolver"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    GIT_COMMAND_TIMEOUT = 10
