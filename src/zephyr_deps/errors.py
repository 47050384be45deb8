"""Error taxonomy for build-time and runtime failures.

Every error raised by the resolution pipeline is a :class:`ZephyrError`
carrying a stable machine-readable code and a message template. Templates use
``{{ name }}`` placeholders that are filled from keyword arguments; missing
values are left visible rather than raising while formatting.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Broad error families, mirrored in the code prefix."""

    BUILD = "BU"
    CONFIG = "CF"
    RESOLUTION = "RS"
    RUNTIME = "RT"


class ZeErrors(Enum):
    """Stable error codes.

    Each value is ``(category, id, template)``.
    """

    ERR_INVALID_DEPENDENCY_VALUE = (
        ErrorCategory.BUILD,
        "001",
        "Dependency {{ key }} must be a string or a platform map of strings, got {{ kind }}.",
    )
    ERR_PACKAGE_JSON_NOT_FOUND = (
        ErrorCategory.BUILD,
        "010",
        "package.json not found from {{ path }}.",
    )
    ERR_MISSING_ORG_PROJECT = (
        ErrorCategory.CONFIG,
        "014",
        "Missing org/project for {{ key }}. Set ZE_APP_ORG and ZE_APP_PROJECT, "
        "configure a git remote or provide a full application uid (name.project.org).",
    )
    ERR_MISSING_AUTH_TOKEN = (
        ErrorCategory.CONFIG,
        "018",
        "Missing auth token. Set ZE_SECRET_TOKEN, ZE_AUTH_TOKEN or ZE_TOKEN to resolve remote "
        "dependencies, or set ZE_SERVER_TOKEN with ZE_USER_EMAIL to exchange one.",
    )
    ERR_AUTH_EXCHANGE = (
        ErrorCategory.CONFIG,
        "019",
        "Server token exchange failed with status {{ status }}.",
    )
    ERR_RESOLVE_REMOTES = (
        ErrorCategory.RESOLUTION,
        "020",
        "Could not resolve {{ app_uid }} with version {{ version }} (status {{ status }}).",
    )
    ERR_INVALID_RESOLVE_RESPONSE = (
        ErrorCategory.RESOLUTION,
        "021",
        "Registry response for {{ app_uid }}@{{ version }} has no usable remote URL.",
    )
    ERR_INVALID_MANIFEST = (
        ErrorCategory.RUNTIME,
        "030",
        "Invalid manifest: {{ reason }}.",
    )
    ERR_MANIFEST_FETCH = (
        ErrorCategory.RUNTIME,
        "031",
        "Failed to fetch manifest from {{ url }}: {{ reason }}.",
    )

    @property
    def category(self) -> ErrorCategory:
        return self.value[0]

    @property
    def id(self) -> str:
        return self.value[1]

    @property
    def template(self) -> str:
        return self.value[2]

    @property
    def code(self) -> str:
        """Formatted code such as ``ZE-RS020``."""
        return f"ZE-{self.category.value}{self.id}"


_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def format_template(template: str, values: Dict[str, Any]) -> str:
    """Fill ``{{ name }}`` placeholders, leaving unknown ones untouched."""

    def _sub(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in values:
            return str(values[name])
        return match.group(0)

    return _PLACEHOLDER.sub(_sub, template)


class ZephyrError(Exception):
    """Base error carrying a :class:`ZeErrors` code and template values."""

    def __init__(
        self,
        error: ZeErrors,
        *,
        cause: Optional[BaseException] = None,
        data: Optional[Dict[str, Any]] = None,
        **template: Any,
    ):
        self.error = error
        self.template = template
        self.data = data or {}
        self.cause = cause
        super().__init__(format_template(error.template, template))
        if cause is not None:
            self.__cause__ = cause

    @property
    def code(self) -> str:
        return self.error.code

    def is_code(self, error: ZeErrors) -> bool:
        """Return True when this error was raised with ``error``."""
        return self.error is error

    def __str__(self) -> str:
        return f"{self.code}: {self.args[0]}"
