"""Runtime configuration assembled from the environment and CLI arguments."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .constants import Constants


def first_env(names) -> Optional[str]:
    """Return the first non-blank value among the named environment variables."""
    for name in names:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


@dataclass
class ZephyrConfig:
    """Settings shared by the resolver, token exchange and CLI."""

    api_url: str = Constants.API_BASE_URL
    token: Optional[str] = None
    abort_on_error: bool = True
    platform: Optional[str] = None
    project_root: Path = field(default_factory=Path.cwd)
    package_json_path: Optional[Path] = None
    output_dir: Optional[Path] = None
    timeout: int = Constants.REQUEST_TIMEOUT

    @classmethod
    def from_env(cls, **overrides: Any) -> "ZephyrConfig":
        """Create config from ``ZE_API``, with keyword overrides applied last."""
        config = cls()
        api_url = first_env((Constants.ENV_API_URL,))
        if api_url:
            config.api_url = api_url
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        config.api_url = config.api_url.rstrip("/")
        return config

    @classmethod
    def from_args(cls, args: Any) -> "ZephyrConfig":
        """Create config from CLI arguments.

        Args:
            args: Parsed CLI arguments namespace.

        Returns:
            ZephyrConfig instance.
        """
        package_json = getattr(args, "PACKAGE_JSON", None)
        output_dir = getattr(args, "OUTPUT_DIR", None)
        return cls.from_env(
            api_url=getattr(args, "API_URL", None),
            token=getattr(args, "TOKEN", None),
            abort_on_error=not getattr(args, "CONTINUE_ON_ERROR", False),
            platform=getattr(args, "PLATFORM", None),
            project_root=Path(getattr(args, "ROOT", None) or Path.cwd()),
            package_json_path=Path(package_json) if package_json else None,
            output_dir=Path(output_dir) if output_dir else None,
            timeout=getattr(args, "TIMEOUT", None),
        )
