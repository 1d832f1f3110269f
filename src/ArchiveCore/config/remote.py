"""Remote archive API configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from ArchiveCore.config.common import ConfigSection, require


@dataclass(frozen=True, slots=True)
class RemoteConfig:
    """Remote API settings.

    Attributes:
        base_url: API root (``http://host:port/api``); empty when unused.
        token_env: Name of the environment variable holding the bearer token.
        timeout: Request timeout in seconds.
    """

    base_url: str
    token_env: str | None
    timeout: float

    def token(self) -> str | None:
        """Read the bearer token from the environment (``.env`` included once loaded)."""
        if not self.token_env:
            return None
        return os.getenv(self.token_env) or None


def load_remote(raw: Mapping[str, Any]) -> RemoteConfig:
    section = ConfigSection.load(raw, "remote", required=False)
    return RemoteConfig(
        base_url=section.get_str("base_url", "").strip(),
        token_env=section.get_optional_str("token_env"),
        timeout=section.get_float("timeout", 30),
    )


def check_remote(config: RemoteConfig) -> None:
    require(config.timeout > 0, "remote.timeout must be > 0")
    if config.base_url:
        require(
            config.base_url.startswith(("http://", "https://")),
            "remote.base_url must start with http:// or https://",
        )
