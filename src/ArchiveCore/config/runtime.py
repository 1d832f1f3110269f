"""Logging configuration (the ``log`` section)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ArchiveCore.config.common import ConfigSection, require

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Console log level and the optional per-command log file.

    Attributes:
        level: Console level name, upper-cased.
        to_file: Also write a DEBUG log under ``dir/<command>/``.
        dir: Base directory for log files.
    """

    level: str
    to_file: bool
    dir: str


def load_runtime(raw: Mapping[str, Any]) -> RuntimeConfig:
    section = ConfigSection.load(raw, "log", required=True)
    return RuntimeConfig(
        level=section.get_str("level").strip().upper(),
        to_file=section.get_bool("to_file"),
        dir=section.get_str("dir"),
    )


def check_runtime(config: RuntimeConfig) -> None:
    require(config.level in LOG_LEVELS, f"log.level must be one of {list(LOG_LEVELS)}")
    require(bool(config.dir.strip()), "log.dir must not be empty")
