"""Element Browser configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ArchiveCore.config.common import ConfigSection, require


@dataclass(frozen=True, slots=True)
class BrowserConfig:
    """Debounce delay and candidate cap of the Element Browser."""

    debounce_ms: int
    max_results: int

    @property
    def debounce_delay(self) -> float:
        return self.debounce_ms / 1000


def load_browser(raw: Mapping[str, Any]) -> BrowserConfig:
    section = ConfigSection.load(raw, "browser", required=False)
    return BrowserConfig(
        debounce_ms=section.get_int("debounce_ms", 300),
        max_results=section.get_int("max_results", 200),
    )


def check_browser(config: BrowserConfig) -> None:
    require(config.debounce_ms >= 0, "browser.debounce_ms must be >= 0")
    require(config.max_results > 0, "browser.max_results must be > 0")
