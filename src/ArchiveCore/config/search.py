"""Search paging configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ArchiveCore.config.common import ConfigSection, require
from ArchiveCore.core.query import DEFAULT_PAGE_SIZE


@dataclass(frozen=True, slots=True)
class SearchConfig:
    page_size: int


def load_search(raw: Mapping[str, Any]) -> SearchConfig:
    section = ConfigSection.load(raw, "search", required=False)
    return SearchConfig(page_size=section.get_int("page_size", DEFAULT_PAGE_SIZE))


def check_search(config: SearchConfig) -> None:
    require(config.page_size > 0, "search.page_size must be > 0")
