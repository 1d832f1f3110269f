"""Root configuration: section assembly, YAML loading and layering.

A run reads ``config/default.yml`` and deep-merges an optional override file
on top, so an override only has to list the keys it changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from ArchiveCore.config.browser import BrowserConfig, check_browser, load_browser
from ArchiveCore.config.common import require
from ArchiveCore.config.remote import RemoteConfig, check_remote, load_remote
from ArchiveCore.config.runtime import RuntimeConfig, check_runtime, load_runtime
from ArchiveCore.config.search import SearchConfig, check_search, load_search
from ArchiveCore.config.storage import StorageConfig, check_storage, load_storage

DEFAULT_CONFIG_PATH = Path("config/default.yml")

# AppConfig attribute -> (loader, checker)
_SECTIONS = {
    "runtime": (load_runtime, check_runtime),
    "storage": (load_storage, check_storage),
    "remote": (load_remote, check_remote),
    "browser": (load_browser, check_browser),
    "search": (load_search, check_search),
}


@dataclass(frozen=True, slots=True)
class AppConfig:
    runtime: RuntimeConfig
    storage: StorageConfig
    remote: RemoteConfig
    browser: BrowserConfig
    search: SearchConfig


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Build and validate an ``AppConfig`` from a merged mapping.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If a key is missing or a constraint is violated.
    """
    sections: dict[str, Any] = {}
    for attr, (load, check) in _SECTIONS.items():
        section = load(raw)
        check(section)
        sections[attr] = section
    config = AppConfig(**sections)
    check_cross_domain(config)
    return config


def check_cross_domain(config: AppConfig) -> None:
    if config.storage.backend == "remote":
        require(bool(config.remote.base_url), "storage.backend=remote requires remote.base_url")


def load_config(path: Path) -> AppConfig:
    """Load a single YAML file without layering."""
    return parse_config_dict(parse_yaml(path.read_text(encoding="utf-8")))


def load_config_with_defaults(config_path: Path, default_path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load the defaults and deep-merge ``config_path`` over them.

    Passing the default file as ``config_path`` loads the defaults alone.
    """
    merged = parse_yaml(default_path.read_text(encoding="utf-8"))
    if Path(config_path).resolve() != Path(default_path).resolve():
        override = parse_yaml(config_path.read_text(encoding="utf-8"))
        merged = merge_config_dicts(merged, override)
    return parse_config_dict(merged)


def parse_yaml(text: str) -> dict[str, Any]:
    data = yaml.safe_load(text) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Config root must be a mapping/object")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into ``base`` recursively; non-mapping values replace."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(current, value)
        else:
            merged[key] = value
    return merged
