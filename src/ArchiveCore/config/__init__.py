"""Public configuration API for ArchiveCore."""

from __future__ import annotations

from ArchiveCore.config.app import (
    DEFAULT_CONFIG_PATH,
    AppConfig,
    check_cross_domain,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
)
from ArchiveCore.config.browser import BrowserConfig
from ArchiveCore.config.remote import RemoteConfig
from ArchiveCore.config.runtime import RuntimeConfig
from ArchiveCore.config.search import SearchConfig
from ArchiveCore.config.storage import StorageConfig

__all__ = [
    "RuntimeConfig",
    "StorageConfig",
    "RemoteConfig",
    "BrowserConfig",
    "SearchConfig",
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "load_config",
    "load_config_with_defaults",
    "merge_config_dicts",
    "parse_config_dict",
    "check_cross_domain",
]
