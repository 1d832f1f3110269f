"""Storage configuration: which collaborator backs the stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ArchiveCore.config.common import ConfigSection, require

STORAGE_BACKENDS = ("sqlite", "remote")


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Storage configuration.

    Attributes:
        backend: ``sqlite`` for the local database, ``remote`` for the REST API.
        db_path: SQLite database file, used by the ``sqlite`` backend.
    """

    backend: str
    db_path: str


def load_storage(raw: Mapping[str, Any]) -> StorageConfig:
    section = ConfigSection.load(raw, "storage", required=True)
    return StorageConfig(
        backend=section.get_str("backend").strip().lower(),
        db_path=section.get_str("db_path", ""),
    )


def check_storage(config: StorageConfig) -> None:
    require(config.backend in STORAGE_BACKENDS, f"storage.backend must be one of {list(STORAGE_BACKENDS)}")
    if config.backend == "sqlite":
        require(bool(config.db_path.strip()), "storage.db_path must not be empty for the sqlite backend")
