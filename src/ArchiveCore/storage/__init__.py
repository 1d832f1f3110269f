"""Storage layer for ArchiveCore.

Provides the SQLite database manager, schema migrations, search execution
and the signature and archive stores.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ArchiveCore.storage.archive import SqliteArchiveStore
from ArchiveCore.storage.db import DatabaseManager
from ArchiveCore.storage.migration import run_migrations
from ArchiveCore.storage.search import SqliteSearchExecutor, create_search_executor
from ArchiveCore.storage.signatures import SqliteSignatureStore
from ArchiveCore.utils.log import log

if TYPE_CHECKING:
    from ArchiveCore.config import AppConfig


def create_storage(config: AppConfig) -> DatabaseManager | None:
    """Open the configured SQLite database.

    Args:
        config: Application configuration containing storage settings.

    Returns:
        Database manager, or None when the stores are remote.
    """
    if config.storage.backend != "sqlite":
        return None
    db_path = Path(config.storage.db_path)
    db_manager = DatabaseManager(db_path)
    log.debug("SQLite storage: %s", db_path)
    return db_manager


__all__ = [
    "DatabaseManager",
    "SqliteArchiveStore",
    "SqliteSearchExecutor",
    "SqliteSignatureStore",
    "create_search_executor",
    "create_storage",
    "run_migrations",
]
