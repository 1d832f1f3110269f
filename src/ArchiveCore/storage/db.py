"""SQLite connections for the archive database."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import ClassVar

from ArchiveCore.storage.migration import run_migrations


class DatabaseManager:
    """Owns the single connection to one database file.

    ``DatabaseManager(path)`` hands back the live manager for that resolved
    path if there is one, so the stores and the CLI share a connection. A new
    manager migrates the schema before it is returned. Leaving a ``with``
    block closes the connection and unregisters the manager.
    """

    _open: ClassVar[dict[Path, DatabaseManager]] = {}

    db_path: Path
    conn: sqlite3.Connection | None
    schema_version: int

    def __new__(cls, db_path: Path) -> DatabaseManager:
        key = Path(db_path).resolve()
        manager = cls._open.get(key)
        if manager is not None:
            return manager
        manager = super().__new__(cls)
        manager.db_path = key
        manager.conn = ensure_db(key)
        manager.schema_version = run_migrations(manager.conn)
        cls._open[key] = manager
        return manager

    def get_connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise RuntimeError(f"Database {self.db_path} is closed")
        return self.conn

    def close(self) -> None:
        if self.conn is None:
            return
        self.conn.close()
        self.conn = None
        if type(self)._open.get(self.db_path) is self:
            del type(self)._open[self.db_path]

    def __enter__(self) -> DatabaseManager:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def ensure_db(db_path: Path) -> sqlite3.Connection:
    """Open ``db_path``, creating parent folders as needed.

    The connection returns ``sqlite3.Row`` rows and enforces foreign keys.

    Raises:
        OSError: If the folder cannot be created.
        sqlite3.Error: If the file cannot be opened.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
