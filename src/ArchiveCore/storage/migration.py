"""Versioned schema upgrades for the archive SQLite database.

Each ``vNNN_<what>.py`` module in ``ArchiveCore.storage.migrations`` exports
one ``MIGRATION``. ``DatabaseManager`` runs every pending one when it opens a
database. A migration is all-or-nothing: its statements and the version bump
share one transaction.
"""

from __future__ import annotations

import importlib
import pkgutil
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Sequence

from ArchiveCore.utils.log import log

MIGRATIONS_PACKAGE = "ArchiveCore.storage.migrations"

# json_each / json_array_length (signature search) need 3.38.
MIN_SQLITE = (3, 38, 0)

_VERSION_TABLE = """
CREATE TABLE IF NOT EXISTS schema_version (
    id      INTEGER PRIMARY KEY CHECK (id = 1),
    version INTEGER NOT NULL
)
"""


@dataclass(frozen=True)
class Migration:
    """One schema step.

    Attributes:
        version: Position in the chain, starting at 1 with no gaps.
        description: Short summary shown in the log.
        sql: ``;``-separated statements.
    """

    version: int
    description: str
    sql: str

    def statements(self) -> list[str]:
        return [part.strip() for part in self.sql.split(";") if part.strip()]


def load_migrations() -> list[Migration]:
    """Collect ``MIGRATION`` from every ``v*`` module, sorted by version.

    Raises:
        ValueError: If a module does not export a ``Migration``.
    """
    package = importlib.import_module(MIGRATIONS_PACKAGE)
    collected = []
    for info in pkgutil.iter_modules(package.__path__):
        if not info.name.startswith("v"):
            continue
        migration = getattr(importlib.import_module(f"{MIGRATIONS_PACKAGE}.{info.name}"), "MIGRATION", None)
        if not isinstance(migration, Migration):
            raise ValueError(f"Migration module {info.name} does not define MIGRATION")
        collected.append(migration)
    collected.sort(key=lambda item: item.version)
    return collected


def run_migrations(conn: sqlite3.Connection, migrations: Sequence[Migration] | None = None) -> int:
    """Bring ``conn`` up to the newest schema and return its version.

    Raises:
        RuntimeError: If the linked SQLite is older than ``MIN_SQLITE``.
        ValueError: If the versions are not ``1..n`` without gaps.
        sqlite3.Error: If a statement fails; that migration is rolled back.
    """
    require_sqlite(MIN_SQLITE)
    chain = list(load_migrations() if migrations is None else migrations)
    check_chain(chain)

    conn.execute(_VERSION_TABLE)
    conn.commit()
    version = stored_version(conn)

    for migration in chain[version:]:
        with _transaction(conn):
            for statement in migration.statements():
                conn.execute(statement)
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (id, version) VALUES (1, ?)",
                (migration.version,),
            )
        log.info("applied migration v%d: %s", migration.version, migration.description)
        version = migration.version

    log.debug("schema at version %d", version)
    return version


def stored_version(conn: sqlite3.Connection) -> int:
    """Version recorded in ``schema_version``; 0 for a fresh database."""
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return int(row[0]) if row else 0


def check_chain(chain: Sequence[Migration]) -> None:
    for position, migration in enumerate(chain, start=1):
        if migration.version != position:
            raise ValueError(
                f"Migration version gap: expected version {position}, "
                f"got {migration.version} ({migration.description!r})"
            )


def require_sqlite(minimum: tuple[int, ...]) -> None:
    found = tuple(int(part) for part in sqlite3.sqlite_version.split("."))
    if found < minimum:
        wanted = ".".join(map(str, minimum))
        raise RuntimeError(f"SQLite >= {wanted} is required (found {sqlite3.sqlite_version})")


@contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[None]:
    # Explicit BEGIN/COMMIT; executescript() would commit after every statement.
    conn.execute("BEGIN")
    try:
        yield
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
