"""Versioned migration files for the archive SQLite schema.

Each module in this package must expose a single ``MIGRATION`` constant of
type :class:`~ArchiveCore.storage.migration.Migration`. Modules are
discovered and sorted by :func:`~ArchiveCore.storage.migration.load_migrations`;
file names follow the ``vNNN_<description>.py`` convention.
"""
