"""Command runner for coordinating CLI execution.

Manages backend lifecycle, logging configuration and error handling for
command execution.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable

import click

from ArchiveCore.config import AppConfig
from ArchiveCore.services import Backend, create_backend
from ArchiveCore.storage import DatabaseManager
from ArchiveCore.utils.log import configure_logging, log


class CommandRunner:
    """Orchestrates command execution with proper resource management."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def _configure_logging(self, action: str) -> None:
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )

    def run(self, action: str, command: Callable[[Backend], Awaitable[Any]]) -> Any:
        """Execute an async command against the configured backend.

        Args:
            action: The CLI command name (e.g. ``search``).
            command: Coroutine function receiving the backend.

        Returns:
            Whatever the command returns.

        Raises:
            click.Abort: When the command fails.
        """
        self._configure_logging(action)
        try:
            backend = create_backend(self.config)
            try:
                return asyncio.run(command(backend))
            finally:
                backend.close()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", action.capitalize(), e)
            raise click.Abort from e

    def run_init_db(self, action: str) -> None:
        """Create or migrate the SQLite database.

        Raises:
            click.Abort: When the backend is not SQLite or migration fails.
        """
        self._configure_logging(action)
        try:
            if self.config.storage.backend != "sqlite":
                raise ValueError("init-db requires storage.backend=sqlite")
            with DatabaseManager(Path(self.config.storage.db_path)) as db_manager:
                log.info("Database ready: %s (schema v%d)", db_manager.db_path, db_manager.schema_version)
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Init-db failed: %s", e)
            raise click.Abort from e
