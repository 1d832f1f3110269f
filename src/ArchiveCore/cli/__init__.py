"""CLI package for ArchiveCore command orchestration."""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from ArchiveCore.cli.runner import CommandRunner
from ArchiveCore.cli.ui import cli


def main() -> None:
    """Run ArchiveCore CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
