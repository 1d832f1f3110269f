"""ArchiveCore logging.

Every line reads ``mm-dd HH:MM:SS [LVL] message`` with a four-letter level
tag. The CLI calls ``configure_logging`` once per action; library modules
only ever use ``log``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Final

LINE_FORMAT: Final = "%(asctime)s [%(tag)s] %(message)s"
DATE_FORMAT: Final = "%m-%d %H:%M:%S"

_TAGS: Final[dict[int, str]] = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "ERRO",
}

# Third-party loggers that are chatty at DEBUG.
_QUIET_LOGGERS: Final = ("urllib3", "asyncio")

log = logging.getLogger("ArchiveCore")


class LevelTagFormatter(logging.Formatter):
    """Expose ``%(tag)s``, a fixed-width level name."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        record.tag = _TAGS.get(record.levelno, record.levelname[:4])
        return super().format(record)


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _action_file_handler(action: str, log_dir: str, formatter: logging.Formatter) -> logging.Handler:
    """Open ``<log_dir>/<action>/<action>_<mmddHHMMSS>.log`` at DEBUG."""
    folder = Path(log_dir or "log") / action
    folder.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%m%d%H%M%S")
    handler = logging.FileHandler(folder / f"{action}_{stamp}.log", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    *,
    level: str = "INFO",
    action: str | None = None,
    log_to_file: bool = False,
    log_dir: str = "log",
) -> None:
    """Attach fresh handlers to ``log``.

    The console follows ``level``. With ``log_to_file`` and an ``action``,
    a per-run file also records DEBUG lines such as dropped criteria and
    discarded stale fetches.
    """
    console_level = logging.getLevelName((level or "INFO").upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO

    formatter = LevelTagFormatter(fmt=LINE_FORMAT, datefmt=DATE_FORMAT)
    handlers = [_console_handler(console_level, formatter)]
    if log_to_file and action:
        handlers.append(_action_file_handler(action, log_dir, formatter))

    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    for handler in handlers:
        log.addHandler(handler)
    log.setLevel(logging.DEBUG if len(handlers) > 1 else console_level)
    log.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))
