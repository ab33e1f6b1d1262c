"""Structured logging setup for :mod:`tsmeta`.

Console output goes to stderr so JSON responses printed on stdout stay
machine-readable. An optional log directory adds a JSON-lines file handler
that rotates nightly and gzips archives.
"""

from __future__ import annotations

import gzip
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
import shutil
from typing import Any, Iterable

from rich.console import Console
from rich.logging import RichHandler
import structlog

Logger = structlog.stdlib.BoundLogger

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)
_PRE_CHAIN = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    _TIMESTAMPER,
)

_ARCHIVE_COUNT = 7
LOG_FILENAME = "tsmeta.log"


def _level_number(level: str) -> int:
    """Translate a level name such as ``"debug"`` into its numeric value.

    Raises:
        ValueError: If the level name is unknown.
    """

    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unsupported log level: {level!r}")
    return value


def _install_handlers(
    root: logging.Logger,
    handlers: Iterable[logging.Handler],
) -> None:
    for existing in list(root.handlers):
        root.removeHandler(existing)
        existing.close()
    for handler in handlers:
        root.addHandler(handler)


def _processor_formatter(
    renderer: Any,
) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=list(_PRE_CHAIN),
    )


def _configure_structlog() -> None:
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            *_PRE_CHAIN,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _gzip_archive(source: str, dest: str) -> None:
    """Rotate ``source`` into a gzip archive at ``dest``."""

    with open(source, "rb") as raw, gzip.open(dest, "wb") as packed:
        shutil.copyfileobj(raw, packed)
    Path(source).unlink(missing_ok=True)


def _file_handler(log_file: Path, level: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        log_file,
        when="midnight",
        backupCount=_ARCHIVE_COUNT,
        utc=True,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.suffix = "%Y-%m-%d"
    handler.namer = lambda name: f"{name}.gz"
    handler.rotator = _gzip_archive
    handler.setFormatter(
        _processor_formatter(structlog.processors.JSONRenderer(sort_keys=True))
    )
    return handler


def _console_handler(level: int, console: Console | None) -> RichHandler:
    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        enable_link_path=False,
        log_time_format="%H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(
        _processor_formatter(structlog.dev.ConsoleRenderer(colors=False))
    )
    return handler


def configure_logging(
    *,
    level: str = "WARNING",
    log_dir: str | Path | None = None,
    console: Console | None = None,
) -> Path | None:
    """Route structlog and stdlib logging through Rich and optional files.

    Args:
        level: Level name applied to the root logger (case-insensitive).
        log_dir: Directory receiving ``tsmeta.log``; ``None`` disables file
            logging.
        console: Rich console override, mostly useful in tests.

    Returns:
        The path of the active log file, or ``None`` without ``log_dir``.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """

    numeric = _level_number(level)
    root = logging.getLogger()
    root.setLevel(numeric)

    _configure_structlog()

    handlers: list[logging.Handler] = [_console_handler(numeric, console)]
    log_file: Path | None = None
    if log_dir is not None:
        directory = Path(log_dir).expanduser().resolve(strict=False)
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / LOG_FILENAME
        handlers.append(_file_handler(log_file, numeric))

    _install_handlers(root, handlers)
    logging.captureWarnings(True)
    return log_file


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a structlog logger bound to ``initial_context``.

    Example:
        >>> logger = get_logger(__name__, component="sandbox")
        >>> isinstance(logger, structlog.stdlib.BoundLogger)
        True
    """

    return structlog.get_logger(name).bind(**initial_context)


__all__ = ["LOG_FILENAME", "Logger", "configure_logging", "get_logger"]
