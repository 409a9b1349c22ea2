"""Structured logging for the draft server.

structlog events are rendered by stdlib handlers through a ProcessorFormatter,
so third-party libraries and pytest's caplog see the same records.

Environment variables:
- LOG_FORMAT: "json" for log aggregation, "console" or unset for
  human-readable output.
- LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_LOG_FORMATS = ("json", "console", "")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore")


class LogOptions(NamedTuple):
    json_mode: bool
    level: int


def _plain(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _serialize_values(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Replace Enum and datetime values (one level deep) with plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, dict):
            event_dict[key] = {k: _plain(v) for k, v in value.items()}
        else:
            event_dict[key] = _plain(value)
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def resolve_options(environ: MutableMapping[str, str] | None = None) -> LogOptions:
    """Read LOG_FORMAT and LOG_LEVEL, raising ValueError on anything unknown."""
    environ = os.environ if environ is None else environ

    log_format = environ.get("LOG_FORMAT", "").lower()
    if log_format not in _LOG_FORMATS:
        raise ValueError(f"Invalid LOG_FORMAT={log_format!r}. Must be 'json', 'console', or unset.")

    level_name = environ.get("LOG_LEVEL", "INFO").upper()
    if level_name not in _LOG_LEVELS:
        raise ValueError(f"Invalid LOG_LEVEL={level_name!r}. Must be one of {', '.join(_LOG_LEVELS)}.")

    return LogOptions(json_mode=log_format == "json", level=getattr(logging, level_name))


def configure_structlog(*, timestamps: bool = True) -> None:
    """Install the processor chain shared by the server and the test suite.

    Exceptions are rendered by the handler formatter, never here, so a file
    handler does not print a traceback twice.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    if timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        _serialize_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def _build_formatter(*, json_mode: bool, colors: bool = False) -> logging.Formatter:
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def log_file_path(log_dir: Path | str, prefix: str = "draft", now: datetime | None = None) -> Path:
    """Return ``<log_dir>/<prefix>_<timestamp>.log`` for a server started at ``now``."""
    timestamp = (now or datetime.now(tz=UTC)).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    return Path(log_dir) / f"{prefix}_{timestamp}.log"


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
    prefix: str = "draft",
) -> Path | None:
    """Send structlog output to stdout and, outside tests, to a log file in ``log_dir``.

    ``level`` overrides LOG_LEVEL. Returns the log file path, or None when
    no file was opened.
    """
    options = resolve_options()
    configure_structlog()

    root_logger = logging.getLogger()
    root_logger.setLevel(options.level if level is None else level)
    root_logger.handlers.clear()

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(_build_formatter(json_mode=options.json_mode, colors=sys.stdout.isatty()))
    root_logger.addHandler(stdout_handler)

    if log_dir is None or _is_test():
        return None

    file_path = log_file_path(log_dir, prefix)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(file_path)
    file_handler.setFormatter(_build_formatter(json_mode=options.json_mode))
    root_logger.addHandler(file_handler)
    return file_path
