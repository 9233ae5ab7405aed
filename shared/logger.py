"""
WaveLens Structured Logger
===========================

:class:`WaveLensLogger` wraps one stdlib logger per component
(``wavelens.<component>``). Records go to a Rich handler on stderr and,
optionally, to a size-rotated file in plain text or JSON lines.
Every record carries the component name and the current operation tag.
"""

from __future__ import annotations

import json
import logging
import time
import weakref
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

_STDERR_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bright_blue",
        "log.level.warning": "yellow",
        "log.level.error": "bold red",
    }
)

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(component)s] %(message)s"
_TEXT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

# Applied to loggers created after configure_logging()
_DEFAULTS: dict[str, Any] = {
    "log_level": "INFO",
    "log_file": None,
    "json_logs": False,
    "console_output": True,
}


class _JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: ``timestamp``, ``level``, ``logger``, ``component``, ``message``
    and, when present, ``operation``, ``extra`` and ``exc_info``.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": getattr(record, "component", None),
            "message": record.getMessage(),
        }
        optional = {
            "operation": getattr(record, "operation", None),
            "extra": getattr(record, "wavelens_extra", None),
        }
        if record.exc_info and record.exc_info[1] is not None:
            optional["exc_info"] = self.formatException(record.exc_info)
        entry.update((k, v) for k, v in optional.items() if v is not None)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _stderr_handler(level: int) -> logging.Handler:
    # stderr keeps stdout free for tables
    return RichHandler(
        level=level,
        console=Console(theme=_STDERR_THEME, stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )


def _file_handler(
    path: str | Path, level: int, *, json_lines: bool, max_bytes: int, backups: int
) -> logging.Handler:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        target, maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(
        _JSONFormatter() if json_lines
        else logging.Formatter(_TEXT_FORMAT, datefmt=_TEXT_DATEFMT)
    )
    return handler


class WaveLensLogger:
    """Component logger with an optional operation tag.

    Usage::

        log = WaveLensLogger("session.capture")
        with log.operation("poll"):
            log.info("Polled packets", count=12)
        log.error("Poll failed", exc_info=True)

    Extra keyword arguments end up under ``extra`` in JSON logs.

    Args:
        component:       Dotted module name, e.g. ``"session.scan"``.
        log_level:       Minimum severity name.
        log_file:        Rotating log file; ``None`` logs to stderr only.
        json_logs:       Write JSON lines instead of plain text to the file.
        max_bytes:       Rotation threshold in bytes.
        backup_count:    Rotated files to keep.
        console_output:  Attach the Rich stderr handler.

    Arguments left as ``None`` take the values last given to
    :func:`configure_logging`.
    """

    # Live loggers reconfigured by configure_logging()
    _instances: weakref.WeakSet[WaveLensLogger] = weakref.WeakSet()

    def __init__(
        self,
        component: str,
        *,
        log_level: str | None = None,
        log_file: str | Path | None = None,
        json_logs: bool | None = None,
        max_bytes: int = 5 * 1024 * 1024,
        backup_count: int = 3,
        console_output: bool | None = None,
    ) -> None:
        self._component = component
        self._operation: str | None = None
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._logger = logging.getLogger(f"wavelens.{component}")
        self._logger.propagate = False

        given = {
            "log_level": log_level,
            "log_file": log_file,
            "json_logs": json_logs,
            "console_output": console_output,
        }
        self.configure(**{
            key: _DEFAULTS[key] if value is None else value
            for key, value in given.items()
        })
        WaveLensLogger._instances.add(self)

    def configure(
        self,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        console_output: bool = True,
    ) -> None:
        """Replace this logger's handlers according to the arguments."""
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            level = logging.INFO
        self._logger.setLevel(level)

        for handler in self._logger.handlers[:]:
            self._logger.removeHandler(handler)
            handler.close()

        if console_output:
            self._logger.addHandler(_stderr_handler(level))
        if log_file:
            self._logger.addHandler(
                _file_handler(
                    log_file, level,
                    json_lines=json_logs,
                    max_bytes=self._max_bytes,
                    backups=self._backup_count,
                )
            )

    # ------------------------------------------------------------------ #
    #  Scoped context
    # ------------------------------------------------------------------ #

    @contextmanager
    def operation(self, name: str) -> Iterator[WaveLensLogger]:
        """Tag records emitted inside the block with *name*.

        Usage::

            with log.operation("begin_scan"):
                log.info("Scan started")
        """
        previous, self._operation = self._operation, name
        try:
            yield self
        finally:
            self._operation = previous

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Log *label* at DEBUG on entry and with its duration at INFO on exit."""
        start = time.perf_counter()
        self.debug(f"Started: {label}")
        try:
            yield
        finally:
            self.info(f"Completed: {label} ({time.perf_counter() - start:.3f} sec)")

    # ------------------------------------------------------------------ #
    #  Log methods
    # ------------------------------------------------------------------ #

    def _log(self, level: int, msg: str, args: tuple, kwargs: dict[str, Any]) -> None:
        """Forward to the stdlib logger with the WaveLens context attached.

        Keyword arguments other than the stdlib ones are collected into
        the ``wavelens_extra`` record attribute (emitted by JSON logs).
        """
        passthrough = {k: kwargs.pop(k) for k in ("exc_info", "stack_info") if k in kwargs}
        extra: dict[str, Any] = {
            "component": self._component,
            "operation": self._operation,
        }
        if kwargs:
            extra["wavelens_extra"] = kwargs
        self._logger.log(level, msg, *args, extra=extra, stacklevel=3, **passthrough)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    @property
    def name(self) -> str:
        """Full stdlib logger name (``wavelens.<component>``)."""
        return self._logger.name


# Process-wide configuration


def configure_logging(
    *,
    log_level: str = "INFO",
    log_file: str | Path | None = None,
    json_logs: bool = False,
    console_output: bool = True,
) -> None:
    """Apply process-wide logging settings to every WaveLens logger.

    Loggers are created at import time with the defaults; the CLI calls
    this once the configuration file has been read.
    """
    _DEFAULTS.update(
        log_level=log_level,
        log_file=log_file or None,
        json_logs=json_logs,
        console_output=console_output,
    )
    for inst in list(WaveLensLogger._instances):
        inst.configure(
            log_level=log_level,
            log_file=log_file or None,
            json_logs=json_logs,
            console_output=console_output,
        )
