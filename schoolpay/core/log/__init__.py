"""Logging setup: rich console output, monthly log files and bound context.

Records are pushed through a ``QueueHandler`` so that handlers doing file
I/O never run on the event loop; a ``QueueListener`` thread drains them.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import SimpleQueue
from threading import RLock
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

from .context import ContextFilter, log_context
from .timing import CallTimer, timeit

if TYPE_CHECKING:
    from schoolpay.core.config import LoggingSettings

__all__ = [
    "init_logging",
    "get_logger",
    "shutdown_logging",
    "log_context",
    "timeit",
    "CallTimer",
    "MonthlyFileHandler",
]

ROOT_LOGGER = "schoolpay"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"

_lock = RLock()
_active: Optional["LoggingSettings"] = None
_listener: QueueListener | None = None
_context_filter = ContextFilter()


class MonthlyFileHandler(logging.FileHandler):
    """Appends to ``salary_<yyyy>_<mm>.log``, switching files when the month turns.

    Payroll runs per calendar month, so one file holds everything logged
    while a period was being worked on.
    """

    def __init__(self, directory: Path, *, encoding: str = "utf-8") -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._month = self._month_of(datetime.now())
        super().__init__(self._path(self._month), mode="a", encoding=encoding)

    @staticmethod
    def _month_of(moment: datetime) -> tuple[int, int]:
        return moment.year, moment.month

    def _path(self, month: tuple[int, int]) -> Path:
        year, number = month
        return self.directory / f"salary_{year}_{number:02d}.log"

    def emit(self, record: logging.LogRecord) -> None:
        month = self._month_of(datetime.fromtimestamp(record.created))
        if month != self._month:
            self._month = month
            self.close()
            self.baseFilename = os.fspath(self._path(month))
            self.stream = self._open()
        super().emit(record)


def _level(name: str | int) -> int:
    if isinstance(name, int):
        return name
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO


def _console_handler(level: int) -> logging.Handler:
    install_rich_traceback(show_locals=False)
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(context)s%(message)s"))
    return handler


def _file_handler(directory: Path, level: int) -> logging.Handler:
    handler = MonthlyFileHandler(directory)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def init_logging(settings: Optional["LoggingSettings"] = None) -> None:
    """Configure logging from ``LoggingSettings``; defaults come from the environment.

    Calling again with the settings already applied does nothing. Different
    settings replace the previous handlers.
    """

    global _active, _listener

    from schoolpay.core.config import LoggingSettings as _Settings

    settings = settings or _Settings.from_env()
    with _lock:
        if _active == settings:
            return
        if _active is not None:
            _stop()

        level = _level(settings.level)
        handlers: list[logging.Handler] = []
        if settings.console:
            handlers.append(_console_handler(level))
        if settings.log_dir:
            handlers.append(_file_handler(settings.log_dir, level))

        root = logging.getLogger()
        root.setLevel(logging.NOTSET)
        for handler in list(root.handlers):
            root.removeHandler(handler)

        if handlers:
            log_queue: SimpleQueue = SimpleQueue()
            queue_handler = QueueHandler(log_queue)
            queue_handler.setLevel(level)
            # Bound context belongs to the emitting task; render it before queueing.
            queue_handler.addFilter(_context_filter)
            root.addHandler(queue_handler)
            _listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
            _listener.start()
        _active = settings


def _stop() -> None:
    global _active, _listener

    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
    _listener = None
    _active = None
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def shutdown_logging() -> None:
    """Flush queued records and detach every handler."""

    with _lock:
        _stop()


def get_logger(name: str | None = None) -> logging.Logger:
    with _lock:
        if _active is None:
            init_logging()
    return logging.getLogger(name or ROOT_LOGGER)
