"""Logging utilities for forestkit.

This module provides a custom PROGRESS log level and a handle for
enabling/disabling forestkit logging with loguru. Searches and forest fits
log through `bind_run_context`, which stamps their run-wide settings on
every record.

Note:
    Importing this module removes loguru's default stderr handler (ID 0) to
    prevent duplicate output when ``enable_logging()`` adds its own handler.
    If your application configures loguru handlers *before* importing
    forestkit, handler 0 may no longer be the default; in that case the
    removal is a no-op (the ``ValueError`` is suppressed). Configure loguru
    handlers *after* importing forestkit, or re-add a stderr handler
    explicitly if needed.
"""

from __future__ import annotations

import contextlib
import sys
import threading
import warnings
from typing import TYPE_CHECKING, ClassVar, Final, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import TracebackType

    from loguru import Logger, Record

PACKAGE_NAME: Final[str] = __name__.split(".")[0]

# Handler ID 0 is the default stderr handler loguru creates at import time.
with contextlib.suppress(ValueError):
    logger.remove(0)

# Search and ensemble progress sits between INFO (20) and WARNING (30).
PROGRESS_LEVEL: Final[str] = "PROGRESS"
PROGRESS_LEVEL_NUMBER: Final[int] = 25


def _register_progress_level() -> None:
    """Register the PROGRESS custom log level with loguru.

    Looks up the PROGRESS level and registers it when missing. If it already
    exists with a different numeric value, emits a UserWarning because loguru
    does not permit changing the numeric value of an existing level.
    """
    try:
        existing_level = logger.level(PROGRESS_LEVEL)
    except ValueError:
        logger.level(PROGRESS_LEVEL, no=PROGRESS_LEVEL_NUMBER, icon="🌲")
    else:
        if existing_level.no != PROGRESS_LEVEL_NUMBER:
            msg = (
                f"PROGRESS level already registered with numeric value {existing_level.no},"
                f" expected {PROGRESS_LEVEL_NUMBER}"
            )
            warnings.warn(msg, stacklevel=2)


_register_progress_level()

type LogLevel = Literal[
    "TRACE",
    "DEBUG",
    "INFO",
    "PROGRESS",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

type LogFormat = Literal["short", "full"]


class LoggingHandle:
    """Handle for managing forestkit logging lifecycle.

    Stores the handler ID from logger.add() and provides cleanup via disable()
    or automatic cleanup through the context manager protocol.

    Examples:
        >>> with enable_logging():  # doctest: +SKIP
        ...     fit_forest(dataset, tree_count=100, mtry=3, min_node_size=5)

        >>> handle = enable_logging(level="DEBUG")  # doctest: +SKIP
        >>> handle.disable()  # doctest: +SKIP
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int) -> None:
        """Initialize the logging handle.

        Args:
            handler_id (int): The loguru handler ID from logger.add().
        """
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        """Remove the handler associated with this logging handle.

        When this is the last active handle, ``logger.disable("forestkit")`` is
        called to suppress forestkit log messages again.
        """
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        """Enter context manager.

        Returns:
            LoggingHandle: This handle instance.
        """
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and disable logging.

        Args:
            exc_type (type[BaseException] | None): The exception type, if raised.
            exc_val (BaseException | None): The exception instance, if raised.
            exc_tb (TracebackType | None): The traceback, if raised.
        """
        self.disable()

    @classmethod
    def get_active_handle_count(cls) -> int:
        """Return the number of currently active logging handles.

        Returns:
            int: Count of active handles that have not been disabled.
        """
        with cls._lock:
            return len(cls._active_ids)


def enable_logging(
    *,
    level: LogLevel = PROGRESS_LEVEL,
    log_format: LogFormat = "short",
) -> LoggingHandle:
    """Enable forestkit logging to stderr.

    Use this to follow long hyperparameter searches and ensemble fits. Each
    call returns an independent handle that manages its own handler.

    Args:
        level (LogLevel): Minimum log level to display. Defaults to "PROGRESS",
            which surfaces one line per scored configuration and per fitted
            forest. Lower to "DEBUG" to see per-fold and per-tree detail.
        log_format (LogFormat): "short" (default) shows the function name;
            "full" adds module and line number.

    Returns:
        LoggingHandle: Independent handle for managing the logging handler.

    Note:
        This calls ``logger.enable("forestkit")``. When the last active
        ``LoggingHandle`` is disabled, ``logger.disable("forestkit")`` is
        called automatically, which also silences any handler your application
        routed forestkit messages to.
    """
    logger.enable(PACKAGE_NAME)

    if log_format == "short":
        format_str = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "  # noqa: RUF027 - loguru format string
            "<cyan>{function}</cyan> - "
            "<level>{message}</level> {extra}"
        )
    else:  # "full"
        format_str = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "  # noqa: RUF027 - loguru format string
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level> {extra}"
        )

    handler_id = logger.add(
        sys.stderr,
        level=level,
        filter=_is_forestkit_record,
        format=format_str,
    )

    return LoggingHandle(handler_id)


def bind_run_context(operation: str, **context: object) -> Logger:
    """Return the package logger with run-wide fields bound to every record.

    A search or forest fit binds its settings once, so each progress and
    warning line it emits carries them in `extra` next to the per-record
    fields.

    Args:
        operation (str): Short name of the running operation, e.g. "search".
        **context (object): Settings shared by every record of the run.

    Returns:
        Logger: A bound loguru logger.

    Examples:
        >>> run_logger = bind_run_context("search", metric="roc_auc", k=5)
        >>> run_logger.log(PROGRESS_LEVEL, "Configuration evaluated", position=1)  # doctest: +SKIP
    """
    return logger.bind(operation=operation, **context)


def _is_forestkit_record(record: Record) -> bool:
    """Filter to pass all forestkit module records.

    Args:
        record (Record): The loguru Record object to filter.

    Returns:
        bool: True if the record is from the forestkit package, False otherwise.
    """
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)
