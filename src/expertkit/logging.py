"""Logging utilities for expertkit.

This module provides a custom CONSULT log level and a context manager for
enabling/disabling expertkit logging with loguru.

Note:
    Importing this module removes loguru's default stderr handler (ID 0) to
    prevent duplicate output when ``enable_logging()`` adds its own handler.
    If your application configures loguru handlers *before* importing
    expertkit, handler 0 may no longer be the default; in that case the
    removal is a no-op (the ``ValueError`` is suppressed). Configure loguru
    handlers *after* importing expertkit, or re-add a stderr handler
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

    from loguru import Record

PACKAGE_NAME: Final[str] = __name__.split(".")[0]

with contextlib.suppress(ValueError):
    logger.remove(0)

# Consultation operations (start, answer, why, how) log at this level.
CONSULT_LEVEL: Final[str] = "CONSULT"
CONSULT_LEVEL_NUMBER: Final[int] = 25  # Between INFO (20) and WARNING (30)


def _register_consult_level() -> None:
    """Register the CONSULT custom log level with loguru.

    Looks up the CONSULT level and registers it when missing. If it already
    exists with a different numeric value, emits a UserWarning because loguru
    does not permit changing the numeric value of an existing level.
    """
    try:
        existing_level = logger.level(CONSULT_LEVEL)
    except ValueError:
        logger.level(CONSULT_LEVEL, no=CONSULT_LEVEL_NUMBER, icon="?")
    else:
        if existing_level.no != CONSULT_LEVEL_NUMBER:
            msg = (
                f"CONSULT level already registered with numeric value {existing_level.no},"
                f" expected {CONSULT_LEVEL_NUMBER}"
            )
            warnings.warn(msg, stacklevel=2)


_register_consult_level()

type LogLevel = Literal[
    "TRACE",
    "DEBUG",
    "INFO",
    "CONSULT",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

type LogFormat = Literal["short", "full"]

_SHORT_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{function}</cyan> - "
    "<level>{message}</level> {extra}"
)
_FULL_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level> {extra}"
)


class LoggingHandle:
    """Handle for managing expertkit logging lifecycle.

    Stores the handler ID from logger.add() and provides cleanup via disable()
    or automatic cleanup through the context manager protocol.

    Examples:
        >>> with enable_logging(level="DEBUG"):  # doctest: +SKIP
        ...     tree = train(examples, attributes)

        >>> handle = enable_logging()  # doctest: +SKIP
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

        When this is the last active handle, ``logger.disable("expertkit")``
        is called to suppress expertkit log messages again. Calling this more
        than once is a no-op.
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
    level: LogLevel = CONSULT_LEVEL,
    log_format: LogFormat = "short",
) -> LoggingHandle:
    """Enable expertkit logging to stderr.

    The default level surfaces consultation operations. Lower it to "DEBUG"
    to see which attribute and threshold the tree builder chose at every
    node, or raise it to "WARNING" to see only rejected answers.

    Args:
        level (LogLevel): Minimum log level to display. Defaults to "CONSULT".
        log_format (LogFormat): "short" (default) shows the function name;
            "full" adds module and line number.

    Returns:
        LoggingHandle: Independent handle for managing the logging handler.

    Note:
        This function calls ``logger.enable("expertkit")``. When the last
        active ``LoggingHandle`` is disabled, ``logger.disable("expertkit")``
        is called automatically, which also silences any handler your
        application routed expertkit records to.
    """
    logger.enable(PACKAGE_NAME)

    handler_id = logger.add(
        sys.stderr,
        level=level,
        filter=_is_expertkit_record,
        format=_SHORT_FORMAT if log_format == "short" else _FULL_FORMAT,
    )

    return LoggingHandle(handler_id)


def _is_expertkit_record(record: Record) -> bool:
    """Filter to pass all expertkit module records.

    Args:
        record (Record): The loguru Record object to filter.

    Returns:
        bool: True if the record comes from an expertkit module, False otherwise.
    """
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)
