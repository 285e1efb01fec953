"""
Structured logging for shelf.

Provides:
- Context variables for acquisition_id, subject, strategy (using contextvars)
- JSONFormatter for machine-readable logs to file
- RichHandler for pretty console output
- ContextLogger wrapper that attaches context to all log calls
- setup_logging() that configures both file and console handlers
- log_context() context manager for scoped context
- get_logger() factory
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

# Context variables for structured logging
_acquisition_id_var: ContextVar[str | None] = ContextVar("acquisition_id", default=None)
_subject_var: ContextVar[str | None] = ContextVar("subject", default=None)
_strategy_var: ContextVar[str | None] = ContextVar("strategy", default=None)


def get_acquisition_id() -> str | None:
    """Get the current acquisition ID from context."""
    return _acquisition_id_var.get()


def get_subject() -> str | None:
    """Get the current subject from context."""
    return _subject_var.get()


def get_strategy() -> str | None:
    """Get the current strategy label from context."""
    return _strategy_var.get()


def _current_context() -> dict[str, str]:
    context: dict[str, str] = {}
    acquisition_id = get_acquisition_id()
    subject = get_subject()
    strategy = get_strategy()
    if acquisition_id:
        context["acquisition_id"] = acquisition_id
    if subject:
        context["subject"] = subject
    if strategy:
        context["strategy"] = strategy
    return context


@contextmanager
def log_context(
    acquisition_id: str | None = None,
    subject: str | None = None,
    strategy: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        acquisition_id: Acquisition ID to set in context.
        subject: Subject being loaded.
        strategy: Strategy label of the attempt in progress.

    Yields:
        None. Context variables are set for the duration of the context.
    """
    old_acquisition_id = _acquisition_id_var.get()
    old_subject = _subject_var.get()
    old_strategy = _strategy_var.get()

    try:
        if acquisition_id is not None:
            _acquisition_id_var.set(acquisition_id)
        if subject is not None:
            _subject_var.set(subject)
        if strategy is not None:
            _strategy_var.set(strategy)
        yield
    finally:
        _acquisition_id_var.set(old_acquisition_id)
        _subject_var.set(old_subject)
        _strategy_var.set(old_strategy)


class JSONFormatter(logging.Formatter):
    """JSON formatter for machine-readable log files.

    Produces JSON Lines format with structured context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(_current_context())

        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ContextRichHandler(RichHandler):
    """Rich handler that includes context in console output."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        """Override to add context prefix."""
        level_text = super().get_level_text(record)

        parts: list[str] = []
        acquisition_id = get_acquisition_id()
        subject = get_subject()
        strategy = get_strategy()

        if acquisition_id:
            # Last 8 chars of a uuid7 vary the most
            parts.append(f"[dim]{acquisition_id[-8:]}[/dim]")
        if subject:
            parts.append(f"[cyan]{subject}[/cyan]")
        if strategy:
            parts.append(f"[magenta]{strategy}[/magenta]")

        if parts:
            prefix = " ".join(parts)
            return Text.from_markup(f"{level_text} {prefix}")

        return level_text


class ContextLogger:
    """Logger wrapper that automatically attaches context to log calls.

    Keyword arguments other than the stdlib ones are collected into a
    structured ``extra`` payload alongside the context variables.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        """Get the logger name."""
        return self._logger.name

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = kwargs.pop("extra", {})
        extra.update(_current_context())

        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel"):
                extra[key] = kwargs.pop(key)

        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


# Global console for rich output
_console: Console | None = None
_setup_done: bool = False


def get_console() -> Console:
    """Get the global rich console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Set up logging with JSON file handler and rich console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, only console logging is enabled.
        console_output: Whether to enable console output.
    """
    global _setup_done

    root_logger = logging.getLogger("shelf")
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    if console_output:
        rich_handler = ContextRichHandler(
            console=get_console(),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
        )
        rich_handler.setLevel(getattr(logging, log_level.upper()))
        root_logger.addHandler(rich_handler)

    root_logger.propagate = False

    # httpx logs every request at INFO
    for noisy_logger in ["httpx", "httpcore", "aiosqlite", "asyncio"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _setup_done = True


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name (usually __name__).

    Returns:
        ContextLogger wrapper around the standard logger.
    """
    if not _setup_done:
        setup_logging()

    if not name.startswith("shelf"):
        name = f"shelf.{name}"

    return ContextLogger(logging.getLogger(name))
