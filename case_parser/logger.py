"""Logging utilities for case-parser."""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional

# Context variables carried across threads via contextvars.copy_context()
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
storage_path_var: ContextVar[Optional[str]] = ContextVar("storage_path", default=None)


class ContextLogger:
    """Logger wrapper that adds structured data to log records."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _format_extra_data(self, extra_data: Optional[dict[str, Any]]) -> str:
        """Format extra data as key=value pairs."""
        if not extra_data:
            return ""
        parts = [f"{k}={v}" for k, v in extra_data.items()]
        return " [" + ", ".join(parts) + "]"

    def _log(self, level: int, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        if not self.logger.isEnabledFor(level):
            return

        extra_data = dict(extra_data) if extra_data else {}
        request_id = request_id_var.get()
        if request_id:
            extra_data["request_id"] = request_id
        storage_path = storage_path_var.get()
        if storage_path and "storage_path" not in extra_data:
            extra_data["storage_path"] = storage_path

        self.logger.log(level, msg + self._format_extra_data(extra_data), **kwargs)

    def debug(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.DEBUG, msg, extra_data, **kwargs)

    def info(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.INFO, msg, extra_data, **kwargs)

    def warning(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.WARNING, msg, extra_data, **kwargs)

    def error(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.ERROR, msg, extra_data, **kwargs)


def setup_logging(log_level: str = "INFO"):
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger instance (typically for ``__name__``)."""
    return ContextLogger(logging.getLogger(name))


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID for the current context, generating a UUID if not given."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return request_id_var.get()


class Timer:
    """Context manager for timing operations."""

    def __init__(self, name: str):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed_ms: Optional[int] = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        if self.start_time is not None:
            self.elapsed_ms = int((time.perf_counter() - self.start_time) * 1000)

    def get_elapsed_ms(self) -> int:
        """Get elapsed time in milliseconds, also while the timer is running."""
        if self.elapsed_ms is not None:
            return self.elapsed_ms
        if self.start_time is not None:
            return int((time.perf_counter() - self.start_time) * 1000)
        return 0
