"""Logging utilities for document-ocr."""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional

# Follows asyncio tasks, so concurrent extractions keep their own id.
request_id_var: ContextVar[Optional[str]] = ContextVar("document_ocr_request_id", default=None)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ContextLogger:
    """Logger wrapper that appends structured key=value data to messages.

    Fields passed to ``bind`` are attached to every record emitted through
    the returned logger, in addition to the per-call ``extra_data``.
    """

    def __init__(self, logger: logging.Logger, bound: Optional[dict[str, Any]] = None):
        self.logger = logger
        self.bound = dict(bound or {})

    def bind(self, **fields: Any) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.bound, **fields})

    @staticmethod
    def _format_extra_data(extra_data: dict[str, Any]) -> str:
        if not extra_data:
            return ""
        return " [" + ", ".join(f"{k}={v}" for k, v in extra_data.items()) + "]"

    def _log(self, level: int, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        if not self.logger.isEnabledFor(level):
            return
        data = {**self.bound, **(extra_data or {})}
        request_id = get_request_id()
        if request_id:
            data["request_id"] = request_id
        self.logger.log(level, msg + self._format_extra_data(data), **kwargs)

    def debug(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.DEBUG, msg, extra_data, **kwargs)

    def info(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.INFO, msg, extra_data, **kwargs)

    def warning(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.WARNING, msg, extra_data, **kwargs)

    def error(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        self._log(logging.ERROR, msg, extra_data, **kwargs)

    def exception(self, msg: str, extra_data: Optional[dict[str, Any]] = None, **kwargs):
        """Log an error together with the active traceback."""
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, extra_data, **kwargs)


def setup_logging(log_level: str = "INFO") -> None:
    """Configure the ``document_ocr`` logger hierarchy.

    Only the package logger is touched, so applications embedding the
    pipeline keep their own root configuration.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    package_logger = logging.getLogger("document_ocr")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger, typically ``get_logger(__name__)``."""
    return ContextLogger(logging.getLogger(name))


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the request id for the current context, generating one if needed."""
    if request_id is None:
        request_id = uuid.uuid4().hex[:12]
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return request_id_var.get()


class Timer:
    """Context manager measuring elapsed wall time in milliseconds."""

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
        """Elapsed time so far, or the final value once the block exited."""
        if self.elapsed_ms is not None:
            return self.elapsed_ms
        if self.start_time is not None:
            return int((time.perf_counter() - self.start_time) * 1000)
        return 0
