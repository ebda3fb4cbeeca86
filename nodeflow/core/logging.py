"""Process logging for NodeFlow.

Run logs (the per-execution entries persisted with each ExecutionRecord) are
kept by ExecutionState; this module only configures the standard library
logging tree they are mirrored to.
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(module)s:%(funcName)s:%(lineno)d] - %(message)s"

# Levels applied to noisy libraries whatever the configured level is
LIBRARY_LEVELS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "asyncio": logging.WARNING,
    "aiohttp": logging.WARNING,
}

# Each asyncio task (one per run) sees its own copy
_logging_context: ContextVar[Dict[str, Any]] = ContextVar("nodeflow_logging_context", default={})


class StructuredFormatter(logging.Formatter):
    """Renders each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }
        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


class WorkflowContextFilter(logging.Filter):
    """Copies the current task's context fields onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.extra_fields = {**_logging_context.get(), **getattr(record, "extra_fields", {})}
        return True


_context_filter = WorkflowContextFilter()


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    handler.addFilter(_context_filter)
    root.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    structured: bool = False,
    max_size: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure the root logger: stdout always, plus a rotating file when
    ``log_file`` is set. Existing root handlers are replaced.

    Args:
        level: Logging level name
        log_file: Optional file path for log output
        log_format: Format string for plain-text output
        structured: Emit JSON records instead of plain text
        max_size: Maximum log file size in bytes before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Root logger instance
    """
    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(fmt=log_format or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    _attach(root, logging.StreamHandler(sys.stdout), formatter)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        _attach(root, RotatingFileHandler(log_file, maxBytes=max_size, backupCount=backup_count), formatter)

    for name, library_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)
    logging.getLogger("nodeflow").setLevel(root.level)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)


def set_logging_context(**kwargs):
    """Add context fields to every record the current task logs from now on."""
    _logging_context.set({**_logging_context.get(), **kwargs})


def clear_logging_context():
    _logging_context.set({})


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log ``message`` with one-off context fields on top of the task's context."""
    logger.log(level, message, extra={"extra_fields": context})
