"""
FeedSentry Logging Configuration
================================

Logging for the collector. Console output goes through rich; the log file
always receives one JSON object per record so round metrics passed via
``extra=`` stay machine-readable. Component loggers tag every record with
the component and, inside a source pipeline, the source id.
"""

import json
import logging
import logging.handlers
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from rich.logging import RichHandler

# Attributes every LogRecord carries; anything else arrived through extra=
_RECORD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}

# Libraries whose INFO chatter would drown out round summaries
_QUIET_LOGGERS = ("aiohttp", "asyncio", "feedparser")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields attached to a record through ``extra=`` or a component logger."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, context fields under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        context = record_context(record)
        if context:
            entry["extra"] = context

        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Prefixes the message with the logger name and the source it concerns.

    Level, time and colour are left to the rich handler.
    """

    def format(self, record: logging.LogRecord) -> str:
        source_id = getattr(record, "source_id", None)
        scope = f"{record.name}[{source_id}]" if source_id else record.name
        message = f"{scope} - {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


class ComponentLogger(logging.LoggerAdapter):
    """Adapter that merges its context into each call's ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs

    def bind(self, **context: Any) -> "ComponentLogger":
        """Return a logger carrying this context plus ``context``."""
        return ComponentLogger(self.logger, {**self.extra, **context})


def get_logger_for_component(
    component_name: str,
    source_id: Optional[str] = None,
) -> ComponentLogger:
    """Logger named ``feedsentry.<component_name>``.

    Args:
        component_name: e.g. 'fetcher', 'orchestrator', 'pipeline'
        source_id: Source the records belong to, if any
    """
    logger = ComponentLogger(
        logging.getLogger(f"feedsentry.{component_name}"),
        {"component": component_name},
    )
    if source_id:
        logger = logger.bind(source_id=source_id)
    return logger


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/feedsentry.log",
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Install handlers on the ``feedsentry`` logger, replacing earlier ones.

    Args:
        log_level: Level name for the package logger
        log_file: Rotating JSON log file; None disables file output
        enable_console: Log to the terminal
        structured_logging: Emit JSON on the console instead of rich output
        max_file_size: Rotate the file after this many bytes
        backup_count: Rotated files to keep

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("feedsentry")
    logger.setLevel(log_level.upper())
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if enable_console:
        if structured_logging:
            console = logging.StreamHandler()
            console.setFormatter(StructuredFormatter())
        else:
            console = RichHandler(rich_tracebacks=True, show_path=False)
            console.setFormatter(ConsoleFormatter())
        logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


class PerformanceLogger:
    """Times a block and logs its outcome with ``duration_seconds``."""

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.duration: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration = time.perf_counter() - self._started
        context = {
            **self.context,
            "duration_seconds": round(self.duration, 3),
            "success": exc_type is None,
        }
        if exc_type:
            self.logger.error(f"Failed {self.operation} in {self.duration:.3f}s", extra=context)
        else:
            self.logger.info(f"Completed {self.operation} in {self.duration:.3f}s", extra=context)
