"""
Structured logging for the sales warehouse pipeline

Modules log through get_logger(__name__). Records are rendered as JSON by
python-json-logger, or as plain text when LOG_FORMAT=text. Inside
run_context(run_id) every record carries the run id of the conformance run
that emitted it.
"""
import logging
import os
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar

from pythonjsonlogger import jsonlogger

DEFAULT_LOGGER_NAME = "salesdw"

_current_run_id: ContextVar[str | None] = ContextVar("salesdw_run_id", default=None)


class RunContextFilter(logging.Filter):
    """Stamps the active run id (or None) on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _current_run_id.get()
        return True


@contextmanager
def run_context(run_id: str):
    """
    Attach run_id to every record logged inside the block.

    Usage:
        with run_context(summary.run_id):
            pipeline.conform(...)
    """
    token = _current_run_id.set(run_id)
    try:
        yield
    finally:
        _current_run_id.reset(token)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter emitting timestamp, level, logger and run_id fields
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        run_id = getattr(record, "run_id", None)
        if run_id:
            log_record["run_id"] = run_id
        else:
            log_record.pop("run_id", None)


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Configure a logger with a single stdout handler

    Args:
        name: Logger name
        level: Log level name (defaults to LOG_LEVEL env var, then INFO)
        format_type: "json" or "text" (defaults to LOG_FORMAT env var, then json)

    Returns:
        Configured logger instance
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(RunContextFilter())

    if format_type == "json":
        formatter = CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(logger)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)-7s [%(run_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Logger for a salesdw module, configured on first use

    Args:
        name: Logger name, usually __name__
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name)
    return logger


class log_operation:
    """
    Context manager logging the start, end and duration of a pipeline step

    Failures are logged at ERROR and re-raised.

    Usage:
        with log_operation("Conforming crm_cust_info", logger=logger, entity="crm_cust_info"):
            ...
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time: float | None = None

    @property
    def elapsed(self) -> float:
        return round(time.perf_counter() - self.start_time, 3)

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        fields = {"operation": self.operation_name, "duration_seconds": self.elapsed, **self.extra_fields}
        if exc_type is None:
            self.logger.info(f"Completed: {self.operation_name}", extra=fields)
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra={**fields, "error_type": exc_type.__name__, "error_message": str(exc_val)},
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
