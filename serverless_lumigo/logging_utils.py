"""
Logging utilities for the serverless-lumigo plugin.

This module provides structured logging with consistent formatting, a filter
that keeps the tracer token out of log output, and the plugin logger that
forwards prefixed lines to the host framework's CLI.
"""

import json
import logging
import os
import re
import sys
import time
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional, Set

LOG_PREFIX = "serverless-lumigo"


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.

    Each entry carries the timestamp, level, logger name and message, plus any
    keyword context passed to the plugin logger.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as structured JSON.

        Args:
            record: The log record to format

        Returns:
            str: JSON-formatted log entry
        """
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'plugin': LOG_PREFIX,
        }

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_entry, default=str, separators=(',', ':'))


class SecurityFilter(logging.Filter):
    """
    Filter that masks the tracer token in log records.

    Each filter keeps its own secrets. A secret is masked only where it stands
    as a whole token, so a short value never eats into ordinary words. Token
    literals rendered into generated wrapper code are always masked.
    """

    MASK = "***MASKED***"
    TOKEN_LITERAL = re.compile(r"(token\s*[:=]\s*)(['\"])[^'\"]*\2", re.IGNORECASE)

    def __init__(self, secrets: Optional[Iterable[str]] = None):
        super().__init__()
        self.secrets: Set[str] = set()
        for secret in secrets or ():
            self.add_secret(secret)

    def add_secret(self, value: Optional[str]) -> None:
        """Register a value that must never appear in log output."""
        if value:
            self.secrets.add(value)

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.sanitize(str(record.msg))

        if record.args:
            record.args = tuple(self.sanitize(str(arg)) for arg in record.args)

        if hasattr(record, 'extra_fields'):
            record.extra_fields = self.sanitize_fields(record.extra_fields)

        return True

    def sanitize_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: self.sanitize(value) if isinstance(value, str) else value
            for key, value in fields.items()
        }

    def sanitize(self, message: str) -> str:
        """
        Remove sensitive values from a message.

        Args:
            message: The message to sanitize

        Returns:
            str: Sanitized message
        """
        for secret in self.secrets:
            pattern = rf"(?<![\w-]){re.escape(secret)}(?![\w-])"
            message = re.sub(pattern, lambda m: self.MASK, message)
        return self.TOKEN_LITERAL.sub(lambda m: f"{m.group(1)}{m.group(2)}{self.MASK}{m.group(2)}", message)


def is_verbose() -> bool:
    """Verbose output follows the host framework's SLS_DEBUG switch."""
    return bool(os.environ.get('SLS_DEBUG'))


class PluginLogger:
    """
    Main logger class for the plugin.

    Wraps a standard library logger with structured output and, when a host
    CLI sink is supplied, forwards prefixed plain-text lines to it.
    """

    def __init__(self, name: str, cli_log: Optional[Callable[[str], Any]] = None,
                 verbose: Optional[bool] = None):
        """
        Initialize the plugin logger.

        Args:
            name: Logger name (typically __name__ from calling module)
            cli_log: Host sink accepting one line of text
            verbose: Force verbose output on or off; defaults to SLS_DEBUG
        """
        self.logger = logging.getLogger(name)
        self.cli_log = cli_log
        self._verbose = verbose
        self.security_filter = SecurityFilter()
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Set up logger with structured formatter and security filter."""
        if self.logger.handlers:
            return

        log_level = os.environ.get('LUMIGO_PLUGIN_LOG_LEVEL', 'INFO').upper()
        self.logger.setLevel(getattr(logging, log_level, logging.INFO))

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter())
        handler.addFilter(SecurityFilter())

        self.logger.addHandler(handler)
        self.logger.propagate = False

    @property
    def verbose(self) -> bool:
        if self._verbose is not None:
            return self._verbose
        return is_verbose()

    def add_secret(self, value: Optional[str]) -> None:
        """Mask value in everything this logger writes."""
        self.security_filter.add_secret(value)

    def _log_with_context(self, level: int, message: str, extra_fields: Optional[Dict[str, Any]] = None) -> None:
        extra = {}
        if extra_fields:
            extra['extra_fields'] = self.security_filter.sanitize_fields(extra_fields)
        self.logger.log(level, self.security_filter.sanitize(message), extra=extra)

    def _emit(self, message: str) -> None:
        if self.cli_log is not None:
            self.cli_log(f"{LOG_PREFIX}: {self.security_filter.sanitize(message)}")

    def log(self, message: str, **kwargs) -> None:
        """Write a line to the host CLI and record it at INFO level."""
        self._emit(message)
        self._log_with_context(logging.INFO, message, kwargs)

    def verbose_log(self, message: str, **kwargs) -> None:
        """Write a line to the host CLI only in verbose mode; always record it at DEBUG level."""
        if self.verbose:
            self._emit(message)
        self._log_with_context(logging.DEBUG, message, kwargs)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message."""
        self._log_with_context(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message."""
        self._log_with_context(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message."""
        self._log_with_context(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log error message."""
        self._log_with_context(logging.ERROR, message, kwargs)

    def log_performance(self, operation: str, duration_ms: float, **kwargs) -> None:
        """
        Log performance metrics for an operation.

        Args:
            operation: Name of the operation
            duration_ms: Duration in milliseconds
            **kwargs: Additional metrics to log
        """
        metrics = {
            'operation': operation,
            'duration_ms': duration_ms,
            **kwargs
        }
        self.debug(f"Performance: {operation} completed", **metrics)


def get_logger(name: str, cli_log: Optional[Callable[[str], Any]] = None,
               verbose: Optional[bool] = None) -> PluginLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)
        cli_log: Optional host sink for prefixed plain-text lines
        verbose: Force verbose output on or off

    Returns:
        PluginLogger: Configured logger instance
    """
    return PluginLogger(name, cli_log=cli_log, verbose=verbose)


def performance_timer(operation_name: str):
    """
    Decorator to automatically log performance metrics for functions.

    Args:
        operation_name: Name of the operation being timed

    Returns:
        Decorator function
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            start_time = time.time()

            try:
                result = func(*args, **kwargs)
                duration_ms = (time.time() - start_time) * 1000
                logger.log_performance(operation_name, duration_ms, success=True)
                return result
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                logger.log_performance(operation_name, duration_ms, success=False, error=str(e))
                raise

        return wrapper
    return decorator
