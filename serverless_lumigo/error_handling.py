"""
Error handling utilities for the serverless-lumigo plugin.

This module defines the plugin's exception hierarchy and a context manager
for operations whose failure should be recorded rather than abort a pass.
"""

import time
from typing import Any, Dict, Optional

from .logging_utils import get_logger

logger = get_logger(__name__)


class LumigoPluginError(Exception):
    """Base exception for plugin errors. The message is shown to the user as-is."""
    pass


class ConfigurationError(LumigoPluginError):
    """Exception raised when the plugin or service configuration is invalid."""
    pass


class MalformedHandlerError(ConfigurationError):
    """Exception raised when a handler string has no module/function separator."""
    pass


class PluginEnvironmentError(LumigoPluginError):
    """Exception raised when the deployment environment cannot satisfy a requirement."""
    pass


class RequirementsNotFoundError(PluginEnvironmentError):
    """Exception raised when a Python requirements file is missing."""
    pass


class LayerResolutionError(PluginEnvironmentError):
    """Exception raised when the latest tracer layer version cannot be looked up."""
    pass


class GracefulErrorHandler:
    """
    Context manager for operations that may fail without failing the pass.

    Non-critical errors are recorded on the handler and suppressed; critical
    errors are logged and propagated.

    Example:
        with GracefulErrorHandler("manifest_lookup") as handler:
            installed = environment.has_dependency("@lumigo/tracer")
        if handler.error_occurred:
            installed = False
    """

    def __init__(self, operation_name: str, critical: bool = False):
        """
        Initialize the error handler.

        Args:
            operation_name: Name of the operation being protected
            critical: Whether errors in this operation should propagate
        """
        self.operation_name = operation_name
        self.critical = critical
        self.start_time: Optional[float] = None
        self.error_occurred = False
        self.error_details: Optional[Dict[str, Any]] = None

    def __enter__(self):
        self.start_time = time.time()
        logger.debug("Starting protected operation", operation=self.operation_name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Record any exception and decide whether to suppress it.

        Returns:
            bool: True to suppress the exception, False to propagate it
        """
        duration = time.time() - self.start_time if self.start_time else 0

        if exc_type is None:
            logger.debug("Protected operation completed successfully",
                         operation=self.operation_name,
                         duration_ms=duration * 1000)
            return False

        # Only ordinary exceptions are handled; KeyboardInterrupt and friends propagate
        if not issubclass(exc_type, Exception):
            return False

        self.error_occurred = True
        self.error_details = {
            'type': exc_type.__name__,
            'message': str(exc_val),
            'operation': self.operation_name,
            'duration_ms': duration * 1000
        }

        if self.critical:
            logger.error("Critical operation failed",
                         operation=self.operation_name,
                         error=str(exc_val),
                         error_type=exc_type.__name__,
                         duration_ms=duration * 1000)
            return False

        logger.warning("Non-critical operation failed gracefully",
                       operation=self.operation_name,
                       error=str(exc_val),
                       error_type=exc_type.__name__,
                       duration_ms=duration * 1000)
        return True
