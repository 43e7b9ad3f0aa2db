"""
Exception taxonomy and error handling helpers.

This module defines the errors raised while preparing, connecting to and
running a build, together with the consistent logging helper used wherever
an error is recorded rather than propagated.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    Exception raised when validation of user input or configuration fails.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class BuildPilotError(Exception):
    """Base class for every error raised by a build or recovery run."""

    # Short machine-readable tag copied into BuildOutcome.error_kind
    kind = "error"


class TransportError(BuildPilotError):
    """Raised when a transport session or command channel cannot be used."""

    kind = "transport"


class ConnectionFailedError(TransportError):
    """
    The remote host could not be reached or the SSH handshake failed.

    ``reason`` distinguishes an unreachable host from a failed handshake.
    """

    UNREACHABLE = "unreachable"
    HANDSHAKE = "handshake"

    kind = "connection"

    def __init__(self, message: str, reason: str = UNREACHABLE):
        super().__init__(message)
        self.reason = reason


class ConnectionStalledError(ConnectionFailedError):
    """An established connection stopped delivering data or an exit status."""

    STALLED = "stalled"

    kind = "stalled"

    def __init__(self, message: str, reason: str = STALLED):
        super().__init__(message, reason=reason)


class AuthenticationError(TransportError):
    """Credentials were missing, unreadable or rejected by the server."""

    NO_CREDENTIALS = "no_credentials"
    KEY_NOT_FOUND = "key_not_found"
    KEY_UNREADABLE = "key_unreadable"
    REJECTED = "rejected"

    kind = "authentication"

    def __init__(self, message: str, reason: str = REJECTED):
        super().__init__(message)
        self.reason = reason


class ChannelError(TransportError):
    """A command channel could not be opened, or the command not submitted."""

    OPEN = "open"
    EXEC = "exec"

    kind = "channel"

    def __init__(self, message: str, phase: str = EXEC):
        super().__init__(message)
        self.phase = phase


class RemoteEnvironmentError(BuildPilotError):
    """The remote host lacks a tool the build requires."""

    kind = "environment"


class ProcessFailedError(BuildPilotError):
    """An external process exited with a non-zero status."""

    kind = "process"

    def __init__(self, message: str, exit_code: int, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class PersistenceError(BuildPilotError):
    """A log or artifact could not be written to disk."""

    kind = "io"


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_file_error(error: Exception, context: str, **kwargs) -> None:
    """Handle file-related errors."""
    handle_error(error, f"file {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI-level error and exit the interpreter."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)
    sys.exit(exit_code)
