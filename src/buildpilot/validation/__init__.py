"""
Validation and error handling for the buildpilot package.

This module provides the error taxonomy used by transports and the build
controller, plus the input validation helpers used by the configuration
layer and the CLI.
"""

from .exceptions import (
    AuthenticationError,
    BuildPilotError,
    ChannelError,
    ConnectionFailedError,
    ConnectionStalledError,
    ErrorSeverity,
    PersistenceError,
    ProcessFailedError,
    RemoteEnvironmentError,
    TransportError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_file_error,
)

from .validators import (
    DEFAULT_SSH_PORT,
    parse_host_port,
    validate_bool,
    validate_enum_choice,
    validate_non_empty_string,
    validate_optional_string,
    validate_path_exists,
    validate_positive_float,
    validate_positive_integer,
)

__all__ = [
    # Error taxonomy
    "AuthenticationError",
    "BuildPilotError",
    "ChannelError",
    "ConnectionFailedError",
    "ConnectionStalledError",
    "ErrorSeverity",
    "PersistenceError",
    "ProcessFailedError",
    "RemoteEnvironmentError",
    "TransportError",
    "ValidationError",
    # Error handling
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    "handle_file_error",
    # Validators
    "DEFAULT_SSH_PORT",
    "parse_host_port",
    "validate_bool",
    "validate_enum_choice",
    "validate_non_empty_string",
    "validate_optional_string",
    "validate_path_exists",
    "validate_positive_float",
    "validate_positive_integer",
]
