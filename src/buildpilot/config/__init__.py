"""
Configuration management for the buildpilot package.

This module provides a clean interface for loading, validating, and accessing
configuration data from a TOML file with singleton pattern management.
"""

# Main configuration interface
from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import load_config_file
from .validators import (
    PASSWORD_ENV_VAR,
    validate_android_config,
    validate_app_config,
    validate_general_config,
    validate_ios_config,
    validate_remote_config,
    validate_timeouts,
)

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Advanced interface
    "load_config_file",
    "PASSWORD_ENV_VAR",
    "validate_android_config",
    "validate_app_config",
    "validate_general_config",
    "validate_ios_config",
    "validate_remote_config",
    "validate_timeouts",
]
