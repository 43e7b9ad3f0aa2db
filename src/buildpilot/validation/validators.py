"""
Validation functions for configuration values and command-line input.
"""

import os
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from .exceptions import ValidationError

DEFAULT_SSH_PORT = 22


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer inside the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number inside the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_path_exists(path: Union[str, Path], field_name: str = "path") -> str:
    """
    Validate that a path exists.

    Raises:
        ValidationError: If path doesn't exist
    """
    path_str = str(path)
    if not os.path.exists(path_str):
        raise ValidationError(
            f"{field_name} does not exist: {path_str}",
            field_name=field_name,
            value=path_str
        )
    return path_str


def validate_enum_choice(
    value: Any,
    valid_choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Validate that a value is one of the allowed choices.

    Args:
        value: Value to validate
        valid_choices: List of valid choices
        field_name: Name of the field being validated
        case_sensitive: Whether comparison should be case sensitive

    Returns:
        The matching choice, in the spelling used by ``valid_choices``

    Raises:
        ValidationError: If value is not in valid choices
    """
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be a string, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )

    for choice in valid_choices:
        if value == choice or (not case_sensitive and value.lower() == choice.lower()):
            return choice

    raise ValidationError(
        f"{field_name} must be one of {valid_choices}, got '{value}'",
        field_name=field_name,
        value=value
    )


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a string with non-whitespace content."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value.strip()


def validate_optional_string(value: Any, field_name: str = "value") -> Optional[str]:
    """Return a stripped string, or None for missing and blank values."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be a string, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )
    stripped = value.strip()
    return stripped or None


def validate_bool(value: Any, field_name: str = "value") -> bool:
    """Validate that a configuration value is a real boolean."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a boolean",
            field_name=field_name,
            value=value
        )
    return value


def parse_host_port(address: str, field_name: str = "address") -> Tuple[str, int]:
    """
    Split ``host[:port]`` into its parts, defaulting the port to 22.

    Examples:
        >>> parse_host_port("10.0.0.5")
        ('10.0.0.5', 22)
        >>> parse_host_port("mac.example.com:2222")
        ('mac.example.com', 2222)
    """
    if not isinstance(address, str):
        raise ValidationError(
            f"{field_name} must be a string",
            field_name=field_name,
            value=address
        )
    host, sep, port_str = address.strip().partition(":")
    if not sep:
        return host, DEFAULT_SSH_PORT
    port = validate_positive_integer(
        port_str, min_value=1, max_value=65535, field_name=f"{field_name} port"
    )
    return host, port
