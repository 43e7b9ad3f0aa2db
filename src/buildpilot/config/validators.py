"""
Configuration validation utilities.

This module turns the raw sections of ``config.toml`` into validated
configuration dataclasses: ``[general]``, ``[android]``, ``[ios]``,
``[remote]`` and ``[timeouts]``. Every section is optional; a missing
build section leaves the corresponding field of AppConfig as None.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import (
    AndroidBuildConfig,
    AppConfig,
    ConnectionDescriptor,
    IosBuildConfig,
    TimeoutConfig,
)
from ..orchestration.build_configuration import ANDROID_BUILD_TYPES, IOS_BUILD_TYPES
from ..system.commands import SHELL_CHOICES
from ..validation import (
    ValidationError,
    parse_host_port,
    validate_bool,
    validate_enum_choice,
    validate_non_empty_string,
    validate_optional_string,
    validate_positive_float,
)

logger = logging.getLogger(__name__)

# Environment variable consulted when [remote] carries no password.
PASSWORD_ENV_VAR = "BUILDPILOT_SSH_PASSWORD"


def _optional_path(value: Any, field_name: str) -> Optional[Path]:
    text = validate_optional_string(value, field_name=field_name)
    return Path(text).expanduser() if text else None


def validate_general_config(general_data: Dict[str, Any]) -> Dict[str, Optional[Path]]:
    """Validate ``[general]``: shared log and archive directories."""
    return {
        "log_dir": _optional_path(general_data.get("log_dir"), "general.log_dir"),
        "archive_dir": _optional_path(general_data.get("archive_dir"), "general.archive_dir"),
    }


def validate_timeouts(timeout_data: Dict[str, Any]) -> TimeoutConfig:
    """
    Validate ``[timeouts]``.

    A ``build_timeout`` of 0 (or absent) means no build deadline.
    """
    defaults = TimeoutConfig()
    try:
        connect_timeout = validate_positive_float(
            timeout_data.get("connect_timeout", defaults.connect_timeout),
            min_value=1.0,
            max_value=600.0,
            field_name="timeouts.connect_timeout",
        )
        io_timeout = validate_positive_float(
            timeout_data.get("io_timeout", defaults.io_timeout),
            min_value=1.0,
            field_name="timeouts.io_timeout",
        )
        build_timeout = validate_positive_float(
            timeout_data.get("build_timeout", 0),
            min_value=0.0,
            field_name="timeouts.build_timeout",
        )
        artifact_fresh_window = validate_positive_float(
            timeout_data.get("artifact_fresh_window", defaults.artifact_fresh_window),
            min_value=0.0,
            field_name="timeouts.artifact_fresh_window",
        )
    except ValidationError as e:
        logger.error(f"Timeout configuration validation failed: {e}")
        raise

    return TimeoutConfig(
        connect_timeout=connect_timeout,
        io_timeout=io_timeout,
        build_timeout=build_timeout or None,
        artifact_fresh_window=artifact_fresh_window,
    )


def validate_remote_config(remote_data: Dict[str, Any]) -> Optional[ConnectionDescriptor]:
    """
    Validate ``[remote]`` into a ConnectionDescriptor.

    Credentials are not required here: their presence is checked when a
    connection is attempted, so a config without them still loads for
    local-only use.

    Returns:
        None when the section has no address.
    """
    address = validate_optional_string(remote_data.get("address"), field_name="remote.address")
    if address is None:
        return None

    try:
        parse_host_port(address, field_name="remote.address")
        username = validate_non_empty_string(remote_data.get("username"), field_name="remote.username")
        password = validate_optional_string(remote_data.get("password"), field_name="remote.password")
        key_path = validate_optional_string(remote_data.get("key_path"), field_name="remote.key_path")
    except ValidationError as e:
        logger.error(f"Remote configuration validation failed: {e}")
        raise

    if password is None and os.environ.get(PASSWORD_ENV_VAR):
        logger.debug(f"Using SSH password from ${PASSWORD_ENV_VAR}")
        password = os.environ[PASSWORD_ENV_VAR]

    return ConnectionDescriptor(
        address=address,
        username=username,
        password=password,
        key_path=str(Path(key_path).expanduser()) if key_path else None,
    )


def validate_android_config(
    android_data: Dict[str, Any],
    general: Optional[Dict[str, Optional[Path]]] = None,
) -> Optional[AndroidBuildConfig]:
    """
    Validate ``[android]``.

    Returns:
        None when the section is empty.
    """
    if not android_data:
        return None
    general = general or {}

    try:
        working_dir = Path(
            validate_non_empty_string(android_data.get("working_dir"), field_name="android.working_dir")
        ).expanduser()
        build_type = validate_enum_choice(
            android_data.get("build_type", "apk"),
            valid_choices=ANDROID_BUILD_TYPES,
            field_name="android.build_type",
            case_sensitive=False,
        )
        turbo_mode = validate_bool(android_data.get("turbo_mode", True), field_name="android.turbo_mode")
        shell = validate_enum_choice(
            android_data.get("shell", "auto"),
            valid_choices=SHELL_CHOICES,
            field_name="android.shell",
        )
        sdk_path = validate_optional_string(android_data.get("sdk_path"), field_name="android.sdk_path")
        log_dir = _optional_path(android_data.get("log_dir"), "android.log_dir")
    except ValidationError as e:
        logger.error(f"Android configuration validation failed: {e}")
        raise

    return AndroidBuildConfig(
        working_dir=working_dir,
        build_type=build_type,
        turbo_mode=turbo_mode,
        archive_dir=general.get("archive_dir"),
        log_dir=log_dir or general.get("log_dir"),
        sdk_path=sdk_path,
        shell=shell,
    )


def validate_ios_config(
    ios_data: Dict[str, Any],
    remote: Optional[ConnectionDescriptor],
    general: Optional[Dict[str, Optional[Path]]] = None,
) -> Optional[IosBuildConfig]:
    """
    Validate ``[ios]``; it needs a ``[remote]`` section to build on.

    Returns:
        None when the section is empty.
    """
    if not ios_data:
        return None
    general = general or {}

    try:
        if remote is None:
            raise ValidationError(
                "[ios] requires a [remote] section with the Mac's address",
                field_name="remote.address",
            )
        remote_path = validate_non_empty_string(ios_data.get("remote_path"), field_name="ios.remote_path")
        scheme = validate_non_empty_string(ios_data.get("scheme"), field_name="ios.scheme")
        build_type = validate_enum_choice(
            ios_data.get("build_type", "simulator"),
            valid_choices=IOS_BUILD_TYPES,
            field_name="ios.build_type",
            case_sensitive=False,
        )
        simulator_name = validate_non_empty_string(
            ios_data.get("simulator_name", "iPhone 15"), field_name="ios.simulator_name"
        )
        sync_before_build = validate_bool(
            ios_data.get("sync_before_build", False), field_name="ios.sync_before_build"
        )
        local_dir = _optional_path(ios_data.get("local_dir"), "ios.local_dir")
        if sync_before_build and local_dir is None:
            raise ValidationError(
                "ios.sync_before_build requires ios.local_dir",
                field_name="ios.local_dir",
            )
        log_dir = _optional_path(ios_data.get("log_dir"), "ios.log_dir")
    except ValidationError as e:
        logger.error(f"iOS configuration validation failed: {e}")
        raise

    return IosBuildConfig(
        connection=remote,
        remote_path=remote_path,
        scheme=scheme,
        build_type=build_type,
        simulator_name=simulator_name,
        local_dir=local_dir,
        sync_before_build=sync_before_build,
        log_dir=log_dir or general.get("log_dir"),
    )


def validate_app_config(config_data: Dict[str, Any]) -> AppConfig:
    """Validate a whole parsed ``config.toml``."""
    general = validate_general_config(config_data.get("general", {}))
    remote = validate_remote_config(config_data.get("remote", {}))
    return AppConfig(
        android=validate_android_config(config_data.get("android", {}), general),
        ios=validate_ios_config(config_data.get("ios", {}), remote, general),
        remote=remote,
        timeouts=validate_timeouts(config_data.get("timeouts", {})),
        log_dir=general["log_dir"],
        archive_dir=general["archive_dir"],
    )
