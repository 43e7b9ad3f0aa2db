"""
Configuration data models.

This module contains the configuration structures for local Android builds,
remote iOS builds, the SSH connection target and the timeouts that bound
every suspension point of a build.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from ..validation import (
    AuthenticationError,
    ValidationError,
    parse_host_port,
)

logger = logging.getLogger(__name__)


@dataclass
class ConnectionDescriptor:
    """
    Target of a remote build: ``host[:port]``, user and one credential.
    """

    # Host name or IP, optionally suffixed with ':port' (port defaults to 22).
    address: str
    username: str
    password: Optional[str] = None
    key_path: Optional[str] = None

    @property
    def host_and_port(self) -> Tuple[str, int]:
        return parse_host_port(self.address)

    @property
    def host(self) -> str:
        return self.host_and_port[0]

    @property
    def port(self) -> int:
        return self.host_and_port[1]

    @property
    def has_key(self) -> bool:
        return bool(self.key_path and self.key_path.strip())

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    def validate(self) -> None:
        """
        Check the descriptor before any network call is attempted.

        Raises:
            ValidationError: If the address, port or username is unusable.
            AuthenticationError: If neither a key path nor a password is set.
        """
        host, _ = self.host_and_port
        if not host:
            raise ValidationError(
                "Connection failed: address is empty",
                field_name="remote.address",
                value=self.address,
            )
        if not self.username or not self.username.strip():
            raise ValidationError(
                "Connection failed: username is empty",
                field_name="remote.username",
                value=self.username,
            )
        if not self.has_key and not self.has_password:
            raise AuthenticationError(
                "No credentials provided: set either an SSH key path or a password",
                reason=AuthenticationError.NO_CREDENTIALS,
            )
        if self.has_key and self.has_password:
            logger.warning(
                f"Both an SSH key and a password are configured for {self.username}@{host}; "
                f"the key takes precedence and the password is ignored"
            )

    def describe(self) -> str:
        host, port = self.host_and_port
        return f"{self.username}@{host}:{port}"


@dataclass
class TimeoutConfig:
    """Bounds for every blocking step of a build, in seconds."""

    connect_timeout: float = 30.0
    # Socket read/write timeout; builds legitimately run for many minutes.
    io_timeout: float = 600.0
    # None waits for the build indefinitely (abort still works).
    build_timeout: Optional[float] = None
    # An artifact modified within this window counts as freshly built.
    artifact_fresh_window: float = 120.0


@dataclass
class AndroidBuildConfig:
    """
    Parameters of a local Android build.
    """

    working_dir: Path
    # "apk" runs assembleDebug, "aab" runs bundleDebug.
    build_type: str = "apk"
    turbo_mode: bool = True
    archive_dir: Optional[Path] = None
    log_dir: Optional[Path] = None
    sdk_path: Optional[str] = None
    # "auto" picks "wsl" on Windows and "bash" elsewhere.
    shell: str = "auto"

    def resolved_archive_dir(self) -> Path:
        if self.archive_dir:
            return Path(self.archive_dir)
        return Path(self.working_dir) / "buildpilot_builds"

    def resolved_log_dir(self) -> Path:
        if self.log_dir:
            return Path(self.log_dir)
        return Path(self.working_dir) / "buildpilot_logs"


@dataclass
class IosBuildConfig:
    """
    Parameters of a remote iOS build on an SSH-reachable Mac.
    """

    connection: ConnectionDescriptor
    remote_path: str
    scheme: str
    # "device" or "simulator"
    build_type: str = "simulator"
    simulator_name: str = "iPhone 15"
    # Local project synchronised to remote_path before the build, if set.
    local_dir: Optional[Path] = None
    sync_before_build: bool = False
    log_dir: Optional[Path] = None

    def resolved_log_dir(self) -> Path:
        if self.log_dir:
            return Path(self.log_dir)
        return Path.home() / ".buildpilot" / "ios_logs"


@dataclass
class AppConfig:
    """
    Top-level application configuration loaded from ``config.toml``.

    Sections that are absent from the file stay ``None``; the CLI fills
    them from command-line arguments.
    """

    android: Optional[AndroidBuildConfig] = None
    ios: Optional[IosBuildConfig] = None
    remote: Optional[ConnectionDescriptor] = None
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    log_dir: Optional[Path] = None
    archive_dir: Optional[Path] = None
