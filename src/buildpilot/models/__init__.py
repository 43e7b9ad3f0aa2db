"""
Data models for the build orchestration system.

Configuration Models:
- Android and iOS build parameters
- SSH connection descriptor
- Timeouts bounding every blocking step

Runtime Models:
- Hardware profile used to size the Gradle daemon
- Live system usage snapshot
- Build session phases

Result Models:
- Build outcome reported to the caller
"""

from .config import (
    AndroidBuildConfig,
    AppConfig,
    ConnectionDescriptor,
    IosBuildConfig,
    TimeoutConfig,
)
from .runtime import BuildPhase, HardwareProfile, SystemStats
from .results import BuildOutcome, BuildStatus

__all__ = [
    # Configuration
    "AndroidBuildConfig",
    "AppConfig",
    "ConnectionDescriptor",
    "IosBuildConfig",
    "TimeoutConfig",
    # Runtime
    "BuildPhase",
    "HardwareProfile",
    "SystemStats",
    # Results
    "BuildOutcome",
    "BuildStatus",
]
