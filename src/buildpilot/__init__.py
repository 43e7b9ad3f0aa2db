"""
BuildPilot: local Android and remote iOS build orchestration.

This package runs a mobile app build either as a local Gradle process or
as an xcodebuild command on a remote Mac over SSH, streams the output live
to an observer, persists a transcript of every build, archives Android
artifacts and supports aborting the build in flight.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Error taxonomy, input validation and error handling
- system: Shell selection, hardware sizing, process and workspace utilities
- transport: Local process and SSH command channels
- orchestration: Build controller, relays, registry, logs and recovery
- cli: Command-line interface

Usage:
    From command line:
        buildpilot android --working-dir ./my-app
        buildpilot ios --address mac.local --username dev --key-path ~/.ssh/id_ed25519 \\
            --remote-path ~/my-app --scheme MyApp

    Programmatically:
        from buildpilot import BuildSessionController, StreamObserver, AndroidBuildConfig
        controller = BuildSessionController(StreamObserver())
        outcome = controller.run_android_build(AndroidBuildConfig(working_dir=Path("./my-app")))
"""

__version__ = "0.3.0"

# Main interfaces
from .config import get_config, clear_config_cache, set_config_path
from .cli import main_cli
from .orchestration import (
    ActiveBuildRegistry,
    BuildSessionController,
    RecordingObserver,
    RemoteRecoverySequencer,
    SafeObserver,
    StreamObserver,
)

# Model classes for external use
from .models import (
    AndroidBuildConfig,
    AppConfig,
    BuildOutcome,
    BuildStatus,
    ConnectionDescriptor,
    HardwareProfile,
    IosBuildConfig,
    TimeoutConfig,
)

# Error taxonomy
from .validation import (
    AuthenticationError,
    BuildPilotError,
    ChannelError,
    ConnectionFailedError,
    RemoteEnvironmentError,
    ValidationError,
)

__all__ = [
    "__version__",
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "main_cli",
    "ActiveBuildRegistry",
    "BuildSessionController",
    "RecordingObserver",
    "RemoteRecoverySequencer",
    "SafeObserver",
    "StreamObserver",
    # Models
    "AndroidBuildConfig",
    "AppConfig",
    "BuildOutcome",
    "BuildStatus",
    "ConnectionDescriptor",
    "HardwareProfile",
    "IosBuildConfig",
    "TimeoutConfig",
    # Errors
    "AuthenticationError",
    "BuildPilotError",
    "ChannelError",
    "ConnectionFailedError",
    "RemoteEnvironmentError",
    "ValidationError",
]
