"""
Orchestration module for build sessions.

Components:
- BuildSessionController: Runs one Android or iOS build to a terminal outcome
- StreamRelay / LogBuffer: Concurrent output relaying and transcript capture
- ActiveBuildRegistry: Single-slot holder enabling external abort
- LogManager: Outcome-prefixed log persistence
- RemoteRecoverySequencer: Remote iOS toolchain recovery
- SignalHandler: SIGINT/SIGTERM to registry abort
"""

from .archive import ArchiveResult, archive_artifact, is_fresh
from .controller import BuildSessionController
from .log_manager import LogManager
from .observer import (
    BUILD_OUTPUT_EVENT,
    LoggingObserver,
    Observer,
    RecordingObserver,
    SafeObserver,
    StreamObserver,
)
from .recovery import IOS_RECOVERY_STEPS, RecoveryStep, RemoteRecoverySequencer, render_recovery_script
from .registry import ActiveBuildRegistry
from .relay import LogBuffer, StreamRelay
from .shared_state import RuntimeState, TimeoutConstants
from .signal_handler import SignalHandler

__all__ = [
    "ActiveBuildRegistry",
    "ArchiveResult",
    "BUILD_OUTPUT_EVENT",
    "BuildSessionController",
    "IOS_RECOVERY_STEPS",
    "LogBuffer",
    "LogManager",
    "LoggingObserver",
    "Observer",
    "RecordingObserver",
    "RecoveryStep",
    "RemoteRecoverySequencer",
    "RuntimeState",
    "SafeObserver",
    "SignalHandler",
    "StreamObserver",
    "StreamRelay",
    "TimeoutConstants",
    "archive_artifact",
    "is_fresh",
    "render_recovery_script",
]
