"""
Remote recovery sequence for a wedged iOS toolchain.

Runs a fixed, ordered cleanup on the remote Mac: stop Xcode, clean the
project, purge DerivedData and CocoaPods caches, reset simulators, clear
React Native temp files and reinstall pods. The script runs under
``set -e``, so the first failing mandatory step ends the sequence.
"""

import logging
import shlex
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..models.config import ConnectionDescriptor, TimeoutConfig
from ..models.results import BuildOutcome
from ..transport.base import TransportSession
from ..transport.remote import RemoteSession
from ..validation import BuildPilotError, ValidationError
from .build_configuration import quote_remote_path
from .observer import BUILD_OUTPUT_EVENT, Observer, SafeObserver
from .registry import ActiveBuildRegistry
from .relay import StreamRelay

logger = logging.getLogger(__name__)

RECOVERY_FINISHED = "Recovery Sequence Finished"


@dataclass(frozen=True)
class RecoveryStep:
    name: str
    commands: Tuple[str, ...]
    # Failures of a best-effort step never stop the sequence.
    best_effort: bool = False


IOS_RECOVERY_STEPS: List[RecoveryStep] = [
    RecoveryStep("Killing Processes", ("killall Xcode xcodebuild CoreSimulatorBridge",), best_effort=True),
    RecoveryStep("Cleaning Project", ("cd {path}/ios", "xcodebuild clean")),
    RecoveryStep("Purging DerivedData", ("rm -rf ~/Library/Developer/Xcode/DerivedData/*",)),
    RecoveryStep(
        "Purging CocoaPods Caches (Global & Local)",
        ("rm -rf ~/Library/Caches/CocoaPods", "rm -rf Pods Podfile.lock"),
    ),
    RecoveryStep("Resetting Simulators", ("xcrun simctl erase all",)),
    RecoveryStep("Cleaning React Native Temp", ("rm -rf $TMPDIR/react-* $TMPDIR/metro-*",)),
    RecoveryStep("Resetting Watchman", ("watchman watch-del-all",), best_effort=True),
    RecoveryStep("Re-Hydrating", ("pod install --repo-update",)),
]


def render_recovery_script(remote_path: str, steps: Optional[List[RecoveryStep]] = None) -> str:
    """Assemble the ``set -e`` shell script for the given steps."""
    path = quote_remote_path(remote_path)
    lines = ["set -e"]
    for index, step in enumerate(steps or IOS_RECOVERY_STEPS, start=1):
        lines.append(f"echo {shlex.quote(f'Step {index}: {step.name}...')}")
        for command in step.commands:
            command = command.format(path=path)
            lines.append(f"{command} || true" if step.best_effort else command)
    lines.append("echo 'NUKE COMPLETE'")
    return "; ".join(lines)


class RemoteRecoverySequencer:
    """
    Run the recovery script over a fresh SSH session.

    Output is relayed live but not persisted.
    """

    def __init__(
        self,
        observer: Observer,
        session_factory: Callable[..., TransportSession] = RemoteSession.open,
        timeouts: Optional[TimeoutConfig] = None,
        registry: Optional[ActiveBuildRegistry] = None,
    ):
        self.observer = observer if isinstance(observer, SafeObserver) else SafeObserver(observer)
        self.session_factory = session_factory
        self.timeouts = timeouts or TimeoutConfig()
        self.registry = registry

    def run(self, descriptor: ConnectionDescriptor, remote_path: str) -> BuildOutcome:
        self._emit("Initiating NUCLEAR iOS Recovery Sequence...")
        logger.info(f"Starting recovery sequence on {descriptor.describe()} for {remote_path}")

        try:
            session = self.session_factory(
                descriptor,
                connect_timeout=self.timeouts.connect_timeout,
                io_timeout=self.timeouts.io_timeout,
            )
            with session:
                channel = session.open_command_channel(render_recovery_script(remote_path))
                if self.registry is not None:
                    self.registry.register(channel)
                try:
                    for name, reader in channel.output_streams():
                        StreamRelay(name, reader, self.observer, BUILD_OUTPUT_EVENT).run()
                    exit_code = channel.wait()
                finally:
                    if self.registry is not None:
                        self.registry.release(channel)
                    channel.close()
        except (BuildPilotError, ValidationError) as e:
            logger.error(f"Recovery sequence aborted: {e}")
            self._emit(f"Recovery aborted: {e}")
            return BuildOutcome.failure(str(e), error_kind=getattr(e, "kind", "validation"))

        if exit_code != 0:
            message = f"Recovery sequence failed with exit code {exit_code}"
            logger.error(message)
            self._emit(message)
            return BuildOutcome.failure(message, exit_code=exit_code)

        logger.info(RECOVERY_FINISHED)
        self._emit(RECOVERY_FINISHED)
        return BuildOutcome.success(RECOVERY_FINISHED, exit_code=exit_code)

    def _emit(self, message: str) -> None:
        self.observer.emit(BUILD_OUTPUT_EVENT, message + "\n")
