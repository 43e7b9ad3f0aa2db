"""
Build session controller.

The controller runs one build from start to a terminal outcome: it prepares
the platform command, acquires a transport session, relays every output
stream concurrently into the observer and a shared LogBuffer, waits for
the relays before reaping the exit status, classifies the result, persists
the transcript on every path, and (for Android) archives the artifact.
"""

import logging
import time
from typing import Callable, Optional

from ..models.config import AndroidBuildConfig, IosBuildConfig, TimeoutConfig
from ..models.results import BuildOutcome
from ..models.runtime import BuildPhase, HardwareProfile
from ..system.commands import default_android_sdk_path, resolve_shell, shell_path, shell_prefix
from ..system.hardware import sample_hardware_profile
from ..system.sync import sync_project
from ..transport.base import CommandChannel, TransportSession
from ..transport.local import LocalProcessSession
from ..transport.remote import RemoteSession
from ..validation import BuildPilotError, RemoteEnvironmentError, ValidationError
from .archive import archive_artifact
from .build_configuration import (
    IOS_PREFLIGHT_COMMAND,
    XCODE_MISSING_MARKER,
    artifact_source,
    prepare_android_command,
    prepare_ios_command,
)
from .log_manager import LogManager
from .observer import BUILD_OUTPUT_EVENT, Observer, RecordingObserver, SafeObserver
from .registry import ActiveBuildRegistry
from .relay import LogBuffer, StreamRelay
from .shared_state import RuntimeState, TimeoutConstants

logger = logging.getLogger(__name__)

ANDROID_TARGET = "android"
IOS_TARGET = "ios"

SessionFactory = Callable[..., TransportSession]


class BuildSessionController:
    """
    Runs local Android and remote iOS builds, one at a time.

    Args:
        observer: Sink for live output; wrapped in SafeObserver so a failing
            sink never disturbs the build.
        registry: Slot holding the running build for external abort. Share
            one registry between everything that may start or abort builds.
        timeouts: Connect, I/O, build and artifact freshness bounds.
        session_factory: Opens a remote session from a ConnectionDescriptor.
        profile_provider: Returns the hardware profile sizing Gradle.
        sync: Pushes the local project to the remote host.
    """

    def __init__(
        self,
        observer: Observer,
        registry: Optional[ActiveBuildRegistry] = None,
        timeouts: Optional[TimeoutConfig] = None,
        session_factory: SessionFactory = RemoteSession.open,
        profile_provider: Callable[[], HardwareProfile] = sample_hardware_profile,
        sync: Callable[..., str] = sync_project,
    ):
        self.observer = observer if isinstance(observer, SafeObserver) else SafeObserver(observer)
        self.registry = registry if registry is not None else ActiveBuildRegistry()
        self.timeouts = timeouts or TimeoutConfig()
        self.session_factory = session_factory
        self.profile_provider = profile_provider
        self.sync = sync
        self.state: Optional[RuntimeState] = None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def run_android_build(self, config: AndroidBuildConfig) -> BuildOutcome:
        """Build the Android app locally and archive the artifact on success."""
        state = self._begin(ANDROID_TARGET)
        log_manager = LogManager(config.resolved_log_dir())

        try:
            shell = resolve_shell(config.shell)
            profile = self.profile_provider()
            command = prepare_android_command(
                project_dir=shell_path(str(config.working_dir), shell),
                build_type=config.build_type,
                turbo_mode=config.turbo_mode,
                profile=profile,
                sdk_path=config.sdk_path or default_android_sdk_path(shell),
            )
            self._announce(
                state,
                f"Hardware: {profile.cpu_cores} cores, {profile.total_ram_gb}GB RAM -> "
                f"{profile.max_workers} workers, {profile.jvm_heap_gb}GB heap",
            )

            state.enter(BuildPhase.CONNECTING)
            with LocalProcessSession(config.working_dir, shell_prefix(shell)) as session:
                channel = session.open_command_channel(command)
                self._run_channel(state, channel)
        except (BuildPilotError, ValidationError) as e:
            return self._abort(state, log_manager, e)
        except (KeyboardInterrupt, SystemExit):
            self._interrupted(state, log_manager)
            raise

        outcome = self._classify(state, log_manager)
        if not outcome.succeeded:
            return self._finish(state, outcome)

        state.enter(BuildPhase.ARCHIVING)
        self._archive(state, config, outcome)
        return self._finish(state, outcome)

    def run_ios_build(self, config: IosBuildConfig) -> BuildOutcome:
        """Sync (optionally), pre-flight and build the iOS app on the remote Mac."""
        state = self._begin(IOS_TARGET)
        log_manager = LogManager(config.resolved_log_dir())

        try:
            config.connection.validate()
            command = prepare_ios_command(
                remote_path=config.remote_path,
                scheme=config.scheme,
                build_type=config.build_type,
                simulator_name=config.simulator_name,
            )

            if config.sync_before_build and config.local_dir:
                state.enter(BuildPhase.SYNCING)
                self._announce(state, "Syncing files to Mac...")
                self.sync(config.local_dir, config.connection, config.remote_path)
                self._announce(state, "Sync complete.")

            state.enter(BuildPhase.CONNECTING)
            self._announce(state, f"Connecting to {config.connection.describe()}...")
            session = self.session_factory(
                config.connection,
                connect_timeout=self.timeouts.connect_timeout,
                io_timeout=self.timeouts.io_timeout,
            )
            with session:
                state.enter(BuildPhase.PREFLIGHT)
                self._preflight(state, session)
                self._announce(state, f"Starting build on remote Mac: {config.connection.host}")
                channel = session.open_command_channel(command)
                self._run_channel(state, channel)
        except (BuildPilotError, ValidationError) as e:
            return self._abort(state, log_manager, e)
        except (KeyboardInterrupt, SystemExit):
            self._interrupted(state, log_manager)
            raise

        return self._finish(state, self._classify(state, log_manager))

    def abort(self) -> bool:
        """Kill the running build, if any. Safe to call from any thread."""
        return self.registry.abort()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _begin(self, target: str) -> RuntimeState:
        state = RuntimeState(target=target)
        self.state = state
        logger.info(f"--- Starting {target} build ---")
        return state

    def _run_channel(self, state: RuntimeState, channel: CommandChannel) -> int:
        """Relay a channel's output until it ends, then reap its exit status."""
        state.channel = channel
        state.enter(BuildPhase.BUILDING)
        self.registry.register(channel)
        try:
            state.relays = [
                StreamRelay(name, reader, self.observer, BUILD_OUTPUT_EVENT, state.log_buffer)
                for name, reader in channel.output_streams()
            ]
            for relay in state.relays:
                relay.start()

            # Reaping before the relays drain would lose buffered output.
            self._await_relays(state)
            state.enter(BuildPhase.COLLECTING)
            exit_code = channel.wait()
        except BaseException:
            channel.kill()
            raise
        finally:
            state.aborted = not self.registry.release(channel)
            channel.close()

        state.exit_code = exit_code
        logger.info(f"Build process finished with exit code: {exit_code}")
        return exit_code

    def _await_relays(self, state: RuntimeState) -> None:
        deadline = None
        if self.timeouts.build_timeout is not None:
            deadline = time.monotonic() + self.timeouts.build_timeout

        for relay in state.relays:
            while not relay.join(timeout=self._poll_interval(deadline)):
                if deadline is None or time.monotonic() < deadline:
                    continue
                if state.timed_out:
                    logger.warning(f"Relay '{relay.name}' still open after kill, not waiting for it")
                    break
                self._on_timeout(state)
                deadline = time.monotonic() + TimeoutConstants.RELAY_DRAIN_AFTER_KILL

    @staticmethod
    def _poll_interval(deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(0.0, min(TimeoutConstants.RELAY_JOIN_POLL, deadline - time.monotonic()))

    def _on_timeout(self, state: RuntimeState) -> None:
        state.timed_out = True
        logger.error(f"{state.target} build exceeded {self.timeouts.build_timeout}s, killing it")
        self._announce(state, f"Build timed out after {self.timeouts.build_timeout:g}s, stopping it...")
        if state.channel is not None:
            state.channel.kill()

    def _preflight(self, state: RuntimeState, session: TransportSession) -> None:
        """Fail fast when the remote toolchain is missing, before any hydration."""
        self._announce(state, "Running pre-flight environment check...")
        channel = session.open_command_channel(IOS_PREFLIGHT_COMMAND)
        capture = LogBuffer()
        try:
            for name, reader in channel.output_streams():
                StreamRelay(name, reader, RecordingObserver(), log_buffer=capture).run()
            channel.wait()
        finally:
            channel.close()

        if XCODE_MISSING_MARKER in capture.getvalue():
            self._announce(state, "Pre-flight FAILED: 'xcodebuild' not found in PATH")
            raise RemoteEnvironmentError(
                "Remote environment invalid: 'xcodebuild' not found in PATH. "
                "Check if Xcode is installed and CLI tools are configured."
            )
        self._announce(state, "Pre-flight passed: xcodebuild found")

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------

    def _classify(self, state: RuntimeState, log_manager: LogManager) -> BuildOutcome:
        exit_code = state.exit_code
        succeeded = exit_code == 0 and not state.timed_out
        log_path = self._persist(state, log_manager, succeeded)

        if succeeded:
            return BuildOutcome.success("Build completed!", log_path, exit_code=exit_code)

        if state.timed_out:
            reason = f"Build timed out after {self.timeouts.build_timeout:g}s"
            error_kind = "timeout"
        elif state.aborted:
            reason = "Build aborted"
            error_kind = "aborted"
        else:
            reason = f"Build failed with exit code {exit_code}"
            error_kind = None
        return BuildOutcome.failure(reason, log_path, exit_code=exit_code, error_kind=error_kind)

    def _abort(self, state: RuntimeState, log_manager: LogManager, error: Exception) -> BuildOutcome:
        """Turn an early error into a failure outcome, still persisting the log."""
        error_kind = getattr(error, "kind", "validation")
        logger.error(f"{state.target} build aborted during {state.phase.value}: {error}")
        self._announce(state, f"Build aborted: {error}")
        log_path = self._persist(state, log_manager, succeeded=False)
        return self._finish(
            state,
            BuildOutcome.failure(
                str(error),
                log_path,
                exit_code=getattr(error, "exit_code", None),
                error_kind=error_kind,
            ),
        )

    def _interrupted(self, state: RuntimeState, log_manager: LogManager) -> None:
        """Record an interrupt that arrived before a build could be aborted cleanly."""
        logger.warning(f"{state.target} build interrupted during {state.phase.value}")
        self._announce(state, f"Build interrupted during {state.phase.value}")
        self._persist(state, log_manager, succeeded=False)
        state.enter(BuildPhase.FAILURE)

    def _persist(self, state: RuntimeState, log_manager: LogManager, succeeded: bool):
        log_path = log_manager.persist(state.log_buffer.getvalue(), succeeded, state.target)
        if log_path is not None:
            self._emit(f"Log saved to: {log_path}")
        return log_path

    def _archive(self, state: RuntimeState, config: AndroidBuildConfig, outcome: BuildOutcome) -> None:
        source, extension = artifact_source(config.working_dir, config.build_type)
        result = archive_artifact(
            source,
            config.resolved_archive_dir(),
            extension,
            fresh_window=self.timeouts.artifact_fresh_window,
        )
        if result is None:
            return

        outcome.artifact_fresh = result.fresh
        outcome.artifact_path = result.archived_path
        label = extension.upper()
        if result.archived_path is not None:
            self._emit(f"Saved to: {result.archived_path}")
            if result.fresh:
                self._emit(f"New {label} archived!")
            else:
                self._emit(f"Cached {label} (code unchanged)")

        if result.fresh:
            outcome.message = f"Build completed! (Fresh {label})"
        else:
            outcome.message = "Build completed! (Cached - no code changes)"

    def _finish(self, state: RuntimeState, outcome: BuildOutcome) -> BuildOutcome:
        state.enter(BuildPhase.SUCCESS if outcome.succeeded else BuildPhase.FAILURE)
        self._emit(outcome.summary())
        if outcome.succeeded:
            logger.info(f"{state.target} build succeeded in {state.elapsed:.1f}s: {outcome.message}")
        else:
            logger.error(f"{state.target} build failed after {state.elapsed:.1f}s: {outcome.message}")
        return outcome

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def _emit(self, message: str) -> None:
        self.observer.emit(BUILD_OUTPUT_EVENT, message + "\n")

    def _announce(self, state: RuntimeState, message: str) -> None:
        """Emit a status line and record it in the transcript."""
        text = message + "\n"
        self.observer.emit(BUILD_OUTPUT_EVENT, text)
        state.log_buffer.append(text)
