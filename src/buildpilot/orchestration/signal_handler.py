"""
Signal handling for the orchestration module.

SIGINT and SIGTERM abort the build held by an ActiveBuildRegistry. The
controller then sees the killed channel end, classifies the build as a
failure and still persists its log. A signal arriving while no channel is
registered (sync, connect, pre-flight) interrupts the build instead; the
controller persists the transcript before letting the interrupt through.
"""

import logging
import signal
from typing import Any

from .registry import ActiveBuildRegistry

logger = logging.getLogger(__name__)


class SignalHandler:
    """
    Installs SIGINT/SIGTERM handlers that abort the active build.

    Usable as a context manager; the previous handlers are restored on exit.
    """

    def __init__(self, registry: ActiveBuildRegistry):
        self.registry = registry
        self._original_sigint_handler = None
        self._original_sigterm_handler = None
        self._signal_handlers_set = False

    def setup_signal_handlers(self) -> None:
        try:
            self._original_sigint_handler = signal.signal(signal.SIGINT, self._handle_signal)
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._handle_signal)
            self._signal_handlers_set = True
            logger.debug("Signal handlers set up")
        except ValueError as e:
            # signal.signal only works on the main thread.
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        if not self._signal_handlers_set:
            return

        try:
            if self._original_sigint_handler is not None:
                signal.signal(signal.SIGINT, self._original_sigint_handler)
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            logger.debug("Signal handlers restored")
        except ValueError as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    def _handle_signal(self, signum: int, frame: Any) -> None:
        logger.warning(f"Signal {signum} received. Aborting active build.")
        if not self.registry.abort():
            # Nothing to abort; fall back to the default interrupt behaviour.
            if signum == signal.SIGINT:
                raise KeyboardInterrupt
            raise SystemExit(128 + signum)

    def __enter__(self) -> "SignalHandler":
        self.setup_signal_handlers()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup_signal_handlers()
