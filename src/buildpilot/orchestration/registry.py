"""
Active-build registry.

A single slot holding the command channel of the build in flight, so a
cancellation request arriving on another thread (a signal handler, a UI)
can kill it. Only one build may run at a time: registering a new build
kills whatever occupied the slot before.
"""

import logging
import threading
from typing import Optional

from ..transport.base import CommandChannel

logger = logging.getLogger(__name__)


class ActiveBuildRegistry:
    """Thread-safe single-slot holder of the running build's channel."""

    def __init__(self):
        self._handle: Optional[CommandChannel] = None
        self._lock = threading.Lock()

    def register(self, handle: CommandChannel) -> Optional[CommandChannel]:
        """
        Make ``handle`` the active build, killing any previous occupant first.

        Returns:
            The evicted handle, or None if the slot was empty.
        """
        with self._lock:
            previous = self._handle
            if previous is not None and previous is not handle:
                logger.warning(f"Evicting stale build ({previous.describe()})")
                self._kill(previous)
            self._handle = handle
        logger.debug(f"Registered active build ({handle.describe()})")
        return previous if previous is not handle else None

    def abort(self) -> bool:
        """
        Kill the active build, if any, and empty the slot.

        Returns:
            True if a build was registered, False if there was none.
        """
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is None:
            logger.info("Abort requested but no build is active")
            return False
        logger.warning(f"Aborting active build ({handle.describe()})")
        self._kill(handle)
        return True

    def release(self, handle: CommandChannel) -> bool:
        """Empty the slot if it still holds ``handle``; used on normal completion."""
        with self._lock:
            if self._handle is handle:
                self._handle = None
                return True
        return False

    def current(self) -> Optional[CommandChannel]:
        with self._lock:
            return self._handle

    @property
    def is_active(self) -> bool:
        return self.current() is not None

    @staticmethod
    def _kill(handle: CommandChannel) -> None:
        try:
            handle.kill()
        except Exception as e:
            # An already finished or vanished build is not an error.
            logger.warning(f"Kill of {handle.describe()} raised {type(e).__name__}: {e}")
