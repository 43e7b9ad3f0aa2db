"""
Shared data structures for the orchestration module.

This module defines the per-build runtime state and the constants used
across the controller, relays and recovery sequencer.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..models.runtime import BuildPhase
from ..transport.base import CommandChannel
from .relay import LogBuffer, StreamRelay

logger = logging.getLogger(__name__)


@dataclass
class RuntimeState:
    """
    State of one build invocation, owned by the controller.

    A fresh instance is created per build; nothing survives between builds.
    """
    target: str
    phase: BuildPhase = BuildPhase.IDLE
    log_buffer: LogBuffer = field(default_factory=LogBuffer)
    channel: Optional[CommandChannel] = None
    relays: List[StreamRelay] = field(default_factory=list)
    exit_code: Optional[int] = None
    timed_out: bool = False
    # Set when the registry slot was taken over (abort or eviction).
    aborted: bool = False
    started_at: float = field(default_factory=time.monotonic)
    history: List[BuildPhase] = field(default_factory=lambda: [BuildPhase.IDLE])

    def enter(self, phase: BuildPhase) -> None:
        logger.debug(f"[{self.target}] {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.history.append(phase)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class TimeoutConstants:
    """
    Centralized timing configuration.
    """
    # Relay join polling interval while a build timeout is armed
    RELAY_JOIN_POLL = 1.0

    # Time relays get to drain after their channel was killed
    RELAY_DRAIN_AFTER_KILL = 10.0
