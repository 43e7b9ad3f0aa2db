"""
Runtime data models.

This module contains data structures produced while a build runs: the
hardware profile that sizes the Gradle daemon, a snapshot of live system
usage, and the phases a build session moves through.
"""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import List


@dataclass(frozen=True)
class HardwareProfile:
    """Resource sizing derived from the host's cores and memory."""

    max_workers: int
    jvm_heap_gb: int
    cpu_cores: int
    total_ram_gb: int


@dataclasses.dataclass
class SystemStats:
    """Point-in-time CPU and memory usage of the build host."""

    cpu_usage: List[float]
    total_memory: int
    used_memory: int
    available_memory: int
    cpu_count: int


class BuildPhase(Enum):
    """States of a build session, in the order they are entered."""

    IDLE = "idle"
    SYNCING = "syncing"
    CONNECTING = "connecting"
    PREFLIGHT = "preflight"
    BUILDING = "building"
    COLLECTING = "collecting"
    ARCHIVING = "archiving"
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildPhase.SUCCESS, BuildPhase.FAILURE)
