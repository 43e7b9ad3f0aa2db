"""
Hardware detection and build resource sizing.

The profile is a pure function of core count and memory size; sampling the
host reads psutil on every call.
"""

import logging
import math

import psutil

from ..models.runtime import HardwareProfile, SystemStats

logger = logging.getLogger(__name__)

GIGABYTE = 1024 * 1024 * 1024

MIN_WORKERS = 4
WORKER_CORE_SHARE = 0.9
HEAP_RAM_SHARE = 0.5
MIN_HEAP_GB = 4
MAX_HEAP_GB = 16


def calculate_profile(cpu_cores: int, total_ram_bytes: int) -> HardwareProfile:
    """Size Gradle workers and JVM heap for a host.

    Workers use 90% of the cores but never fewer than four; the heap takes
    half of the installed memory, clamped to 4-16 GB.

    Args:
        cpu_cores: Number of logical cores.
        total_ram_bytes: Installed memory in bytes.

    Returns:
        The derived HardwareProfile.

    Examples:
        >>> calculate_profile(32, 256 * GIGABYTE).jvm_heap_gb
        16
        >>> calculate_profile(2, 4 * GIGABYTE).max_workers
        4
    """
    total_ram_gb = total_ram_bytes // GIGABYTE

    max_workers = math.floor(cpu_cores * WORKER_CORE_SHARE)
    jvm_heap_gb = math.floor(total_ram_gb * HEAP_RAM_SHARE)

    return HardwareProfile(
        max_workers=max(MIN_WORKERS, max_workers),
        jvm_heap_gb=min(MAX_HEAP_GB, max(MIN_HEAP_GB, jvm_heap_gb)),
        cpu_cores=cpu_cores,
        total_ram_gb=total_ram_gb,
    )


def sample_hardware_profile() -> HardwareProfile:
    """Read the current host's cores and memory and derive a profile."""
    cpu_cores = psutil.cpu_count(logical=True) or 1
    total_ram = psutil.virtual_memory().total
    profile = calculate_profile(cpu_cores, total_ram)
    logger.info(
        f"Hardware: {profile.cpu_cores} cores, {profile.total_ram_gb}GB RAM -> "
        f"{profile.max_workers} workers, {profile.jvm_heap_gb}GB heap"
    )
    return profile


def get_system_stats(interval: float = 0.1) -> SystemStats:
    """
    Take a snapshot of per-core CPU usage and memory usage.

    Args:
        interval: Seconds over which CPU usage is measured.
    """
    cpu_usage = psutil.cpu_percent(interval=interval, percpu=True)
    memory = psutil.virtual_memory()
    return SystemStats(
        cpu_usage=list(cpu_usage),
        total_memory=memory.total,
        used_memory=memory.used,
        available_memory=memory.available,
        cpu_count=len(cpu_usage),
    )
