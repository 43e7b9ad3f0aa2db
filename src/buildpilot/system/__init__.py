"""
System interaction utilities.

This module provides host-level functionality used around a build:

- Shell selection (direct POSIX shell or WSL) and path conversion
- Auxiliary command execution (Gradle pre-warm, WSL shutdown)
- Hardware detection and Gradle resource sizing
- Process tree termination
- Project synchronisation to the remote build host
- Local workspace and archive cleanup
"""

from .commands import (
    default_android_sdk_path,
    prewarm_gradle,
    purge_wsl,
    resolve_shell,
    run_command,
    shell_path,
    shell_prefix,
    windows_to_wsl_path,
)
from .hardware import calculate_profile, get_system_stats, sample_hardware_profile
from .processes import terminate_process_tree
from .sync import sync_project
from .workspace import clear_archive, nuke_build

__all__ = [
    # Commands
    "default_android_sdk_path",
    "prewarm_gradle",
    "purge_wsl",
    "resolve_shell",
    "run_command",
    "shell_path",
    "shell_prefix",
    "windows_to_wsl_path",
    # Hardware
    "calculate_profile",
    "get_system_stats",
    "sample_hardware_profile",
    # Processes
    "terminate_process_tree",
    # Sync and workspace
    "sync_project",
    "clear_archive",
    "nuke_build",
]
