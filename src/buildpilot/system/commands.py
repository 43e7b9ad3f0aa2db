"""
Host command execution and shell selection utilities.

This module decides how a build script reaches a POSIX shell (directly, or
through WSL on Windows), converts Windows paths for WSL, and runs the small
auxiliary commands (daemon pre-warm, WSL shutdown) that sit around a build.
"""

import logging
import os
import shlex
import subprocess
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from ..validation import ProcessFailedError, validate_enum_choice

logger = logging.getLogger(__name__)

SHELL_CHOICES = ["auto", "wsl", "bash", "sh"]

# Windows-only flag hiding the console window of spawned processes.
CREATE_NO_WINDOW = 0x08000000


def creation_flags() -> int:
    return CREATE_NO_WINDOW if os.name == "nt" else 0


def resolve_shell(shell: str = "auto") -> str:
    """Map the configured shell to a concrete one ("wsl", "bash" or "sh")."""
    shell = validate_enum_choice(shell, SHELL_CHOICES, field_name="android.shell")
    if shell == "auto":
        return "wsl" if os.name == "nt" else "bash"
    return shell


def shell_prefix(shell: str = "auto") -> List[str]:
    """Return the argv prefix that runs a script string in the chosen shell.

    Examples:
        >>> shell_prefix("wsl")
        ['wsl', '-e', 'bash', '-c']
        >>> shell_prefix("sh")
        ['/bin/sh', '-c']
    """
    resolved = resolve_shell(shell)
    if resolved == "wsl":
        return ["wsl", "-e", "bash", "-c"]
    if resolved == "sh":
        return ["/bin/sh", "-c"]
    return ["bash", "-c"]


def windows_to_wsl_path(win_path: str) -> str:
    """Convert a Windows path to its WSL mount path.

    Examples:
        >>> windows_to_wsl_path("C:\\\\Users\\\\Game")
        '/mnt/c/Users/Game'
        >>> windows_to_wsl_path("D:/Projects/App")
        '/mnt/d/Projects/App'
    """
    if len(win_path) >= 2 and win_path[1] == ":":
        drive = win_path[0].lower()
        rest = win_path[2:].replace("\\", "/")
        return f"/mnt/{drive}{rest}"
    return win_path.replace("\\", "/")


def shell_path(path: str, shell: str = "auto") -> str:
    """Express a host path the way the chosen shell sees it."""
    if resolve_shell(shell) == "wsl":
        return windows_to_wsl_path(str(path))
    return str(path)


def default_android_sdk_path(shell: str = "auto") -> str:
    """
    Locate the Android SDK as seen from inside the build shell.

    Under WSL the Windows SDK in ``%LOCALAPPDATA%`` is used; elsewhere
    ``ANDROID_HOME`` / ``ANDROID_SDK_ROOT`` or ``~/Android/Sdk``.
    """
    if resolve_shell(shell) == "wsl":
        local_app_data = os.environ.get("LOCALAPPDATA", "C:/Users/Default/AppData/Local")
        local_app_data = local_app_data.replace("\\", "/")
        return windows_to_wsl_path(f"{local_app_data}/Android/Sdk")

    for var in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        value = os.environ.get(var)
        if value:
            return value
    return str(Path.home() / "Android" / "Sdk")


def run_command(
    args: List[str], cwd: Optional[Path] = None, timeout: Optional[float] = None
) -> Tuple[int, str, str]:
    """Execute a command and capture its output.

    Args:
        args: Command and arguments.
        cwd: Working directory for the command.
        timeout: Seconds before the command is killed, None for no limit.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 when the command could not be run at all.
    """
    logger.debug(f"Executing command: '{shlex.join(args)}' in '{cwd}'")
    try:
        process = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
            creationflags=creation_flags(),
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        logger.error(f"Command not found: {args[0]}: {e}")
        return -1, "", f"Error: Command not found '{args[0]}'"
    except subprocess.TimeoutExpired as e:
        logger.error(f"Command '{args[0]}' timed out after {timeout}s")
        return -1, "", f"Error: timed out after {e.timeout}s"
    except OSError as e:
        logger.error(f"Unexpected error while running '{args[0]}': {type(e).__name__}: {e}", exc_info=True)
        return -1, "", f"An unexpected error occurred: {e}"


def purge_wsl() -> str:
    """Shut down every WSL distribution, releasing its memory.

    Raises:
        ProcessFailedError: If ``wsl --shutdown`` fails.
    """
    return_code, stdout, stderr = run_command(["wsl", "--shutdown"])
    if return_code != 0:
        raise ProcessFailedError(
            f"wsl --shutdown failed: {stderr.strip() or stdout.strip()}",
            exit_code=return_code,
            output=stderr,
        )
    logger.info("WSL shut down")
    return "WSL Purged"


def prewarm_gradle(working_dir: Path, shell: str = "auto") -> threading.Thread:
    """
    Start the Gradle daemon in the background so the next build skips its boot.

    Returns:
        The background thread; callers may join it or let it run.
    """
    android_dir = shlex.quote(f"{shell_path(str(working_dir), shell)}/android")
    args = shell_prefix(shell) + [f"cd {android_dir} && ./gradlew --version"]

    def _warm() -> None:
        logger.info("Pre-warming Gradle daemon...")
        return_code, _, stderr = run_command(args, cwd=Path(working_dir))
        if return_code == 0:
            logger.info("Gradle daemon warmed")
        else:
            logger.warning(f"Gradle pre-warm exited with {return_code}: {stderr.strip()[:200]}")

    thread = threading.Thread(target=_warm, name="GradlePrewarm", daemon=True)
    thread.start()
    return thread
