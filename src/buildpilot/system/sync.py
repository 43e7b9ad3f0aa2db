"""
Project synchronisation to the remote build host.

The local project is pushed with rsync over SSH before a remote build.
Dependency folders and native build output are excluded; the remote host
rebuilds them during hydration.
"""

import logging
import shlex
from pathlib import Path
from typing import List

from ..models.config import ConnectionDescriptor
from ..validation import ProcessFailedError
from .commands import resolve_shell, run_command, shell_path

logger = logging.getLogger(__name__)

SYNC_EXCLUDES = [
    "node_modules",
    ".git",
    "android",
    "ios/Pods",
    "ios/build",
    "ios/DerivedData",
    "ios/.xcode.env.local",
]

# rsync gives up when a transfer stalls this long.
RSYNC_STALL_TIMEOUT = 120
SSH_CONNECT_TIMEOUT = 30


def ssh_options(descriptor: ConnectionDescriptor) -> str:
    """Build the ``ssh`` invocation rsync uses as its transport."""
    opts = [
        "ssh",
        "-p", str(descriptor.port),
        "-o", "StrictHostKeyChecking=no",
        "-o", "UserKnownHostsFile=/dev/null",
        "-o", f"ConnectTimeout={SSH_CONNECT_TIMEOUT}",
    ]
    if descriptor.has_key:
        opts += ["-i", descriptor.key_path]
    return shlex.join(opts)


def build_rsync_args(
    local_dir: Path, descriptor: ConnectionDescriptor, remote_path: str, shell: str = "auto"
) -> List[str]:
    """Assemble the rsync argv; on Windows it is routed through WSL."""
    source = shell_path(str(local_dir), shell)
    destination = f"{descriptor.username}@{descriptor.host}:{remote_path}"

    args = ["rsync", "-avz", f"--timeout={RSYNC_STALL_TIMEOUT}", "-e", ssh_options(descriptor)]
    for pattern in SYNC_EXCLUDES:
        args += ["--exclude", pattern]
    args += [source, destination]

    if resolve_shell(shell) == "wsl":
        return ["wsl"] + args
    return args


def sync_project(
    local_dir: Path, descriptor: ConnectionDescriptor, remote_path: str, shell: str = "auto"
) -> str:
    """
    Push ``local_dir`` to ``remote_path`` on the build host.

    Password authentication is not supported here; rsync relies on the SSH
    key or an agent.

    Returns:
        rsync's standard output.

    Raises:
        ProcessFailedError: If rsync exits with a non-zero status.
    """
    args = build_rsync_args(local_dir, descriptor, remote_path, shell)
    logger.info(f"Syncing {local_dir} to {descriptor.describe()}:{remote_path}")

    return_code, stdout, stderr = run_command(args)
    if return_code != 0:
        raise ProcessFailedError(
            f"Sync failed: {stderr.strip() or f'rsync exited with {return_code}'}",
            exit_code=return_code,
            output=stderr,
        )
    logger.info("Sync complete")
    return stdout
