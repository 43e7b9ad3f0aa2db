"""
Process tree termination.

Build commands run through a shell wrapper (``bash -c`` or ``wsl -e bash
-c``), so killing only the direct child would leave Gradle and its workers
running. Termination therefore walks the whole tree with psutil and
escalates from SIGTERM to SIGKILL.
"""

import logging
import os
import signal
from typing import List

import psutil

logger = logging.getLogger(__name__)

GRACEFUL_TIMEOUT = 3.0
FORCE_TIMEOUT = 2.0


def _is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def _get_process_children(parent: psutil.Process) -> List[psutil.Process]:
    """Collect live descendants, tolerating processes exiting mid-walk."""
    try:
        return [child for child in parent.children(recursive=True) if _is_process_alive(child)]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []


def _signal_all(processes: List[psutil.Process], force: bool) -> List[psutil.Process]:
    signaled = []
    for process in processes:
        try:
            if force:
                process.kill()
            else:
                process.terminate()
            signaled.append(process)
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied signalling PID {process.pid}")
    return signaled


def terminate_process_tree(pid: int, name: str = "process", include_root: bool = True) -> bool:
    """
    Terminate a process and all of its descendants.

    A process that has already exited is not an error.

    Args:
        pid: Root of the tree to terminate.
        name: Human-readable name used in log messages.
        include_root: Also signal and wait for ``pid`` itself. Pass False
            when the caller owns a Popen handle for the root: psutil would
            otherwise reap it and Popen could no longer read its status.

    Returns:
        True if a live process was found and signalled, False otherwise.
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return False

    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        logger.debug(f"{name} (PID: {pid}) already terminated")
        return False

    if not _is_process_alive(parent):
        logger.debug(f"{name} (PID: {pid}) already exited")
        return False

    logger.info(f"Terminating {name} (PID: {pid}) and its process tree")

    # Children first: once the shell wrapper dies they get re-parented and
    # can no longer be found through it.
    processes = _get_process_children(parent)
    if include_root:
        processes.append(parent)
    signaled = _signal_all(processes, force=False)
    _, still_alive = psutil.wait_procs(signaled, timeout=GRACEFUL_TIMEOUT)
    still_alive = [p for p in still_alive if _is_process_alive(p)]

    if still_alive:
        logger.warning(f"{len(still_alive)} processes ignored SIGTERM, sending SIGKILL")
        signaled = _signal_all(still_alive, force=True)
        _, stubborn = psutil.wait_procs(signaled, timeout=FORCE_TIMEOUT)
        for process in stubborn:
            if _is_process_alive(process):
                logger.error(f"Failed to terminate PID {process.pid} of {name}")

    if include_root:
        kill_process_group(pid, name)
    return True


def kill_process_group(pid: int, name: str, force: bool = True) -> bool:
    """
    Signal the process group led by ``pid``, if the platform has them.

    Returns:
        True if the group existed and was signalled.
    """
    if not hasattr(os, "killpg"):
        return False
    sig = signal.SIGKILL if force else signal.SIGTERM
    try:
        os.killpg(pid, sig)
        logger.debug(f"Sent {sig.name} to process group {pid} for {name}")
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        logger.debug(f"No permission to signal process group {pid}")
        return False
