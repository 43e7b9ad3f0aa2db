"""
Local process transport.

Commands run as a child process of a shell wrapper with stdout and stderr
piped separately and unbuffered, so each stream can be relayed as soon as
bytes arrive.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..system.commands import creation_flags
from ..system.processes import GRACEFUL_TIMEOUT, kill_process_group, terminate_process_tree
from ..validation import ChannelError
from .base import ChunkReader, CommandChannel, TransportSession

logger = logging.getLogger(__name__)


def _pipe_reader(pipe) -> ChunkReader:
    def read(size: int) -> bytes:
        return pipe.read(size)
    return read


class LocalProcessChannel(CommandChannel):
    """A running local subprocess."""

    def __init__(self, command: str, process: subprocess.Popen):
        super().__init__(command)
        self.process = process

    @property
    def pid(self) -> int:
        return self.process.pid

    def output_streams(self) -> List[Tuple[str, ChunkReader]]:
        streams = []
        if self.process.stdout is not None:
            streams.append(("stdout", _pipe_reader(self.process.stdout)))
        if self.process.stderr is not None:
            streams.append(("stderr", _pipe_reader(self.process.stderr)))
        return streams

    def wait(self) -> int:
        return self.process.wait()

    def is_running(self) -> bool:
        return self.process.poll() is None

    def kill(self) -> bool:
        if not self.is_running():
            logger.debug(f"Process {self.pid} already exited, nothing to kill")
            return False
        # Signal the whole group at once so the shell cannot move on to its
        # next command; the psutil walk then catches anything outside the
        # group (and is the only mechanism on Windows). The wrapper itself is
        # reaped through its Popen handle so its exit status stays readable.
        kill_process_group(self.pid, "build process", force=False)
        terminate_process_tree(self.pid, "build process", include_root=False)
        try:
            self.process.terminate()
            self.process.wait(timeout=GRACEFUL_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {self.pid} ignored SIGTERM, sending SIGKILL")
            self.process.kill()
        except ProcessLookupError:
            pass
        kill_process_group(self.pid, "build process")
        return True

    def close(self) -> None:
        for pipe in (self.process.stdout, self.process.stderr):
            if pipe is not None:
                try:
                    pipe.close()
                except OSError as e:
                    logger.debug(f"Error closing pipe of PID {self.pid}: {e}")

    def describe(self) -> str:
        return f"local process {self.pid}"


class LocalProcessSession(TransportSession):
    """
    Runs commands on this machine through a shell wrapper.

    Args:
        cwd: Working directory of every spawned command.
        shell_prefix: argv that precedes the command string, e.g.
            ``["bash", "-c"]`` or ``["wsl", "-e", "bash", "-c"]``.
        env: Extra environment variables merged over ``os.environ``.
    """

    def __init__(self, cwd: Path, shell_prefix: List[str], env: Optional[Dict[str, str]] = None):
        self.cwd = Path(cwd)
        self.shell_prefix = list(shell_prefix)
        self.env = env

    def open_command_channel(self, command: str) -> LocalProcessChannel:
        args = self.shell_prefix + [command]
        env = None
        if self.env:
            env = dict(os.environ)
            env.update(self.env)

        try:
            process = subprocess.Popen(
                args,
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                env=env,
                # Own process group so the whole tree can be killed at once.
                start_new_session=(os.name != "nt"),
                creationflags=creation_flags(),
            )
        except (OSError, ValueError) as e:
            raise ChannelError(
                f"Failed to start '{self.shell_prefix[0]}' in {self.cwd}: {e}",
                phase=ChannelError.EXEC,
            ) from e

        logger.info(f"Build process started with PID: {process.pid} in directory {self.cwd}")
        return LocalProcessChannel(command, process)
