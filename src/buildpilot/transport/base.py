"""
Transport abstractions shared by the local and remote variants.

A TransportSession is an open execution context; each command runs on its
own CommandChannel, which exposes the raw output streams, the exit status
and a kill switch. The build controller only talks to these two types, so
local and remote builds share the relay, timeout and abort machinery.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Tuple

# Reads up to ``size`` bytes; returns b"" at end of stream.
ChunkReader = Callable[[int], bytes]

# Exit status reported when a channel ended without one (killed, dropped).
EXIT_STATUS_UNKNOWN = -1


class CommandChannel(ABC):
    """A single command running on a transport session."""

    def __init__(self, command: str):
        self.command = command

    @abstractmethod
    def output_streams(self) -> List[Tuple[str, ChunkReader]]:
        """Return ``(stream_name, reader)`` pairs, one per output stream."""

    @abstractmethod
    def wait(self) -> int:
        """Block until the command exits and return its exit status."""

    @abstractmethod
    def is_running(self) -> bool:
        """True while the command has not exited."""

    @abstractmethod
    def kill(self) -> bool:
        """
        Forcibly stop the command.

        Returns:
            True if a running command was stopped, False if it had already
            finished (which is not an error).
        """

    def close(self) -> None:
        """Release resources held by the channel."""

    def describe(self) -> str:
        return type(self).__name__


class TransportSession(ABC):
    """An execution context able to open command channels."""

    @abstractmethod
    def open_command_channel(self, command: str) -> CommandChannel:
        """
        Start ``command`` on a fresh channel.

        Raises:
            ChannelError: If the channel cannot be opened or the command
                cannot be submitted.
        """

    def close(self) -> None:
        """Close the session; channels opened on it become unusable."""

    def __enter__(self) -> "TransportSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
