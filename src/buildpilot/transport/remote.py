"""SSH transport for builds on a remote Mac."""

import logging
import socket
from pathlib import Path
from typing import List, Optional, Tuple

import paramiko

from ..models.config import ConnectionDescriptor
from ..validation import (
    AuthenticationError,
    ChannelError,
    ConnectionFailedError,
    ConnectionStalledError,
)
from .base import EXIT_STATUS_UNKNOWN, ChunkReader, CommandChannel, TransportSession

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_IO_TIMEOUT = 600.0

# Key formats tried in order when loading a private key file.
KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def load_private_key(key_path: str) -> paramiko.PKey:
    """
    Load a private key of any supported type.

    Raises:
        AuthenticationError: If the file is missing, encrypted or not a key.
    """
    path = Path(key_path).expanduser()
    if not path.exists():
        raise AuthenticationError(
            f"SSH key file not found: '{key_path}' (check path)",
            reason=AuthenticationError.KEY_NOT_FOUND,
        )

    last_error: Optional[Exception] = None
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key_file(str(path))
        except paramiko.PasswordRequiredException as e:
            raise AuthenticationError(
                f"SSH key '{key_path}' is passphrase-protected; use an unencrypted key or an agent",
                reason=AuthenticationError.KEY_UNREADABLE,
            ) from e
        except (paramiko.SSHException, ValueError) as e:
            last_error = e
            continue

    raise AuthenticationError(
        f"SSH key '{key_path}' could not be loaded: {last_error}",
        reason=AuthenticationError.KEY_UNREADABLE,
    )


class RemoteChannel(CommandChannel):
    """
    A command running on an SSH session channel, stderr merged into stdout.

    ``io_timeout`` bounds the wait for the exit status once output has
    stopped; a channel silent for longer counts as a stalled connection.
    """

    def __init__(self, command: str, channel: paramiko.Channel, io_timeout: float = DEFAULT_IO_TIMEOUT):
        super().__init__(command)
        self.channel = channel
        self.io_timeout = io_timeout

    def output_streams(self) -> List[Tuple[str, ChunkReader]]:
        return [("output", self.channel.recv)]

    def wait(self) -> int:
        if self.channel.closed and not self.channel.exit_status_ready():
            return EXIT_STATUS_UNKNOWN
        # recv_exit_status() alone waits forever on a stalled connection.
        if not self.channel.status_event.wait(self.io_timeout):
            logger.error(f"No exit status from {self.describe()} after {self.io_timeout:g}s, closing it")
            self.channel.close()
            raise ConnectionStalledError(
                f"Connection stalled: remote command sent no output or exit status for {self.io_timeout:g}s"
            )
        return self.channel.recv_exit_status()

    def is_running(self) -> bool:
        return not self.channel.closed and not self.channel.exit_status_ready()

    def kill(self) -> bool:
        # Closing the channel ends the remote command's session and makes
        # pending recv() calls return b"".
        if not self.is_running():
            return False
        logger.info("Closing remote command channel")
        self.channel.close()
        return True

    def close(self) -> None:
        self.channel.close()

    def describe(self) -> str:
        return f"remote channel {self.channel.get_id()}"


class RemoteSession(TransportSession):
    """
    An authenticated SSH session able to run several commands in turn.

    Use :meth:`open` to connect; the constructor only wraps an existing
    paramiko transport.
    """

    def __init__(self, transport: paramiko.Transport, descriptor: ConnectionDescriptor,
                 io_timeout: float = DEFAULT_IO_TIMEOUT):
        self.transport = transport
        self.descriptor = descriptor
        self.io_timeout = io_timeout

    @classmethod
    def open(
        cls,
        descriptor: ConnectionDescriptor,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        io_timeout: float = DEFAULT_IO_TIMEOUT,
    ) -> "RemoteSession":
        """
        Connect, handshake and authenticate.

        Descriptor and credential checks run before any socket is opened.

        Raises:
            ValidationError: If the address or username is empty.
            AuthenticationError: If credentials are missing, unreadable or rejected.
            ConnectionFailedError: If the host is unreachable or the handshake fails.
        """
        descriptor.validate()
        host, port = descriptor.host_and_port

        pkey = None
        if descriptor.has_key:
            pkey = load_private_key(descriptor.key_path)

        addr = f"{host}:{port}"
        try:
            sock = socket.create_connection((host, port), timeout=connect_timeout)
        except OSError as e:
            raise ConnectionFailedError(
                f"Connection failed: cannot reach '{addr}' - {e} (check address/port)",
                reason=ConnectionFailedError.UNREACHABLE,
            ) from e

        # Generous timeout: a stalled connection must fail eventually, but a
        # quiet build step must not.
        sock.settimeout(io_timeout)

        transport = paramiko.Transport(sock)
        try:
            transport.start_client(timeout=connect_timeout)
        except (paramiko.SSHException, OSError, EOFError) as e:
            transport.close()
            raise ConnectionFailedError(
                f"SSH handshake failed with '{host}' - {e}",
                reason=ConnectionFailedError.HANDSHAKE,
            ) from e

        host_key = transport.get_remote_server_key()
        logger.debug(f"Server key for {host}: {host_key.get_name()} {host_key.get_fingerprint().hex()}")

        try:
            if pkey is not None:
                transport.auth_publickey(descriptor.username, pkey)
            else:
                transport.auth_password(descriptor.username, descriptor.password)
        except paramiko.AuthenticationException as e:
            transport.close()
            method = "key" if pkey is not None else "password"
            raise AuthenticationError(
                f"SSH {method} auth failed for user '{descriptor.username}': {e} "
                f"(check username and credentials)",
                reason=AuthenticationError.REJECTED,
            ) from e
        except (paramiko.SSHException, OSError) as e:
            transport.close()
            raise ConnectionFailedError(
                f"Connection to '{addr}' dropped during authentication - {e}",
                reason=ConnectionFailedError.HANDSHAKE,
            ) from e

        if not transport.is_authenticated():
            transport.close()
            raise AuthenticationError(
                f"Authentication failed for user '{descriptor.username}' at '{host}' (credentials rejected)",
                reason=AuthenticationError.REJECTED,
            )

        logger.info(f"SSH connection established to {descriptor.describe()}")
        return cls(transport, descriptor, io_timeout=io_timeout)

    def open_command_channel(self, command: str) -> RemoteChannel:
        try:
            channel = self.transport.open_session(timeout=self.io_timeout)
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise ChannelError(f"Failed to open channel: {e}", phase=ChannelError.OPEN) from e

        channel.settimeout(self.io_timeout)
        channel.set_combine_stderr(True)
        try:
            channel.exec_command(command)
        except (paramiko.SSHException, OSError, EOFError) as e:
            channel.close()
            raise ChannelError(f"Failed to exec command: {e}", phase=ChannelError.EXEC) from e

        logger.debug(f"Command submitted on {self.descriptor.describe()}")
        return RemoteChannel(command, channel, io_timeout=self.io_timeout)

    def close(self) -> None:
        if self.transport is not None:
            self.transport.close()
            logger.info(f"SSH connection closed to {self.descriptor.host}")
