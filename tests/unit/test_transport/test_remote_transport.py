"""
Unit tests for the SSH transport.

paramiko and the socket layer are mocked; the tests check the order of
checks and how each failure is classified.
"""

import socket
import threading

import paramiko
import pytest
from unittest.mock import MagicMock, Mock, patch

from buildpilot.models.config import ConnectionDescriptor
from buildpilot.orchestration.observer import RecordingObserver
from buildpilot.orchestration.relay import LogBuffer, StreamRelay
from buildpilot.transport.base import EXIT_STATUS_UNKNOWN
from buildpilot.transport.remote import RemoteChannel, RemoteSession, load_private_key
from buildpilot.validation import (
    AuthenticationError,
    ChannelError,
    ConnectionFailedError,
    ConnectionStalledError,
    ValidationError,
)

CREATE_CONNECTION = "buildpilot.transport.remote.socket.create_connection"
TRANSPORT = "buildpilot.transport.remote.paramiko.Transport"


@pytest.fixture
def mock_transport():
    with patch(TRANSPORT) as transport_class:
        transport = MagicMock()
        transport.is_authenticated.return_value = True
        transport_class.return_value = transport
        yield transport


@pytest.fixture
def mock_socket():
    with patch(CREATE_CONNECTION) as create_connection:
        sock = Mock()
        create_connection.return_value = sock
        yield create_connection


@pytest.mark.unit
class TestPreConnectChecks:
    """Validation happens before any socket is opened."""

    def test_missing_key_file(self, temp_dir, mock_socket):
        descriptor = ConnectionDescriptor(
            address="mac.local", username="dev", key_path=str(temp_dir / "missing_key")
        )

        with pytest.raises(AuthenticationError) as exc_info:
            RemoteSession.open(descriptor)

        assert exc_info.value.reason == AuthenticationError.KEY_NOT_FOUND
        assert "missing_key" in str(exc_info.value)
        mock_socket.assert_not_called()

    def test_no_credentials(self, mock_socket):
        descriptor = ConnectionDescriptor(address="mac.local", username="dev")

        with pytest.raises(AuthenticationError) as exc_info:
            RemoteSession.open(descriptor)

        assert exc_info.value.reason == AuthenticationError.NO_CREDENTIALS
        mock_socket.assert_not_called()

    def test_empty_address(self, mock_socket):
        with pytest.raises(ValidationError):
            RemoteSession.open(ConnectionDescriptor(address="", username="dev", password="pw"))

        mock_socket.assert_not_called()

    def test_empty_username(self, mock_socket):
        with pytest.raises(ValidationError):
            RemoteSession.open(ConnectionDescriptor(address="mac", username="", password="pw"))

        mock_socket.assert_not_called()


@pytest.mark.unit
class TestLoadPrivateKey:
    """Test cases for key loading."""

    def test_garbage_key_is_unreadable(self, temp_dir):
        key_file = temp_dir / "id_rsa"
        key_file.write_text("this is not a private key")

        with pytest.raises(AuthenticationError) as exc_info:
            load_private_key(str(key_file))

        assert exc_info.value.reason == AuthenticationError.KEY_UNREADABLE

    def test_encrypted_key_is_unreadable(self, temp_dir):
        key_file = temp_dir / "id_ed25519"
        key_file.write_text("encrypted")
        locked = Mock()
        locked.from_private_key_file.side_effect = paramiko.PasswordRequiredException("passphrase")

        with patch("buildpilot.transport.remote.KEY_CLASSES", (locked,)):
            with pytest.raises(AuthenticationError) as exc_info:
                load_private_key(str(key_file))

        assert exc_info.value.reason == AuthenticationError.KEY_UNREADABLE
        assert "passphrase" in str(exc_info.value)

    def test_first_matching_key_class_wins(self, temp_dir):
        key_file = temp_dir / "id_rsa"
        key_file.write_text("rsa")
        wrong = Mock()
        wrong.from_private_key_file.side_effect = paramiko.SSHException("not ed25519")
        right = Mock()
        right.from_private_key_file.return_value = "rsa-key"

        with patch("buildpilot.transport.remote.KEY_CLASSES", (wrong, right)):
            assert load_private_key(str(key_file)) == "rsa-key"


@pytest.mark.unit
class TestRemoteSessionOpen:
    """Test cases for connection, handshake and authentication failures."""

    def test_unreachable_host(self, password_descriptor):
        with patch(CREATE_CONNECTION, side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(ConnectionFailedError) as exc_info:
                RemoteSession.open(password_descriptor)

        assert exc_info.value.reason == ConnectionFailedError.UNREACHABLE
        assert "10.0.0.5:22" in str(exc_info.value)

    def test_connect_timeout(self, password_descriptor):
        with patch(CREATE_CONNECTION, side_effect=socket.timeout("timed out")):
            with pytest.raises(ConnectionFailedError) as exc_info:
                RemoteSession.open(password_descriptor, connect_timeout=1)

        assert exc_info.value.reason == ConnectionFailedError.UNREACHABLE

    def test_handshake_failure(self, password_descriptor, mock_socket, mock_transport):
        mock_transport.start_client.side_effect = paramiko.SSHException("banner error")

        with pytest.raises(ConnectionFailedError) as exc_info:
            RemoteSession.open(password_descriptor)

        assert exc_info.value.reason == ConnectionFailedError.HANDSHAKE
        mock_transport.close.assert_called_once()

    def test_password_rejected(self, password_descriptor, mock_socket, mock_transport):
        mock_transport.auth_password.side_effect = paramiko.AuthenticationException("denied")

        with pytest.raises(AuthenticationError) as exc_info:
            RemoteSession.open(password_descriptor)

        assert exc_info.value.reason == AuthenticationError.REJECTED
        assert "dev" in str(exc_info.value)

    def test_not_authenticated_after_auth(self, password_descriptor, mock_socket, mock_transport):
        mock_transport.is_authenticated.return_value = False

        with pytest.raises(AuthenticationError) as exc_info:
            RemoteSession.open(password_descriptor)

        assert exc_info.value.reason == AuthenticationError.REJECTED

    def test_password_success(self, password_descriptor, mock_socket, mock_transport):
        session = RemoteSession.open(password_descriptor, connect_timeout=5, io_timeout=42)

        mock_socket.assert_called_once_with(("10.0.0.5", 22), timeout=5)
        mock_socket.return_value.settimeout.assert_called_once_with(42)
        mock_transport.auth_password.assert_called_once_with("dev", "secret")
        assert session.io_timeout == 42

    def test_key_wins_over_password(self, temp_dir, mock_socket, mock_transport):
        key_file = temp_dir / "id_ed25519"
        key_file.write_text("key")
        descriptor = ConnectionDescriptor(
            address="mac.local:2222", username="dev", password="pw", key_path=str(key_file)
        )

        with patch("buildpilot.transport.remote.load_private_key", return_value="pkey"):
            RemoteSession.open(descriptor)

        mock_transport.auth_publickey.assert_called_once_with("dev", "pkey")
        mock_transport.auth_password.assert_not_called()


@pytest.mark.unit
class TestRemoteChannels:
    """Test cases for command channels on an open session."""

    def _session(self, transport):
        descriptor = ConnectionDescriptor(address="mac", username="dev", password="pw")
        return RemoteSession(transport, descriptor, io_timeout=30)

    def test_open_failure(self):
        transport = MagicMock()
        transport.open_session.side_effect = paramiko.SSHException("administratively prohibited")

        with pytest.raises(ChannelError) as exc_info:
            self._session(transport).open_command_channel("ls")

        assert exc_info.value.phase == ChannelError.OPEN

    def test_exec_failure_closes_channel(self):
        transport = MagicMock()
        channel = transport.open_session.return_value
        channel.exec_command.side_effect = paramiko.SSHException("exec refused")

        with pytest.raises(ChannelError) as exc_info:
            self._session(transport).open_command_channel("ls")

        assert exc_info.value.phase == ChannelError.EXEC
        channel.close.assert_called_once()

    def test_channel_merges_stderr(self):
        transport = MagicMock()
        channel = transport.open_session.return_value

        remote = self._session(transport).open_command_channel("xcodebuild")

        channel.set_combine_stderr.assert_called_once_with(True)
        channel.settimeout.assert_called_once_with(30)
        channel.exec_command.assert_called_once_with("xcodebuild")
        assert [name for name, _ in remote.output_streams()] == ["output"]

    def test_exit_status(self):
        channel = Mock(closed=False)
        channel.recv_exit_status.return_value = 65

        assert RemoteChannel("cmd", channel).wait() == 65

    def test_exit_status_unknown_after_close(self):
        channel = Mock(closed=True)
        channel.exit_status_ready.return_value = False

        assert RemoteChannel("cmd", channel).wait() == EXIT_STATUS_UNKNOWN

    def test_kill_closes_running_channel(self):
        channel = Mock(closed=False)
        channel.exit_status_ready.return_value = False

        assert RemoteChannel("cmd", channel).kill() is True
        channel.close.assert_called_once()

    def test_kill_finished_channel_is_noop(self):
        channel = Mock(closed=False)
        channel.exit_status_ready.return_value = True

        assert RemoteChannel("cmd", channel).kill() is False
        channel.close.assert_not_called()

    def test_channel_inherits_session_io_timeout(self):
        transport = MagicMock()

        remote = self._session(transport).open_command_channel("xcodebuild")

        assert remote.io_timeout == 30


@pytest.mark.unit
class TestStalledChannel:
    """A silent connection ends in an error instead of blocking forever."""

    def test_wait_gives_up_after_io_timeout(self):
        channel = Mock(closed=False)
        channel.exit_status_ready.return_value = False
        channel.status_event.wait.return_value = False

        with pytest.raises(ConnectionStalledError) as exc_info:
            RemoteChannel("xcodebuild", channel, io_timeout=12).wait()

        channel.status_event.wait.assert_called_once_with(12)
        channel.close.assert_called_once()
        channel.recv_exit_status.assert_not_called()
        assert exc_info.value.kind == "stalled"
        assert "12s" in str(exc_info.value)

    def test_wait_returns_status_once_available(self):
        channel = Mock(closed=False)
        channel.exit_status_ready.return_value = False
        channel.status_event.wait.return_value = True
        channel.recv_exit_status.return_value = 0

        assert RemoteChannel("xcodebuild", channel, io_timeout=12).wait() == 0
        channel.close.assert_not_called()

    def test_read_timeout_then_wait_is_bounded(self):
        # A channel with no transport behind it never delivers data,
        # an exit status or a close: the shape of a dead connection.
        silent = paramiko.Channel(1)
        silent.settimeout(0.2)
        remote = RemoteChannel("xcodebuild", silent, io_timeout=0.2)
        buffer = LogBuffer()
        for name, reader in remote.output_streams():
            StreamRelay(name, reader, RecordingObserver(), log_buffer=buffer).run()

        errors = []

        def wait():
            try:
                remote.wait()
            except ConnectionStalledError as e:
                errors.append(e)

        waiter = threading.Thread(target=wait, daemon=True)
        waiter.start()
        waiter.join(timeout=5)

        assert not waiter.is_alive()
        assert len(errors) == 1
        assert buffer.getvalue() == ""
