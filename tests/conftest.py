"""
Pytest configuration and shared fixtures for the BuildPilot test suite.

This module provides common fixtures, fake transports and configuration
helpers for all test modules in the BuildPilot project.
"""

import shutil
import sys
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Tuple
from unittest.mock import patch

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from buildpilot.models.config import ConnectionDescriptor, TimeoutConfig  # noqa: E402
from buildpilot.models.runtime import HardwareProfile  # noqa: E402
from buildpilot.orchestration.observer import RecordingObserver  # noqa: E402
from buildpilot.orchestration.registry import ActiveBuildRegistry  # noqa: E402
from buildpilot.transport.base import CommandChannel, TransportSession  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def recorder():
    return RecordingObserver()


@pytest.fixture
def registry():
    return ActiveBuildRegistry()


@pytest.fixture
def small_profile():
    return HardwareProfile(max_workers=4, jvm_heap_gb=4, cpu_cores=4, total_ram_gb=8)


@pytest.fixture
def key_descriptor(temp_dir):
    key_file = temp_dir / "id_ed25519"
    key_file.write_text("not really a key")
    return ConnectionDescriptor(address="mac.local:2222", username="dev", key_path=str(key_file))


@pytest.fixture
def password_descriptor():
    return ConnectionDescriptor(address="10.0.0.5", username="dev", password="secret")


@pytest.fixture
def fast_timeouts():
    return TimeoutConfig(connect_timeout=5.0, io_timeout=5.0, build_timeout=None, artifact_fresh_window=120.0)


# ============================================================================
# Fake Transports
# ============================================================================


class FakeChannel(CommandChannel):
    """
    Channel replaying canned output chunks on a single merged stream.

    ``blocking=True`` makes the reader wait after the chunks until the
    channel is killed, like a build that never finishes on its own.
    """

    def __init__(self, command: str, chunks: List[bytes], exit_code: int = 0, blocking: bool = False):
        super().__init__(command)
        self.chunks = list(chunks)
        self.exit_code = exit_code
        self.blocking = blocking
        self.killed = threading.Event()
        self.closed = False

    def _read(self, size: int) -> bytes:
        if self.chunks and not self.killed.is_set():
            return self.chunks.pop(0)
        if self.blocking:
            self.killed.wait(10)
        return b""

    def output_streams(self) -> List[Tuple[str, object]]:
        return [("output", self._read)]

    def wait(self) -> int:
        return -1 if self.killed.is_set() else self.exit_code

    def is_running(self) -> bool:
        return not self.killed.is_set() and (bool(self.chunks) or self.blocking)

    def kill(self) -> bool:
        if self.killed.is_set():
            return False
        self.killed.set()
        return True

    def close(self) -> None:
        self.closed = True


class FakeSession(TransportSession):
    """Session answering each command with a scripted FakeChannel."""

    def __init__(self, responses: Optional[dict] = None, default: Optional[FakeChannel] = None):
        self.responses = responses or {}
        self.default = default
        self.commands: List[str] = []
        self.channels: List[FakeChannel] = []
        self.closed = False

    def open_command_channel(self, command: str) -> FakeChannel:
        self.commands.append(command)
        for marker, factory in self.responses.items():
            if marker in command:
                channel = factory(command)
                break
        else:
            channel = self.default or FakeChannel(command, [b""])
        self.channels.append(channel)
        return channel

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session_factory():
    """Build a session factory returning the given FakeSession, recording calls."""

    def _make(session: TransportSession):
        calls = []

        def factory(descriptor, connect_timeout=None, io_timeout=None):
            calls.append((descriptor, connect_timeout, io_timeout))
            return session

        factory.calls = calls
        return factory

    return _make


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_config_data(temp_dir):
    """Raw configuration data shaped like config.toml."""
    return {
        "general": {"log_dir": str(temp_dir / "logs"), "archive_dir": str(temp_dir / "archive")},
        "android": {"working_dir": str(temp_dir / "app"), "build_type": "apk", "turbo_mode": True},
        "ios": {"remote_path": "~/app", "scheme": "MyApp", "build_type": "simulator"},
        "remote": {"address": "mac.local:2222", "username": "dev", "password": "secret"},
        "timeouts": {"connect_timeout": 10, "io_timeout": 300, "build_timeout": 0},
    }


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Write sample_config_data to a temporary config.toml."""
    import toml

    path = temp_dir / "config.toml"
    with open(path, "w") as f:
        toml.dump(sample_config_data, f)
    return path


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield

    from buildpilot.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(original_config_path)


@pytest.fixture
def no_password_env():
    with patch.dict("os.environ", {}, clear=False) as env:
        env.pop("BUILDPILOT_SSH_PASSWORD", None)
        yield env


@pytest.fixture
def fake_channel():
    return FakeChannel


@pytest.fixture
def fake_session():
    return FakeSession
