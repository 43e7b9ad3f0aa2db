"""
Unit tests for configuration validation.

Tests the validation of the [general], [android], [ios], [remote] and
[timeouts] sections, including defaults and error handling.
"""

from pathlib import Path

import pytest
from unittest.mock import patch

from buildpilot.config.validators import (
    PASSWORD_ENV_VAR,
    validate_android_config,
    validate_app_config,
    validate_ios_config,
    validate_remote_config,
    validate_timeouts,
)
from buildpilot.models.config import ConnectionDescriptor
from buildpilot.validation import ValidationError


@pytest.mark.unit
class TestTimeoutValidation:
    """Test cases for [timeouts]."""

    def test_defaults(self):
        timeouts = validate_timeouts({})

        assert timeouts.connect_timeout == 30.0
        assert timeouts.io_timeout == 600.0
        assert timeouts.build_timeout is None
        assert timeouts.artifact_fresh_window == 120.0

    def test_build_timeout_set(self):
        assert validate_timeouts({"build_timeout": 1800}).build_timeout == 1800.0

    def test_zero_build_timeout_means_none(self):
        assert validate_timeouts({"build_timeout": 0}).build_timeout is None

    def test_invalid_connect_timeout(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_timeouts({"connect_timeout": 0})

        assert "connect_timeout" in str(exc_info.value)


@pytest.mark.unit
class TestRemoteValidation:
    """Test cases for [remote]."""

    def test_missing_address_means_no_remote(self):
        assert validate_remote_config({}) is None
        assert validate_remote_config({"address": "  "}) is None

    def test_password_from_file(self, no_password_env):
        descriptor = validate_remote_config({"address": "mac:2222", "username": "dev", "password": "pw"})

        assert descriptor.password == "pw"
        assert descriptor.port == 2222

    def test_password_from_environment(self):
        with patch.dict("os.environ", {PASSWORD_ENV_VAR: "from-env"}):
            descriptor = validate_remote_config({"address": "mac", "username": "dev"})

        assert descriptor.password == "from-env"

    def test_credentials_optional_at_load_time(self, no_password_env):
        descriptor = validate_remote_config({"address": "mac", "username": "dev"})

        assert not descriptor.has_key and not descriptor.has_password

    def test_key_path_expanded(self, no_password_env):
        descriptor = validate_remote_config({"address": "mac", "username": "dev", "key_path": "~/.ssh/id"})

        assert descriptor.key_path == str(Path.home() / ".ssh" / "id")

    def test_username_required(self):
        with pytest.raises(ValidationError):
            validate_remote_config({"address": "mac"})

    def test_bad_port(self):
        with pytest.raises(ValidationError):
            validate_remote_config({"address": "mac:99999", "username": "dev"})


@pytest.mark.unit
class TestBuildSectionValidation:
    """Test cases for [android] and [ios]."""

    def test_android_absent(self):
        assert validate_android_config({}) is None

    def test_android_inherits_general_dirs(self):
        general = {"log_dir": Path("/logs"), "archive_dir": Path("/archive")}
        config = validate_android_config({"working_dir": "/work/app", "build_type": "AAB"}, general)

        assert config.working_dir == Path("/work/app")
        assert config.build_type == "aab"
        assert config.turbo_mode is True
        assert config.log_dir == Path("/logs")
        assert config.archive_dir == Path("/archive")

    def test_android_requires_working_dir(self):
        with pytest.raises(ValidationError):
            validate_android_config({"build_type": "apk"})

    def test_android_rejects_unknown_build_type(self):
        with pytest.raises(ValidationError):
            validate_android_config({"working_dir": "/w", "build_type": "ipa"})

    def test_android_turbo_must_be_bool(self):
        with pytest.raises(ValidationError):
            validate_android_config({"working_dir": "/w", "turbo_mode": "yes"})

    def test_ios_requires_remote(self):
        with pytest.raises(ValidationError):
            validate_ios_config({"remote_path": "~/app", "scheme": "App"}, remote=None)

    def test_ios_sync_requires_local_dir(self):
        remote = ConnectionDescriptor(address="mac", username="dev", password="pw")
        with pytest.raises(ValidationError):
            validate_ios_config(
                {"remote_path": "~/app", "scheme": "App", "sync_before_build": True}, remote=remote
            )

    def test_ios_defaults(self):
        remote = ConnectionDescriptor(address="mac", username="dev", password="pw")
        config = validate_ios_config({"remote_path": "~/app", "scheme": "App"}, remote=remote)

        assert config.build_type == "simulator"
        assert config.simulator_name == "iPhone 15"
        assert config.connection is remote


@pytest.mark.unit
class TestAppConfigValidation:
    """Test cases for whole-file validation."""

    def test_full_config(self, sample_config_data, temp_dir, no_password_env):
        config = validate_app_config(sample_config_data)

        assert config.android.working_dir == temp_dir / "app"
        assert config.android.log_dir == temp_dir / "logs"
        assert config.ios.scheme == "MyApp"
        assert config.ios.connection.describe() == "dev@mac.local:2222"
        assert config.timeouts.connect_timeout == 10.0
        assert config.archive_dir == temp_dir / "archive"

    def test_empty_config(self):
        config = validate_app_config({})

        assert config.android is None
        assert config.ios is None
        assert config.remote is None
