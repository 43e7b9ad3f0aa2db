"""
Unit tests for configuration loading and the configuration singleton.
"""

import tomllib

import pytest

from buildpilot.config import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    load_config_file,
    set_config_path,
)
from buildpilot.validation import ValidationError


@pytest.mark.unit
class TestConfigLoading:
    """Test cases for TOML loading."""

    def test_load_config_file(self, config_file):
        data = load_config_file(config_file)

        assert data["remote"]["username"] == "dev"

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_config_file(temp_dir / "missing.toml")

    def test_malformed_file(self, temp_dir):
        bad = temp_dir / "bad.toml"
        bad.write_text("[android\nworking_dir = ")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_config_file(bad)


@pytest.mark.unit
class TestConfigSingleton:
    """Test cases for get_config caching."""

    def test_get_config_caches(self, config_file, no_password_env):
        set_config_path(config_file)

        first = get_config()
        second = get_config()

        assert first is second
        assert is_config_loaded()
        assert get_config_info()["ios_configured"] is True

    def test_clear_cache_reloads(self, config_file, no_password_env):
        set_config_path(config_file)
        first = get_config()

        clear_config_cache()

        assert not is_config_loaded()
        assert get_config() is not first

    def test_invalid_values_propagate(self, temp_dir):
        import toml

        path = temp_dir / "config.toml"
        with open(path, "w") as f:
            toml.dump({"android": {"working_dir": "/w", "build_type": "zip"}}, f)
        set_config_path(path)

        with pytest.raises(ValidationError):
            get_config()
