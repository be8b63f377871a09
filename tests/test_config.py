"""Tests for runtime settings and logging setup."""

import logging
import sys
from unittest.mock import patch

import pytest

from stravamcp.config import Settings, load_settings
from stravamcp.exceptions import ConfigurationError
from stravamcp.logging_config import setup_logging


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self):
        """Test an empty environment gives default settings."""
        settings = load_settings(environ={})

        assert settings == Settings(
            client_id="", client_secret="", access_token="", refresh_token=""
        )
        assert settings.env_file == ".env"
        assert settings.zones_config == "zones.config.json"
        assert settings.timeout == 10
        assert settings.log_level == "INFO"

    def test_values_from_environment(self):
        environ = {
            "STRAVA_CLIENT_ID": "123",
            "STRAVA_CLIENT_SECRET": "secret",
            "STRAVA_ACCESS_TOKEN": "access",
            "STRAVA_REFRESH_TOKEN": "refresh",
            "STRAVA_ENV_FILE": "/etc/strava/.env",
            "STRAVA_ZONES_CONFIG": "/etc/strava/zones.json",
            "STRAVA_TIMEOUT": "30",
            "LOG_LEVEL": "debug",
        }

        settings = load_settings(environ=environ)

        assert settings.env_file == "/etc/strava/.env"
        assert settings.zones_config == "/etc/strava/zones.json"
        assert settings.timeout == 30
        assert settings.log_level == "DEBUG"
        credentials = settings.credentials()
        assert credentials.client_id == "123"
        assert credentials.refresh_token == "refresh"

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError, match="STRAVA_TIMEOUT"):
            load_settings(environ={"STRAVA_TIMEOUT": "soon"})

    def test_loads_env_file(self, tmp_path, monkeypatch):
        """Test the .env file is loaded into the process environment."""
        for key in ("STRAVA_CLIENT_ID", "STRAVA_ACCESS_TOKEN", "STRAVA_ENV_FILE"):
            monkeypatch.delenv(key, raising=False)
        env_path = tmp_path / ".env"
        env_path.write_text("STRAVA_CLIENT_ID=from-file\nSTRAVA_ACCESS_TOKEN=tok\n")

        with patch.dict("os.environ", {}, clear=False):
            settings = load_settings(env_file=str(env_path))

        assert settings.client_id == "from-file"
        assert settings.access_token == "tok"
        assert settings.env_file == str(env_path)

    def test_environment_wins_over_env_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STRAVA_CLIENT_ID", "from-env")
        env_path = tmp_path / ".env"
        env_path.write_text("STRAVA_CLIENT_ID=from-file\n")

        with patch.dict("os.environ", {}, clear=False):
            settings = load_settings(env_file=str(env_path))

        assert settings.client_id == "from-env"


def test_setup_logging_writes_to_stderr():
    """Test the root logger is configured for stderr at the given level."""
    with patch("stravamcp.logging_config.logging.basicConfig") as basic_config:
        setup_logging("debug")

    kwargs = basic_config.call_args[1]
    assert kwargs["level"] == logging.DEBUG
    assert kwargs["stream"] is sys.stderr
    assert "%(name)s" in kwargs["format"]


def test_setup_logging_unknown_level_falls_back_to_info():
    with patch("stravamcp.logging_config.logging.basicConfig") as basic_config:
        setup_logging("chatty")

    assert basic_config.call_args[1]["level"] == logging.INFO
