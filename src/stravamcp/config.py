"""
Runtime settings.

Values come from the process environment after the ``.env`` file has been
loaded with python-dotenv (existing environment variables win):

- STRAVA_CLIENT_ID / STRAVA_CLIENT_SECRET: OAuth application credentials
- STRAVA_ACCESS_TOKEN / STRAVA_REFRESH_TOKEN: current tokens
- STRAVA_ENV_FILE: credential file rewritten after token refresh (default .env)
- STRAVA_ZONES_CONFIG: zones document (default zones.config.json)
- STRAVA_TIMEOUT: HTTP timeout in seconds (default 10)
- LOG_LEVEL: logging level (default INFO)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_ENV_FILE,
    DEFAULT_TIMEOUT,
    DEFAULT_ZONES_CONFIG,
    ENV_ACCESS_TOKEN,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_REFRESH_TOKEN,
)
from .credentials import StravaCredentials
from .exceptions import ConfigurationError

__all__ = ["Settings", "load_settings"]


@dataclass(frozen=True)
class Settings:
    """Configuration for one server process."""

    client_id: str
    client_secret: str
    access_token: str
    refresh_token: str
    env_file: str = DEFAULT_ENV_FILE
    zones_config: str = DEFAULT_ZONES_CONFIG
    timeout: int = DEFAULT_TIMEOUT
    log_level: str = "INFO"

    def credentials(self) -> StravaCredentials:
        return StravaCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            access_token=self.access_token,
            refresh_token=self.refresh_token,
        )


def load_settings(
    env_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Load settings from the environment.

    Args:
        env_file: .env file to load first. Defaults to STRAVA_ENV_FILE or .env.
        environ: Mapping to read instead of ``os.environ`` (no .env loading).

    Raises:
        ConfigurationError: If STRAVA_TIMEOUT is not an integer.
    """
    if environ is None:
        env_file = env_file or os.environ.get("STRAVA_ENV_FILE", DEFAULT_ENV_FILE)
        load_dotenv(env_file)
        environ = os.environ
    else:
        env_file = env_file or environ.get("STRAVA_ENV_FILE", DEFAULT_ENV_FILE)

    timeout_raw = environ.get("STRAVA_TIMEOUT", str(DEFAULT_TIMEOUT))
    try:
        timeout = int(timeout_raw)
    except ValueError as e:
        raise ConfigurationError(f"STRAVA_TIMEOUT must be an integer, got {timeout_raw!r}") from e

    return Settings(
        client_id=environ.get(ENV_CLIENT_ID, ""),
        client_secret=environ.get(ENV_CLIENT_SECRET, ""),
        access_token=environ.get(ENV_ACCESS_TOKEN, ""),
        refresh_token=environ.get(ENV_REFRESH_TOKEN, ""),
        env_file=env_file,
        zones_config=environ.get("STRAVA_ZONES_CONFIG", DEFAULT_ZONES_CONFIG),
        timeout=timeout,
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )
