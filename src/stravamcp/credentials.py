#!/usr/bin/env python3
"""
Strava credential storage and token refresh.

Credentials live in a ``.env`` file of KEY=value lines. The in-memory
CredentialStore is the source of truth while the process runs; the file is
rewritten after every successful refresh so the next process starts with the
latest tokens.
"""

import getpass
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import requests
from dotenv import dotenv_values

from .constants import (
    DEFAULT_ENV_FILE,
    DEFAULT_TIMEOUT,
    ENV_ACCESS_TOKEN,
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_REFRESH_TOKEN,
    STRAVA_TOKEN_URL,
)
from .exceptions import AuthenticationError, CredentialError

__all__ = [
    "StravaCredentials",
    "CredentialStore",
    "read_env_file",
    "update_env_file",
    "create_env_file",
]

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class StravaCredentials:
    """OAuth client and token values for one athlete."""

    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    refresh_token: str = ""
    expires_at: Optional[int] = None

    def missing_refresh_fields(self):
        """Names of the env keys needed for a refresh that are empty."""
        required = {
            ENV_REFRESH_TOKEN: self.refresh_token,
            ENV_CLIENT_ID: self.client_id,
            ENV_CLIENT_SECRET: self.client_secret,
        }
        return [key for key, value in required.items() if not value]


def read_env_file(path: PathLike) -> Dict[str, str]:
    """Read KEY=value pairs from a .env file; missing file yields {}."""
    env_path = Path(path).expanduser()
    if not env_path.exists():
        return {}
    return {key: value for key, value in dotenv_values(env_path).items() if value is not None}


def update_env_file(path: PathLike, updates: Dict[str, str]) -> None:
    """Set keys in a .env file, leaving every other line as it was.

    Every line starting with ``KEY=`` for a key in ``updates`` is replaced,
    duplicates included; keys not present yet are appended. Trailing
    whitespace at the end of the file is collapsed to a single newline.

    Raises:
        OSError: If the file cannot be read or written.
    """
    env_path = Path(path).expanduser()
    lines = env_path.read_text(encoding="utf-8").split("\n") if env_path.exists() else []

    matched = set()
    new_lines = []
    for line in lines:
        key = line.split("=", 1)[0].strip() if "=" in line else None
        if key in updates:
            # dotenv keeps the last occurrence of a key
            new_lines.append(f"{key}={updates[key]}")
            matched.add(key)
        else:
            new_lines.append(line)

    content = "\n".join(new_lines).rstrip()
    for key, value in updates.items():
        if key not in matched:
            content += f"\n{key}={value}"

    env_path.write_text(content.strip() + "\n", encoding="utf-8")


class CredentialStore:
    """Process-wide holder of Strava credentials.

    Construct one instance at start-up and share it with every API client.
    ``refresh()`` swaps both tokens in memory, then persists them to the env
    file. Refreshes are serialized but not deduplicated: two callers that see
    an expired token will each exchange it, and the last one wins.
    """

    def __init__(
        self,
        credentials: StravaCredentials,
        env_path: Optional[PathLike] = DEFAULT_ENV_FILE,
        token_url: str = STRAVA_TOKEN_URL,
        timeout: int = DEFAULT_TIMEOUT,
        http: Optional[requests.Session] = None,
    ):
        self._credentials = credentials
        self.env_path = Path(env_path).expanduser() if env_path else None
        self.token_url = token_url
        self.timeout = timeout
        self.http = http or requests.Session()
        self._lock = threading.Lock()

    @classmethod
    def from_env_file(cls, env_path: PathLike = DEFAULT_ENV_FILE, **kwargs) -> "CredentialStore":
        """Create a store from the values currently saved in ``env_path``."""
        values = read_env_file(env_path)
        credentials = StravaCredentials(
            client_id=values.get(ENV_CLIENT_ID, ""),
            client_secret=values.get(ENV_CLIENT_SECRET, ""),
            access_token=values.get(ENV_ACCESS_TOKEN, ""),
            refresh_token=values.get(ENV_REFRESH_TOKEN, ""),
        )
        return cls(credentials, env_path=env_path, **kwargs)

    @property
    def access_token(self) -> str:
        return self._credentials.access_token

    @property
    def refresh_token(self) -> str:
        return self._credentials.refresh_token

    @property
    def expires_at(self) -> Optional[int]:
        return self._credentials.expires_at

    def refresh(self) -> str:
        """Exchange the refresh token for a new access/refresh token pair.

        Returns:
            The new access token.

        Raises:
            CredentialError: If the refresh token, client id or client secret
                is missing. No request is made.
            AuthenticationError: If Strava rejects the exchange, the request
                fails, or the response lacks either token.
        """
        missing = self._credentials.missing_refresh_fields()
        if missing:
            raise CredentialError(
                f"Missing refresh credentials: {', '.join(missing)}. "
                f"Set them in {self.env_path or 'the environment'}."
            )

        logger.info("Refreshing Strava access token")
        payload = {
            "client_id": self._credentials.client_id,
            "client_secret": self._credentials.client_secret,
            "refresh_token": self._credentials.refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            response = self.http.post(self.token_url, data=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise AuthenticationError(f"Failed to refresh Strava access token: {e}") from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"Failed to refresh Strava access token: {response.status_code} {response.text}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise AuthenticationError("Refresh response was not valid JSON") from e

        access_token = body.get("access_token")
        refresh_token = body.get("refresh_token")
        if not access_token or not refresh_token:
            raise AuthenticationError("Refresh response missing required tokens")

        with self._lock:
            self._credentials.access_token = access_token
            self._credentials.refresh_token = refresh_token
            self._credentials.expires_at = body.get("expires_at")
            self.persist()

        logger.info("Token refreshed, expires at %s", self._credentials.expires_at)
        return access_token

    def persist(self) -> bool:
        """Write the current tokens to the env file.

        Returns:
            True when written. A failed write is logged and the in-memory
            tokens stay usable, so False is returned instead of raising.
        """
        if self.env_path is None:
            return False
        try:
            update_env_file(
                self.env_path,
                {
                    ENV_ACCESS_TOKEN: self._credentials.access_token,
                    ENV_REFRESH_TOKEN: self._credentials.refresh_token,
                },
            )
        except OSError as e:
            logger.error("Failed to update tokens in %s: %s", self.env_path, e)
            return False
        return True


def create_env_file() -> None:
    """Create a .env file with Strava API credentials."""
    print("🔐 Strava API Credentials Setup")
    print("=" * 50)
    print("\nThis will create a .env file to store your credentials securely.")
    print("Create an API application at https://www.strava.com/settings/api first.")
    print("⚠️  Make sure .env is in your .gitignore!\n")

    env_path = Path(DEFAULT_ENV_FILE)

    if env_path.exists():
        response = input(".env file already exists. Overwrite? (y/n): ")
        if response.lower() != "y":
            print("Cancelled.")
            return

    client_id = input("Strava Client ID: ").strip()
    client_secret = getpass.getpass("Strava Client Secret: ").strip()
    refresh_token = getpass.getpass("Strava Refresh Token: ").strip()
    access_token = input("Strava Access Token [optional]: ").strip()

    env_content = f"""# Strava API Credentials
# DO NOT COMMIT THIS FILE TO GIT!
{ENV_CLIENT_ID}={client_id}
{ENV_CLIENT_SECRET}={client_secret}
{ENV_ACCESS_TOKEN}={access_token}
{ENV_REFRESH_TOKEN}={refresh_token}
"""

    with open(env_path, "w", encoding="utf-8") as f:
        f.write(env_content)

    # Set restrictive permissions
    env_path.chmod(0o600)

    print("\n✅ .env file created successfully!")
    print(f"   Location: {env_path.absolute()}")

    gitignore_path = Path(".gitignore")
    if gitignore_path.exists():
        with open(gitignore_path, "r", encoding="utf-8") as f:
            gitignore_content = f.read()

        if ".env" not in gitignore_content:
            response = input("\n.env not found in .gitignore. Add it now? (y/n): ")
            if response.lower() == "y":
                with open(gitignore_path, "a", encoding="utf-8") as f:
                    f.write("\n# Environment variables\n.env\n")
                print("✅ Added .env to .gitignore")
    else:
        response = input("\nNo .gitignore found. Create one? (y/n): ")
        if response.lower() == "y":
            with open(gitignore_path, "w", encoding="utf-8") as f:
                f.write("# Environment variables\n.env\n")
            print("✅ Created .gitignore with .env entry")

    print("\n💡 Usage:")
    print("   stravamcp")
    print("\n   The server loads credentials from .env and refreshes them when they expire.")


if __name__ == "__main__":
    create_env_file()
