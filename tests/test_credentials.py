"""Tests for credentials module."""

import sys
from unittest.mock import Mock, patch

import pytest
import requests

from stravamcp.credentials import (
    CredentialStore,
    StravaCredentials,
    create_env_file,
    read_env_file,
    update_env_file,
)
from stravamcp.exceptions import AuthenticationError, CredentialError

ENV_CONTENT = """# Strava API Credentials
STRAVA_CLIENT_ID=12345
STRAVA_CLIENT_SECRET=secret

STRAVA_ACCESS_TOKEN=old-access
STRAVA_REFRESH_TOKEN=old-refresh
OTHER_SETTING=keep me
"""


def _credentials(**overrides):
    values = dict(
        client_id="12345",
        client_secret="secret",
        access_token="old-access",
        refresh_token="old-refresh",
    )
    values.update(overrides)
    return StravaCredentials(**values)


def _token_response(status_code=200, body=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = (
        body
        if body is not None
        else {"access_token": "new-access", "refresh_token": "new-refresh", "expires_at": 1700000000}
    )
    return response


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(ENV_CONTENT, encoding="utf-8")
    return path


class TestEnvFile:
    """Tests for reading and rewriting the .env file."""

    def test_read_env_file(self, env_file):
        """Test KEY=value pairs are read."""
        values = read_env_file(env_file)

        assert values["STRAVA_CLIENT_ID"] == "12345"
        assert values["OTHER_SETTING"] == "keep me"

    def test_read_missing_env_file(self, tmp_path):
        """Test a missing file reads as empty."""
        assert read_env_file(tmp_path / "missing.env") == {}

    def test_update_replaces_only_named_keys(self, env_file):
        """Test token lines are replaced and everything else is kept."""
        update_env_file(
            env_file, {"STRAVA_ACCESS_TOKEN": "new-access", "STRAVA_REFRESH_TOKEN": "new-refresh"}
        )

        content = env_file.read_text(encoding="utf-8")
        assert "STRAVA_ACCESS_TOKEN=new-access" in content
        assert "STRAVA_REFRESH_TOKEN=new-refresh" in content
        assert "old-access" not in content
        assert "# Strava API Credentials" in content
        assert "OTHER_SETTING=keep me" in content
        assert "STRAVA_CLIENT_SECRET=secret\n\nSTRAVA_ACCESS_TOKEN" in content
        assert content.endswith("\n") and not content.endswith("\n\n")

    def test_update_appends_missing_keys(self, tmp_path):
        """Test keys not yet in the file are appended."""
        path = tmp_path / ".env"
        path.write_text("STRAVA_CLIENT_ID=1\n\n\n", encoding="utf-8")

        update_env_file(path, {"STRAVA_ACCESS_TOKEN": "abc"})

        assert path.read_text(encoding="utf-8") == "STRAVA_CLIENT_ID=1\nSTRAVA_ACCESS_TOKEN=abc\n"

    def test_update_rewrites_duplicate_lines(self, tmp_path):
        """Test every occurrence of a key is replaced, not only the first."""
        path = tmp_path / ".env"
        path.write_text(
            "STRAVA_REFRESH_TOKEN=r-old\nSTRAVA_CLIENT_ID=1\nSTRAVA_REFRESH_TOKEN=r-older\n",
            encoding="utf-8",
        )

        update_env_file(path, {"STRAVA_REFRESH_TOKEN": "r-new"})

        content = path.read_text(encoding="utf-8")
        assert read_env_file(path)["STRAVA_REFRESH_TOKEN"] == "r-new"
        assert "r-old" not in content
        assert content.count("STRAVA_REFRESH_TOKEN=") == 2

    def test_update_creates_file(self, tmp_path):
        path = tmp_path / ".env"

        update_env_file(path, {"STRAVA_REFRESH_TOKEN": "r"})

        assert read_env_file(path) == {"STRAVA_REFRESH_TOKEN": "r"}

    def test_update_round_trip(self, env_file):
        """Test updated values read back through the .env parser."""
        update_env_file(env_file, {"STRAVA_ACCESS_TOKEN": "a2", "STRAVA_REFRESH_TOKEN": "r2"})

        values = read_env_file(env_file)
        assert values["STRAVA_ACCESS_TOKEN"] == "a2"
        assert values["STRAVA_REFRESH_TOKEN"] == "r2"
        assert values["STRAVA_CLIENT_ID"] == "12345"


class TestCredentialStore:
    """Tests for CredentialStore.refresh and persistence."""

    def test_from_env_file(self, env_file):
        store = CredentialStore.from_env_file(env_file, http=Mock())

        assert store.access_token == "old-access"
        assert store.refresh_token == "old-refresh"
        assert store.env_path == env_file

    def test_refresh_success(self, env_file):
        """Test a successful refresh swaps tokens in memory and on disk."""
        http = Mock()
        http.post.return_value = _token_response()
        store = CredentialStore(_credentials(), env_path=env_file, http=http)

        assert store.refresh() == "new-access"

        assert store.access_token == "new-access"
        assert store.refresh_token == "new-refresh"
        assert store.expires_at == 1700000000
        values = read_env_file(env_file)
        assert values["STRAVA_ACCESS_TOKEN"] == "new-access"
        assert values["STRAVA_REFRESH_TOKEN"] == "new-refresh"
        assert values["OTHER_SETTING"] == "keep me"

    def test_refresh_request_payload(self, env_file):
        """Test the token exchange is a form POST with the refresh grant."""
        http = Mock()
        http.post.return_value = _token_response()
        store = CredentialStore(
            _credentials(), env_path=env_file, token_url="https://example.test/token", timeout=5, http=http
        )

        store.refresh()

        http.post.assert_called_once_with(
            "https://example.test/token",
            data={
                "client_id": "12345",
                "client_secret": "secret",
                "refresh_token": "old-refresh",
                "grant_type": "refresh_token",
            },
            timeout=5,
        )

    @pytest.mark.parametrize("field", ["client_id", "client_secret", "refresh_token"])
    def test_missing_credentials_make_no_request(self, env_file, field):
        """Test missing refresh inputs fail before any network call."""
        http = Mock()
        store = CredentialStore(_credentials(**{field: ""}), env_path=env_file, http=http)

        with pytest.raises(CredentialError) as exc_info:
            store.refresh()

        assert f"STRAVA_{field.upper()}" in str(exc_info.value)
        http.post.assert_not_called()
        assert store.access_token == "old-access"

    def test_rejected_refresh(self, env_file):
        """Test a non-200 token response raises and keeps the old tokens."""
        http = Mock()
        http.post.return_value = _token_response(status_code=400, text="Bad Request")
        store = CredentialStore(_credentials(), env_path=env_file, http=http)

        with pytest.raises(AuthenticationError) as exc_info:
            store.refresh()

        assert "400" in str(exc_info.value)
        assert store.access_token == "old-access"
        assert read_env_file(env_file)["STRAVA_ACCESS_TOKEN"] == "old-access"

    def test_network_failure(self, env_file):
        http = Mock()
        http.post.side_effect = requests.ConnectionError("no route")
        store = CredentialStore(_credentials(), env_path=env_file, http=http)

        with pytest.raises(AuthenticationError):
            store.refresh()

    @pytest.mark.parametrize(
        "body",
        [{"access_token": "only-access"}, {"refresh_token": "only-refresh"}, {}],
    )
    def test_response_missing_tokens(self, env_file, body):
        """Test a response without both tokens is an authentication failure."""
        http = Mock()
        http.post.return_value = _token_response(body=body)
        store = CredentialStore(_credentials(), env_path=env_file, http=http)

        with pytest.raises(AuthenticationError, match="missing required tokens"):
            store.refresh()

        assert store.refresh_token == "old-refresh"

    def test_invalid_json_response(self, env_file):
        http = Mock()
        response = _token_response()
        response.json.side_effect = ValueError("not json")
        http.post.return_value = response
        store = CredentialStore(_credentials(), env_path=env_file, http=http)

        with pytest.raises(AuthenticationError):
            store.refresh()

    def test_write_failure_keeps_new_tokens(self, env_file, caplog):
        """Test a failed .env write is logged but the refresh still succeeds."""
        http = Mock()
        http.post.return_value = _token_response()
        store = CredentialStore(_credentials(), env_path=env_file, http=http)

        with patch(
            "stravamcp.credentials.update_env_file", side_effect=PermissionError("read-only")
        ):
            assert store.refresh() == "new-access"

        assert store.access_token == "new-access"
        assert "Failed to update tokens" in caplog.text
        assert read_env_file(env_file)["STRAVA_ACCESS_TOKEN"] == "old-access"

    def test_persist_without_env_path(self):
        store = CredentialStore(_credentials(), env_path=None, http=Mock())

        assert store.persist() is False


class TestCreateEnvFile:
    """Tests for create_env_file function."""

    def test_create_env_file_new(self, tmp_path, monkeypatch):
        """Test creating new .env file."""
        monkeypatch.chdir(tmp_path)

        inputs = [
            "12345",  # client id
            "access-token",  # access token
            "n",  # Don't create .gitignore (not exist yet)
        ]

        with patch("builtins.input", side_effect=inputs):
            with patch("getpass.getpass", side_effect=["client-secret", "refresh-token"]):
                create_env_file()

        env_path = tmp_path / ".env"
        assert env_path.exists()

        values = read_env_file(env_path)
        assert values["STRAVA_CLIENT_ID"] == "12345"
        assert values["STRAVA_CLIENT_SECRET"] == "client-secret"
        assert values["STRAVA_REFRESH_TOKEN"] == "refresh-token"
        assert values["STRAVA_ACCESS_TOKEN"] == "access-token"

        # Check permissions (Unix only)
        if sys.platform != "win32":
            assert oct(env_path.stat().st_mode)[-3:] == "600"

    def test_create_env_file_without_access_token(self, tmp_path, monkeypatch):
        """Test the access token may be left empty."""
        monkeypatch.chdir(tmp_path)

        with patch("builtins.input", side_effect=["12345", "", "n"]):
            with patch("getpass.getpass", side_effect=["client-secret", "refresh-token"]):
                create_env_file()

        content = (tmp_path / ".env").read_text()
        assert "STRAVA_ACCESS_TOKEN=\n" in content

    def test_create_env_file_overwrite_yes(self, tmp_path, monkeypatch):
        """Test overwriting existing .env file."""
        monkeypatch.chdir(tmp_path)

        # Create existing .env
        env_path = tmp_path / ".env"
        env_path.write_text("OLD_CONTENT=true")

        inputs = [
            "y",  # Overwrite confirmation
            "67890",
            "",
            "n",  # Don't create .gitignore
        ]

        with patch("builtins.input", side_effect=inputs):
            with patch("getpass.getpass", side_effect=["s", "r"]):
                create_env_file()

        content = env_path.read_text()
        assert "OLD_CONTENT" not in content
        assert "STRAVA_CLIENT_ID=67890" in content

    def test_create_env_file_overwrite_no(self, tmp_path, monkeypatch):
        """Test canceling overwrite of existing .env file."""
        monkeypatch.chdir(tmp_path)

        # Create existing .env
        env_path = tmp_path / ".env"
        original_content = "OLD_CONTENT=true"
        env_path.write_text(original_content)

        with patch("builtins.input", return_value="n"):
            create_env_file()

        # Content should remain unchanged
        assert env_path.read_text() == original_content

    def test_create_env_file_with_existing_gitignore_containing_env(self, tmp_path, monkeypatch):
        """Test when .gitignore already contains .env."""
        monkeypatch.chdir(tmp_path)

        gitignore_path = tmp_path / ".gitignore"
        gitignore_path.write_text("*.pyc\n.env\n")

        with patch("builtins.input", side_effect=["12345", ""]):
            with patch("getpass.getpass", side_effect=["s", "r"]):
                create_env_file()

        # .gitignore should not be modified
        assert gitignore_path.read_text().count(".env") == 1

    def test_create_env_file_with_existing_gitignore_missing_env_add_yes(
        self, tmp_path, monkeypatch
    ):
        """Test adding .env to existing .gitignore when user says yes."""
        monkeypatch.chdir(tmp_path)

        gitignore_path = tmp_path / ".gitignore"
        gitignore_path.write_text("*.pyc\n")

        with patch("builtins.input", side_effect=["12345", "", "y"]):
            with patch("getpass.getpass", side_effect=["s", "r"]):
                create_env_file()

        gitignore_content = gitignore_path.read_text()
        assert "*.pyc" in gitignore_content
        assert ".env" in gitignore_content

    def test_create_env_file_no_gitignore_create_yes(self, tmp_path, monkeypatch):
        """Test creating new .gitignore when it doesn't exist."""
        monkeypatch.chdir(tmp_path)

        with patch("builtins.input", side_effect=["12345", "", "y"]):
            with patch("getpass.getpass", side_effect=["s", "r"]):
                create_env_file()

        gitignore_path = tmp_path / ".gitignore"
        assert gitignore_path.exists()
        assert ".env" in gitignore_path.read_text()

    def test_create_env_file_no_gitignore_create_no(self, tmp_path, monkeypatch):
        """Test not creating .gitignore when it doesn't exist and user says no."""
        monkeypatch.chdir(tmp_path)

        with patch("builtins.input", side_effect=["12345", "", "n"]):
            with patch("getpass.getpass", side_effect=["s", "r"]):
                create_env_file()

        assert not (tmp_path / ".gitignore").exists()
