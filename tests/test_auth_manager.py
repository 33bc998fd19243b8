"""Tests for jql_export.services.auth_manager."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from keyring.errors import PasswordDeleteError

from jql_export.services.auth_manager import KEYRING_SERVICE, AuthManager
from jql_export.services.config_manager import ConfigManager


def _make_config(tmp_path: Path) -> ConfigManager:
    """Isolated ConfigManager backed by *tmp_path*."""
    mgr = ConfigManager()
    mgr._dir = tmp_path
    mgr._path = tmp_path / "config.json"
    mgr.reset()
    return mgr


class TestProperties:
    """Property helpers should reflect config state."""

    def test_server_url(self, tmp_path: Path) -> None:
        cfg = _make_config(tmp_path)
        cfg.set("server_url", "https://jira.example.com")
        assert AuthManager(cfg).server_url == "https://jira.example.com"

    @patch("jql_export.services.auth_manager.keyring")
    def test_is_configured_false_without_token(
        self, mock_keyring: MagicMock, tmp_path: Path,
    ) -> None:
        mock_keyring.get_password.return_value = None
        cfg = _make_config(tmp_path)
        cfg.set("server_url", "https://jira.example.com")
        assert AuthManager(cfg).is_configured is False

    def test_is_configured_false_without_server(self, tmp_path: Path) -> None:
        assert AuthManager(_make_config(tmp_path)).is_configured is False


class TestTokens:
    """Tokens live in keyring, keyed by server URL."""

    @patch("jql_export.services.auth_manager.keyring")
    def test_login_stores_token_and_url(
        self, mock_keyring: MagicMock, tmp_path: Path,
    ) -> None:
        cfg = _make_config(tmp_path)
        AuthManager(cfg).login_token("https://jira.example.com/", "pat-123")

        mock_keyring.set_password.assert_called_once_with(
            KEYRING_SERVICE, "https://jira.example.com", "pat-123",
        )
        assert cfg.get("server_url") == "https://jira.example.com"

    @patch("jql_export.services.auth_manager.keyring")
    def test_get_token_uses_stored_url(
        self, mock_keyring: MagicMock, tmp_path: Path,
    ) -> None:
        mock_keyring.get_password.return_value = "pat-123"
        cfg = _make_config(tmp_path)
        cfg.set("server_url", "https://jira.example.com")
        assert AuthManager(cfg).get_token() == "pat-123"
        mock_keyring.get_password.assert_called_with(KEYRING_SERVICE, "https://jira.example.com")

    @patch("jql_export.services.auth_manager.keyring")
    def test_get_token_without_server(
        self, mock_keyring: MagicMock, tmp_path: Path,
    ) -> None:
        assert AuthManager(_make_config(tmp_path)).get_token() is None
        mock_keyring.get_password.assert_not_called()


class TestLogout:
    @patch("jql_export.services.auth_manager.keyring")
    def test_logout_clears_state(
        self, mock_keyring: MagicMock, tmp_path: Path,
    ) -> None:
        cfg = _make_config(tmp_path)
        cfg.set("server_url", "https://jira.example.com")
        AuthManager(cfg).logout()

        mock_keyring.delete_password.assert_called_once_with(
            KEYRING_SERVICE, "https://jira.example.com",
        )
        assert cfg.get("server_url") == ""

    @patch("jql_export.services.auth_manager.keyring")
    def test_logout_without_stored_token(
        self, mock_keyring: MagicMock, tmp_path: Path,
    ) -> None:
        mock_keyring.delete_password.side_effect = PasswordDeleteError("missing")
        cfg = _make_config(tmp_path)
        cfg.set("server_url", "https://jira.example.com")
        AuthManager(cfg).logout()
        assert cfg.get("server_url") == ""
