"""Keyring storage for JIRA Server personal access tokens."""

from __future__ import annotations

import logging

import keyring
from keyring.errors import PasswordDeleteError

from jql_export.services.config_manager import ConfigManager

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "jql-export"


class AuthManager:
    """Keep the server URL in config and its access token in the OS keyring.

    Tokens are stored per server URL so switching servers never leaks a
    token to the wrong host.
    """

    def __init__(self, config: ConfigManager) -> None:
        self._config = config

    @property
    def server_url(self) -> str:
        """Return the stored JIRA Server base URL."""
        return str(self._config.get("server_url", ""))

    @property
    def is_configured(self) -> bool:
        """Return True when a server URL and a token are both available."""
        return bool(self.server_url) and bool(self.get_token())

    def login_token(self, server_url: str, token: str) -> None:
        """Store *token* for *server_url* and remember the URL."""
        server_url = server_url.rstrip("/")
        keyring.set_password(KEYRING_SERVICE, server_url, token)
        self._config.set("server_url", server_url)
        logger.info("Token stored for %s", server_url)

    def get_token(self, server_url: str | None = None) -> str | None:
        """Retrieve the token for *server_url* (default: the stored URL)."""
        url = (server_url or self.server_url).rstrip("/")
        if not url:
            return None
        return keyring.get_password(KEYRING_SERVICE, url)

    def logout(self) -> None:
        """Forget the stored token and server URL."""
        url = self.server_url
        if url:
            try:
                keyring.delete_password(KEYRING_SERVICE, url)
            except PasswordDeleteError:
                logger.debug("No token stored for %s", url)
        self._config.set("server_url", "")
        logger.info("Logged out of %s", url or "<no server>")
