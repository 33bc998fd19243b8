"""JIRA Server REST client using the ``jira`` library."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from jira import JIRA, JIRAError

from jql_export.core.data_models import ProgressStage
from jql_export.core.errors import QueryError
from jql_export.core.progress import ProgressCallback, ProgressTracker
from jql_export.services.auth_manager import AuthManager

logger = logging.getLogger(__name__)

_MAX_RESULTS = 100
_MAX_RETRIES = 4
_BACKOFF_BASE = 1.0  # seconds

_STATUS_MESSAGES = {
    401: "Authentication failed. Please check your credentials.",
    403: "Access denied. You do not have permission to perform this operation.",
    404: "Resource not found. Please check the server URL.",
}


class JiraClient:
    """Thin wrapper around ``jira.JIRA`` returning raw REST v2 payloads."""

    def __init__(
        self,
        auth: AuthManager | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._auth = auth
        self._clock = clock
        self._jira: JIRA | None = None

    # -- connection -----------------------------------------------------------

    def connect(self, server_url: str, token: str) -> bool:
        """Connect with a personal access token (bearer auth).

        A lightweight ``myself()`` call validates the session.
        Returns True on success.
        """
        server_url = server_url.rstrip("/")
        logger.debug("Connecting to Jira at %s", server_url)
        try:
            jira = JIRA(server=server_url, token_auth=token)
            jira.myself()
        except JIRAError as exc:
            logger.error("Failed to connect to Jira: %s", _error_message(exc))
            self._jira = None
            return False
        except Exception as exc:
            logger.error("Failed to connect to Jira: %s", exc)
            self._jira = None
            return False
        self._jira = jira
        logger.info("Connected to Jira at %s", server_url)
        return True

    def connect_from_config(self) -> bool:
        """Connect using the server URL and token stored by :class:`AuthManager`."""
        if self._auth is None or not self._auth.server_url:
            logger.debug("No server configured; skipping auto-connect")
            return False
        token = self._auth.get_token()
        if not token:
            logger.warning("Cannot connect: no token in keyring for %s", self._auth.server_url)
            return False
        return self.connect(self._auth.server_url, token)

    @property
    def connected(self) -> bool:
        """Return True when the Jira session is active."""
        return self._jira is not None

    # -- metadata -------------------------------------------------------------

    def get_myself(self) -> dict[str, str] | None:
        """Fetch the authenticated user's display name and e-mail."""
        if not self._jira:
            return None
        try:
            me = self._jira.myself()
        except JIRAError as exc:
            logger.error("myself() failed: %s", _error_message(exc))
            return None
        name = me.get("displayName", "")
        logger.info("Authenticated as %s", name)
        return {
            "displayName": name,
            "name": me.get("name", ""),
            "emailAddress": me.get("emailAddress", ""),
        }

    def get_server_info(self) -> dict[str, Any] | None:
        """Return the ``/serverInfo`` payload (version, build number, title)."""
        if not self._jira:
            return None
        try:
            return self._jira.server_info()
        except JIRAError as exc:
            logger.error("serverInfo failed: %s", _error_message(exc))
            return None

    def fetch_fields(self) -> list[dict[str, Any]]:
        """Return all Jira fields (for picking custom fields to export)."""
        if not self._jira:
            return []
        logger.debug("Fetching Jira fields")
        try:
            result = [
                {"id": f["id"], "name": f["name"], "custom": f.get("custom", False)}
                for f in self._jira.fields()
            ]
        except JIRAError as exc:
            logger.error("Failed to fetch fields: %s", _error_message(exc))
            return []
        logger.info("Fetched %d Jira fields", len(result))
        return result

    # -- search ---------------------------------------------------------------

    def search(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = 50,
        fields: list[str] | None = None,
        expand: list[str] | None = None,
    ) -> dict[str, Any]:
        """Run one page of a JQL search and return the raw response.

        Raises:
            QueryError: If not connected or the request fails.
        """
        if not self._jira:
            raise QueryError("Not connected to Jira")
        kwargs: dict[str, Any] = {
            "startAt": start_at,
            "maxResults": max_results,
            "json_result": True,
        }
        if fields:
            kwargs["fields"] = ",".join(fields)
        if expand:
            kwargs["expand"] = ",".join(expand)

        for attempt in range(_MAX_RETRIES):
            try:
                return self._jira.search_issues(jql, **kwargs)
            except JIRAError as exc:
                if exc.status_code == 429 and attempt < _MAX_RETRIES - 1:
                    delay = _BACKOFF_BASE * (2**attempt)
                    logger.warning("Rate limited, retrying in %.1fs", delay)
                    time.sleep(delay)
                    continue
                message = _error_message(exc)
                logger.error("Search failed (%s): %s", exc.status_code, message)
                raise QueryError(message, exc.status_code or 0, exc.text) from exc

        raise QueryError("Search failed after retries", 429)

    def search_all(
        self,
        jql: str,
        batch_size: int = _MAX_RESULTS,
        fields: list[str] | None = None,
        expand: list[str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every issue matching *jql*, page by page.

        Emits a ``fetching`` progress event after each page.
        """
        logger.info("Searching: %s", jql)
        issues: list[dict[str, Any]] = []
        tracker = ProgressTracker(0, on_progress, clock=self._clock)
        start = 0

        while True:
            page = self.search(jql, start, batch_size, fields, expand)
            total = int(page.get("total", 0))
            batch = page.get("issues", []) or []
            issues.extend(batch)
            tracker.total = total
            tracker.emit(
                ProgressStage.FETCHING,
                len(issues),
                f"Fetched {len(issues)} of {total} issues",
                with_eta=True,
            )
            start += batch_size
            if not batch or start >= total:
                break

        logger.info("Fetched %d issue(s)", len(issues))
        return issues

    def get_issue_count(self, jql: str) -> int:
        """Return the number of issues matching *jql* without fetching them."""
        return int(self.search(jql, 0, 0, ["id"]).get("total", 0))


def _error_message(exc: JIRAError) -> str:
    """Map a failed request to a human-readable message."""
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            messages = data.get("errorMessages")
            if isinstance(messages, list) and messages:
                return "; ".join(str(m) for m in messages)
            if data.get("message"):
                return str(data["message"])
    if exc.status_code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[exc.status_code]
    return exc.text or "An unexpected error occurred"
