"""JSON-based settings persistence via platformdirs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from jql_export.core.data_models import SUPPORTED_FORMATS, ExportConfig

logger = logging.getLogger(__name__)

APP_NAME = "jql-export"
CONFIG_FILENAME = "config.json"

_DEFAULTS: dict[str, Any] = {
    "server_url": "",         # e.g. "https://jira.example.com"
    "max_results": 100,       # search page size
    "output_dir": "",         # empty = current directory
    "export_format": "xml",
    "include_fields": [],
    "include_comments": False,
    "include_attachments": False,
    "include_worklog": False,
    "include_subtasks": True,
    "include_links": False,
}


class ConfigManager:
    """Read/write JSON settings stored in the platform config directory."""

    def __init__(self) -> None:
        self._dir = Path(user_config_dir(APP_NAME, appauthor=False))
        self._path = self._dir / CONFIG_FILENAME
        self._data: dict[str, Any] = dict(_DEFAULTS)
        self._load()
        logger.debug("Config loaded from %s", self._path)

    # -- public API -----------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return a config value, falling back to *default*."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a config value and persist to disk when it changed."""
        if key in self._data and self._data[key] == value:
            return
        self._data[key] = value
        self._save()

    def update(self, values: dict[str, Any]) -> None:
        """Bulk-update config values and persist."""
        self._data.update(values)
        self._save()

    def reset(self) -> None:
        """Reset all values to defaults and persist."""
        logger.info("Resetting config to defaults")
        self._data = dict(_DEFAULTS)
        self._save()

    @property
    def data(self) -> dict[str, Any]:
        """Return a shallow copy of all configuration."""
        return dict(self._data)

    def export_defaults(self) -> ExportConfig:
        """Build the default :class:`ExportConfig` from stored settings."""
        return ExportConfig(
            format=str(self.get("export_format", "xml")),
            include_fields=tuple(self.get("include_fields") or ()),
            include_comments=bool(self.get("include_comments")),
            include_attachments=bool(self.get("include_attachments")),
            include_worklog=bool(self.get("include_worklog")),
            include_subtasks=bool(self.get("include_subtasks")),
            include_links=bool(self.get("include_links")),
        )

    # -- internals ------------------------------------------------------------

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            stored = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to load config from %s: %s", self._path, exc)
            return
        if not isinstance(stored, dict):
            logger.warning("Ignoring config in %s: top level is not an object", self._path)
            return
        for key, value in stored.items():
            if _acceptable(key, value):
                self._data[key] = value
            else:
                logger.warning("Ignoring invalid config value %s=%r", key, value)

    def _save(self) -> None:
        # Replace atomically.
        scratch = self._path.with_name(self._path.name + ".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            scratch.write_text(json.dumps(self._data, indent=2, default=str), encoding="utf-8")
            scratch.replace(self._path)
        except OSError as exc:
            logger.warning("Failed to save config to %s: %s", self._path, exc)


def _acceptable(key: str, value: Any) -> bool:
    """Known keys must keep their default's type; unknown keys pass through."""
    if key not in _DEFAULTS:
        return True
    expected = type(_DEFAULTS[key])
    if expected is int and isinstance(value, bool):
        return False
    if not isinstance(value, expected):
        return False
    if key == "export_format":
        return value in SUPPORTED_FORMATS
    if key == "include_fields":
        return all(isinstance(item, str) for item in value)
    return True
