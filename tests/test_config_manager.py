"""Tests for jql_export.services.config_manager."""

from __future__ import annotations

import json
from pathlib import Path

from jql_export.core.data_models import ExportConfig
from jql_export.services.config_manager import ConfigManager


def _make_manager(tmp_path: Path) -> ConfigManager:
    """Create a ConfigManager pointing at *tmp_path* for isolation."""
    mgr = ConfigManager()
    mgr._dir = tmp_path
    mgr._path = tmp_path / "config.json"
    mgr.reset()
    return mgr


class TestDefaults:
    """Config should ship with sensible defaults."""

    def test_server_url_empty(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        assert mgr.get("server_url") == ""

    def test_page_size(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        assert mgr.get("max_results") == 100

    def test_missing_key_returns_default(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        assert mgr.get("nonexistent", "fallback") == "fallback"

    def test_export_defaults(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        assert mgr.export_defaults() == ExportConfig()


class TestSetAndGet:
    """Setting values should persist and be retrievable."""

    def test_set_single(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        mgr.set("export_format", "csv")
        assert mgr.get("export_format") == "csv"

    def test_update_bulk(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        mgr.update({"server_url": "https://jira.example.com", "include_links": True})
        assert mgr.get("server_url") == "https://jira.example.com"
        assert mgr.get("include_links") is True

    def test_data_property_returns_copy(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        data = mgr.data
        data["export_format"] = "json"
        assert mgr.get("export_format") == "xml"  # stored value unchanged

    def test_export_defaults_follow_settings(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        mgr.update({
            "export_format": "json",
            "include_fields": ["customfield_10010"],
            "include_worklog": True,
            "include_subtasks": False,
        })
        cfg = mgr.export_defaults()
        assert cfg.format == "json"
        assert cfg.include_fields == ("customfield_10010",)
        assert cfg.include_worklog is True
        assert cfg.include_subtasks is False


class TestPersistence:
    """Config should persist to and load from disk."""

    def test_round_trip(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        mgr.set("export_format", "csv")
        mgr.set("server_url", "https://jira.example.com")

        # Create a fresh manager reading from the same file
        mgr2 = ConfigManager()
        mgr2._dir = tmp_path
        mgr2._path = tmp_path / "config.json"
        mgr2._data = {}
        mgr2._load()
        assert mgr2.get("export_format") == "csv"
        assert mgr2.get("server_url") == "https://jira.example.com"

    def test_reset_restores_defaults(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        mgr.set("export_format", "csv")
        mgr.reset()
        assert mgr.get("export_format") == "xml"

    def test_corrupt_file_does_not_crash(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.json"
        config_path.write_text("NOT JSON {{{", encoding="utf-8")

        mgr = ConfigManager()
        mgr._dir = tmp_path
        mgr._path = config_path
        mgr._data = {"export_format": "xml"}
        mgr._load()
        # Should not raise; data stays at prior state
        assert mgr.get("export_format") == "xml"

    def test_list_values_persist(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        mgr.set("include_fields", ["customfield_1", "customfield_2"])

        raw = json.loads((tmp_path / "config.json").read_text())
        assert raw["include_fields"] == ["customfield_1", "customfield_2"]

    def test_wrong_typed_values_ignored(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({
            "max_results": "lots",
            "include_comments": "yes",
            "export_format": "pdf",
            "include_fields": ["customfield_1", 7],
            "server_url": "https://jira.example.com",
        }), encoding="utf-8")

        mgr = ConfigManager()
        mgr._dir = tmp_path
        mgr._path = config_path
        mgr._load()
        assert mgr.get("max_results") == 100
        assert mgr.get("include_comments") is False
        assert mgr.get("export_format") == "xml"
        assert mgr.get("include_fields") == []
        assert mgr.get("server_url") == "https://jira.example.com"

    def test_boolean_page_size_rejected(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"max_results": True}), encoding="utf-8")
        mgr = ConfigManager()
        mgr._dir = tmp_path
        mgr._path = config_path
        mgr._load()
        assert mgr.get("max_results") == 100

    def test_save_leaves_no_scratch_file(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        mgr.set("export_format", "json")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["config.json"]

    def test_unchanged_value_not_rewritten(self, tmp_path: Path) -> None:
        mgr = _make_manager(tmp_path)
        (tmp_path / "config.json").unlink()
        mgr.set("export_format", "xml")
        assert not (tmp_path / "config.json").exists()
