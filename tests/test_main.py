"""Tests for the ``jql-export`` command line."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from factories import build_issue

from jql_export.__main__ import build_parser, main, resolve_export_config
from jql_export.core.data_models import ExportConfig
from jql_export.core.errors import QueryError


class TestResolveExportConfig:
    def test_defaults_kept_when_flags_absent(self) -> None:
        args = build_parser().parse_args(["--jql", "project = P"])
        defaults = ExportConfig(format="csv", include_worklog=True)
        assert resolve_export_config(args, defaults) == defaults

    def test_flags_override(self) -> None:
        args = build_parser().parse_args([
            "--jql", "x", "--format", "json", "--comments", "--no-subtasks",
            "--field", "customfield_1", "--field", "customfield_2",
        ])
        cfg = resolve_export_config(args, ExportConfig())
        assert cfg.format == "json"
        assert cfg.include_comments is True
        assert cfg.include_subtasks is False
        assert cfg.include_fields == ("customfield_1", "customfield_2")


class TestMain:
    @patch("jql_export.__main__.AuthManager")
    @patch("jql_export.__main__.ConfigManager")
    @patch("jql_export.__main__.JiraClient")
    def test_writes_export(
        self,
        mock_client_cls: MagicMock,
        mock_config_cls: MagicMock,
        mock_auth_cls: MagicMock,
        tmp_path: Path,
    ) -> None:
        mock_config_cls.return_value.export_defaults.return_value = ExportConfig()
        mock_config_cls.return_value.get.return_value = 50
        client = mock_client_cls.return_value
        client.connect.return_value = True
        client.search_all.return_value = [build_issue("P-1"), build_issue("P-2")]

        code = main([
            "--jql", "project = P", "--server", "https://jira.example.com",
            "--token", "pat", "--format", "json", "--output-dir", str(tmp_path),
        ])

        assert code == 0
        (written,) = tmp_path.glob("jira-export-*.json")
        doc = json.loads(written.read_text(encoding="utf-8"))
        assert [i["key"] for i in doc["issues"]] == ["P-1", "P-2"]
        client.connect.assert_called_once_with("https://jira.example.com", "pat")
        mock_auth_cls.return_value.login_token.assert_not_called()

    @patch("jql_export.__main__.AuthManager")
    @patch("jql_export.__main__.ConfigManager")
    @patch("jql_export.__main__.JiraClient")
    def test_missing_credentials(
        self, mock_client_cls: MagicMock, mock_config_cls: MagicMock, mock_auth_cls: MagicMock,
    ) -> None:
        mock_auth_cls.return_value.server_url = ""
        assert main(["--jql", "project = P"]) == 1
        mock_client_cls.return_value.connect.assert_not_called()

    @patch("jql_export.__main__.AuthManager")
    @patch("jql_export.__main__.ConfigManager")
    @patch("jql_export.__main__.JiraClient")
    def test_query_failure(
        self, mock_client_cls: MagicMock, mock_config_cls: MagicMock, mock_auth_cls: MagicMock,
    ) -> None:
        mock_config_cls.return_value.export_defaults.return_value = ExportConfig()
        mock_config_cls.return_value.get.return_value = 50
        client = mock_client_cls.return_value
        client.connect.return_value = True
        client.search_all.side_effect = QueryError("bad jql", 400)
        code = main(["--jql", "nope", "--server", "https://j", "--token", "t"])
        assert code == 1
