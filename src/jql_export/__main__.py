"""Entry point for ``python -m jql_export``."""

from __future__ import annotations

import argparse
import logging
from typing import Any

from jql_export.core.data_models import SUPPORTED_FORMATS, ExportConfig, ProgressInfo
from jql_export.core.errors import JqlExportError
from jql_export.core.export_service import ExportService
from jql_export.core.jira_client import JiraClient
from jql_export.services.auth_manager import AuthManager
from jql_export.services.config_manager import ConfigManager

logger = logging.getLogger("jql_export")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jql-export",
        description="Run a JQL query against JIRA Server and export the issues.",
    )
    parser.add_argument("--jql", required=True, help="JQL query selecting the issues.")
    parser.add_argument("--server", help="JIRA Server base URL (default: stored URL).")
    parser.add_argument("--token", help="Personal access token (default: keyring).")
    parser.add_argument(
        "--save-token", action="store_true",
        help="Store --server and --token for later runs.",
    )
    parser.add_argument("--format", choices=SUPPORTED_FORMATS, help="Output format.")
    parser.add_argument("--comments", action="store_true", default=None, help="Include comments.")
    parser.add_argument(
        "--attachments", action="store_true", default=None, help="Include attachments.",
    )
    parser.add_argument("--worklog", action="store_true", default=None, help="Include worklogs.")
    parser.add_argument(
        "--no-subtasks", dest="subtasks", action="store_false", default=None,
        help="Leave out subtasks.",
    )
    parser.add_argument("--links", action="store_true", default=None, help="Include issue links.")
    parser.add_argument(
        "--field", dest="fields", action="append", default=None, metavar="KEY",
        help="Custom field key to include (repeatable), e.g. customfield_10010.",
    )
    parser.add_argument("--output-dir", help="Directory for the export file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def resolve_export_config(args: argparse.Namespace, defaults: ExportConfig) -> ExportConfig:
    """Overlay command-line choices on the stored export defaults."""

    def pick(value: Any, fallback: Any) -> Any:
        return fallback if value is None else value

    return ExportConfig(
        format=pick(args.format, defaults.format),
        include_fields=tuple(pick(args.fields, defaults.include_fields)),
        include_comments=pick(args.comments, defaults.include_comments),
        include_attachments=pick(args.attachments, defaults.include_attachments),
        include_worklog=pick(args.worklog, defaults.include_worklog),
        include_subtasks=pick(args.subtasks, defaults.include_subtasks),
        include_links=pick(args.links, defaults.include_links),
    )


def _log_progress(info: ProgressInfo) -> None:
    eta = f", ~{info.estimated_time_remaining}s left" if info.estimated_time_remaining else ""
    logger.info("[%s %3d%%] %s%s", info.stage.value, info.percentage, info.message, eta)


def main(argv: list[str] | None = None) -> int:
    """Fetch the issues selected by ``--jql`` and write the export file."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config = ConfigManager()
    auth = AuthManager(config)
    client = JiraClient(auth)

    server = args.server or auth.server_url
    token = args.token or (auth.get_token(server) if server else None)
    if not server or not token:
        logger.error("No server URL or token; pass --server and --token")
        return 1
    if not client.connect(server, token):
        return 1
    if args.save_token:
        auth.login_token(server, token)

    export_config = resolve_export_config(args, config.export_defaults())
    try:
        issues = client.search_all(
            args.jql,
            batch_size=int(config.get("max_results", 100)),
            on_progress=_log_progress,
        )
        artifact = ExportService().export(issues, export_config, _log_progress)
        path = artifact.save(args.output_dir or config.get("output_dir") or ".")
    except (JqlExportError, OSError) as exc:
        logger.error("Export failed: %s", exc)
        return 1

    logger.info("Wrote %d issue(s) to %s", len(issues), path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
