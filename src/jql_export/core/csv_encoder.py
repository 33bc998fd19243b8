"""CSV encoder: one flat, fully quoted row per issue."""

from __future__ import annotations

import csv
import io
import logging
import math
from datetime import datetime
from typing import Any

from jql_export.core.data_models import IssueRecord
from jql_export.core.errors import EncodingError

logger = logging.getLogger(__name__)

CORE_COLUMNS = (
    "Issue ID",
    "Issue Key",
    "Summary",
    "Description",
    "Issue Type",
    "Project Key",
    "Project Name",
    "Status",
    "Priority",
    "Assignee",
    "Reporter",
    "Created",
    "Updated",
    "Resolution Date",
    "Due Date",
    "Labels",
    "Components",
    "Fix Versions",
    "Versions",
)

# Emitted in this order, each only when at least one row carries it
OPTIONAL_COLUMNS = (
    "Parent Key",
    "Parent Summary",
    "Subtasks Count",
    "Subtasks",
    "Comments Count",
    "Attachments Count",
    "Worklog Count",
    "Total Time Spent (seconds)",
    "Total Time Spent (hours)",
)

_JOIN = ", "


class CsvEncoder:
    """Accumulate issue records into CSV rows sharing one header."""

    extension = "csv"
    mime_type = "text/csv;charset=utf-8"

    def __init__(self, total: int, exported_at: datetime) -> None:
        self._rows: list[dict[str, str]] = []
        self._custom_columns: list[str] = []

    def add(self, record: IssueRecord) -> None:
        row = record_to_row(record)
        for key, _ in record.custom_fields:
            if key not in self._custom_columns:
                self._custom_columns.append(key)
        self._rows.append(row)

    def columns(self) -> list[str]:
        """Return the header for the rows added so far."""
        present = set()
        for row in self._rows:
            present.update(row)
        optional = [c for c in OPTIONAL_COLUMNS if c in present]
        return [*CORE_COLUMNS, *optional, *self._custom_columns]

    def finish(self) -> str:
        buf = io.StringIO()
        try:
            writer = csv.DictWriter(
                buf, fieldnames=self.columns(), restval="", quoting=csv.QUOTE_ALL,
            )
            writer.writeheader()
            writer.writerows(self._rows)
        except (csv.Error, ValueError) as exc:
            raise EncodingError(f"Failed to build CSV document: {exc}") from exc
        logger.debug("CSV document built: %d row(s)", len(self._rows))
        return buf.getvalue()


def record_to_row(r: IssueRecord) -> dict[str, str]:
    """Flatten *r* into a column-name to cell-text mapping."""
    row = {
        "Issue ID": _cell(r.id),
        "Issue Key": r.key,
        "Summary": _cell(r.summary),
        "Description": _cell(r.description),
        "Issue Type": _cell(r.issue_type.name),
        "Project Key": _cell(r.project.key),
        "Project Name": _cell(r.project.name),
        "Status": _cell(r.status.name),
        "Priority": _cell(r.priority.name if r.priority else None),
        "Assignee": _cell(r.assignee.display_name if r.assignee else None),
        "Reporter": _cell(r.reporter.display_name if r.reporter else None),
        "Created": _cell(r.created),
        "Updated": _cell(r.updated),
        "Resolution Date": _cell(r.resolution_date),
        "Due Date": _cell(r.due_date),
        "Labels": _join(r.labels),
        "Components": _join(c.name for c in r.components),
        "Fix Versions": _join(v.name for v in r.fix_versions),
        "Versions": _join(v.name for v in r.versions),
    }

    if r.parent:
        row["Parent Key"] = _cell(r.parent.key)
        row["Parent Summary"] = _cell(r.parent.summary)

    if r.subtasks is not None:
        row["Subtasks Count"] = str(len(r.subtasks))
        row["Subtasks"] = _join(s.key for s in r.subtasks)

    if r.comments is not None:
        row["Comments Count"] = str(r.comment_total)

    if r.attachments is not None:
        row["Attachments Count"] = str(len(r.attachments))

    if r.worklogs is not None:
        seconds = sum(w.time_spent_seconds for w in r.worklogs)
        row["Worklog Count"] = str(r.worklog_total)
        row["Total Time Spent (seconds)"] = str(seconds)
        row["Total Time Spent (hours)"] = _number(_round2(seconds / 3600))

    for key, value in r.custom_fields:
        row[key] = _join(value) if isinstance(value, list) else _cell(value)

    return row


def _round2(value: float) -> float:
    """Round half away from zero to two decimals for non-negative values."""
    return math.floor(value * 100 + 0.5) / 100


def _number(value: float) -> str:
    return str(int(value)) if value == int(value) else str(value)


def _join(values: Any) -> str:
    return _JOIN.join(_cell(v) for v in values if v is not None)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
