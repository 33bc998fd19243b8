"""JSON encoder: a metadata block plus one structured object per issue."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from jql_export.core.data_models import IssueRecord, NamedRef, UserRef, VersionRef, iso_timestamp
from jql_export.core.errors import EncodingError

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0.0"


class JsonEncoder:
    """Accumulate issue records into a pretty-printed JSON document."""

    extension = "json"
    mime_type = "application/json;charset=utf-8"

    def __init__(self, total: int, exported_at: datetime) -> None:
        self._metadata = {
            "exportDate": iso_timestamp(exported_at),
            "totalIssues": total,
            "format": "json",
            "version": FORMAT_VERSION,
        }
        self._issues: list[dict[str, Any]] = []

    def add(self, record: IssueRecord) -> None:
        self._issues.append(record_to_dict(record))

    def finish(self) -> str:
        document = {"metadata": self._metadata, "issues": self._issues}
        try:
            text = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"Failed to build JSON document: {exc}") from exc
        logger.debug("JSON document built: %d issue(s), %d chars", len(self._issues), len(text))
        return text


def record_to_dict(r: IssueRecord) -> dict[str, Any]:
    """Render *r* with the camelCase keys of the JSON export."""
    out: dict[str, Any] = {
        "id": r.id,
        "key": r.key,
        "self": r.self_url,
        "summary": r.summary,
        "description": r.description,
        "issueType": {
            "id": r.issue_type.id,
            "name": r.issue_type.name,
            "subtask": r.issue_type.subtask,
        },
        "project": {"id": r.project.id, "key": r.project.key, "name": r.project.name},
        "status": {"id": r.status.id, "name": r.status.name, "category": r.status.category},
        "priority": _named(r.priority),
        "resolution": _named(r.resolution),
        "assignee": _user(r.assignee),
        "reporter": _user(r.reporter),
        "created": r.created,
        "updated": r.updated,
        "resolutionDate": r.resolution_date,
        "dueDate": r.due_date,
        "labels": list(r.labels),
        "components": [
            {"id": c.id, "name": c.name, "description": c.description} for c in r.components
        ],
        "fixVersions": _versions(r.fix_versions),
        "versions": _versions(r.versions),
    }

    if r.comments is not None:
        out["comments"] = [
            {"id": c.id, "author": c.author, "body": c.body,
             "created": c.created, "updated": c.updated}
            for c in r.comments
        ]
    if r.attachments is not None:
        out["attachments"] = [
            {"id": a.id, "filename": a.filename, "size": a.size,
             "mimeType": a.mime_type, "author": a.author, "created": a.created}
            for a in r.attachments
        ]
    if r.worklogs is not None:
        out["worklogs"] = [
            {"id": w.id, "author": w.author, "timeSpent": w.time_spent,
             "timeSpentSeconds": w.time_spent_seconds, "started": w.started,
             "comment": w.comment}
            for w in r.worklogs
        ]
    if r.subtasks is not None:
        out["subtasks"] = [
            {"id": s.id, "key": s.key, "summary": s.summary,
             "status": s.status, "issueType": s.issue_type}
            for s in r.subtasks
        ]
    if r.issue_links is not None:
        out["issueLinks"] = [
            {
                "id": link.id,
                "type": {"name": link.type_name, "inward": link.inward, "outward": link.outward},
                "linkedIssue": (
                    {"key": link.linked_issue.key, "summary": link.linked_issue.summary}
                    if link.linked_issue else None
                ),
                "direction": link.direction,
            }
            for link in r.issue_links
        ]
    if r.parent:
        out["parent"] = {"id": r.parent.id, "key": r.parent.key, "summary": r.parent.summary}
    if r.custom_fields:
        out["customFields"] = dict(r.custom_fields)
    return out


def _named(ref: NamedRef | None) -> dict[str, Any] | None:
    return {"id": ref.id, "name": ref.name} if ref else None


def _user(user: UserRef | None) -> dict[str, Any] | None:
    if not user:
        return None
    return {"displayName": user.display_name, "emailAddress": user.email_address}


def _versions(versions: list[VersionRef]) -> list[dict[str, Any]]:
    return [{"id": v.id, "name": v.name, "releaseDate": v.release_date} for v in versions]
