"""Project raw JIRA issues into format-agnostic :class:`IssueRecord` values."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from jql_export.core.data_models import (
    AttachmentRecord,
    CommentRecord,
    ComponentRef,
    ExportConfig,
    IssueRecord,
    IssueTypeRef,
    LinkedIssueRef,
    LinkRecord,
    NamedRef,
    ParentRecord,
    ProjectRef,
    StatusRef,
    SubtaskRecord,
    UserRef,
    VersionRef,
    WorklogRecord,
)
from jql_export.core.errors import ProjectionError

logger = logging.getLogger(__name__)

CUSTOM_FIELD_PREFIX = "customfield_"
_REDUCE_KEYS = ("value", "name", "displayName")


def project_issue(issue: Mapping[str, Any], config: ExportConfig) -> IssueRecord:
    """Build the intermediate record for *issue* honouring *config*'s flags.

    Raises:
        ProjectionError: If *issue* is not a JIRA issue mapping or one of its
            custom fields cannot be normalized.
    """
    if not isinstance(issue, Mapping):
        raise ProjectionError(f"expected an issue mapping, got {type(issue).__name__}")
    key = issue.get("key")
    if not key:
        raise ProjectionError("issue has no key")
    fields = issue.get("fields")
    if not isinstance(fields, Mapping):
        raise ProjectionError("issue has no fields object", str(key))

    issue_type = _obj(fields.get("issuetype"))
    project = _obj(fields.get("project"))
    status = _obj(fields.get("status"))

    record = IssueRecord(
        id=_str(issue.get("id")),
        key=str(key),
        self_url=issue.get("self"),
        summary=fields.get("summary"),
        description=fields.get("description"),
        environment=fields.get("environment"),
        issue_type=IssueTypeRef(
            id=_str(issue_type.get("id")),
            name=issue_type.get("name"),
            subtask=bool(issue_type.get("subtask", False)),
            icon_url=issue_type.get("iconUrl"),
        ),
        project=ProjectRef(
            id=_str(project.get("id")),
            key=project.get("key"),
            name=project.get("name"),
        ),
        status=StatusRef(
            id=_str(status.get("id")),
            name=status.get("name"),
            category=_obj(status.get("statusCategory")).get("name"),
            description=status.get("description"),
        ),
        priority=_named(fields.get("priority")),
        resolution=_named(fields.get("resolution")),
        assignee=_user(fields.get("assignee")),
        reporter=_user(fields.get("reporter")),
        created=fields.get("created"),
        updated=fields.get("updated"),
        resolution_date=fields.get("resolutiondate"),
        due_date=fields.get("duedate"),
        labels=[str(label) for label in _list(fields.get("labels"))],
        components=[
            ComponentRef(
                id=_str(c.get("id")), name=c.get("name"), description=c.get("description"),
            )
            for c in _objs(fields.get("components"))
        ],
        fix_versions=_versions(fields.get("fixVersions")),
        versions=_versions(fields.get("versions")),
    )

    if config.include_comments:
        comment = _obj(fields.get("comment"))
        record.comments = [
            CommentRecord(
                id=_str(c.get("id")),
                author=_display_name(c.get("author")),
                body=c.get("body"),
                created=c.get("created"),
                updated=c.get("updated"),
            )
            for c in _objs(comment.get("comments"))
        ]
        record.comment_total = _total(comment, len(record.comments))

    if config.include_attachments:
        record.attachments = [
            AttachmentRecord(
                id=_str(a.get("id")),
                filename=a.get("filename"),
                size=a.get("size"),
                mime_type=a.get("mimeType"),
                author=_display_name(a.get("author")),
                created=a.get("created"),
                content=a.get("content"),
            )
            for a in _objs(fields.get("attachment"))
        ]

    if config.include_worklog:
        worklog = _obj(fields.get("worklog"))
        record.worklogs = [
            WorklogRecord(
                id=_str(w.get("id")),
                author=_display_name(w.get("author")),
                time_spent=w.get("timeSpent"),
                time_spent_seconds=int(w.get("timeSpentSeconds") or 0),
                started=w.get("started"),
                created=w.get("created"),
                comment=w.get("comment"),
            )
            for w in _objs(worklog.get("worklogs"))
        ]
        record.worklog_total = _total(worklog, len(record.worklogs))

    if config.include_subtasks:
        record.subtasks = []
        for sub in _objs(fields.get("subtasks")):
            sub_fields = _obj(sub.get("fields"))
            record.subtasks.append(
                SubtaskRecord(
                    id=_str(sub.get("id")),
                    key=sub.get("key"),
                    summary=sub_fields.get("summary"),
                    status=_obj(sub_fields.get("status")).get("name"),
                    issue_type=_obj(sub_fields.get("issuetype")).get("name"),
                )
            )

    if config.include_links:
        record.issue_links = [_link(link) for link in _objs(fields.get("issuelinks"))]

    parent = fields.get("parent")
    if isinstance(parent, Mapping):
        record.parent = ParentRecord(
            id=_str(parent.get("id")),
            key=parent.get("key"),
            summary=_obj(parent.get("fields")).get("summary"),
        )

    record.custom_fields = _custom_fields(fields, config.include_fields, record.key)
    return record


def normalize_custom_field(value: Any) -> Any:
    """Reduce a custom field value to something every encoder can render.

    Lists are mapped element-wise.  Objects are reduced to their ``value``,
    ``name`` or ``displayName`` (first one present; inside a list, first one
    non-empty), else to compact JSON text.  Scalars are returned unchanged.

    Raises:
        ProjectionError: If an unrecognized object cannot be JSON-encoded.
    """
    if isinstance(value, (list, tuple)):
        return [
            _to_json(item) if isinstance(item, (list, tuple)) else _reduce(item, truthy=True)
            for item in value
        ]
    return _reduce(value)


# -- helpers ------------------------------------------------------------------


def _reduce(value: Any, truthy: bool = False) -> Any:
    if isinstance(value, Mapping):
        for attr in _REDUCE_KEYS:
            candidate = value.get(attr)
            if (candidate if truthy else candidate is not None):
                return candidate
        return _to_json(value)
    return value


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ProjectionError(f"cannot normalize custom field value: {exc}") from exc


def _custom_fields(
    fields: Mapping[str, Any], include: tuple[str, ...], issue_key: str,
) -> tuple[tuple[str, Any], ...]:
    pairs: list[tuple[str, Any]] = []
    for field_key in include:
        if not field_key.startswith(CUSTOM_FIELD_PREFIX):
            continue
        value = fields.get(field_key)
        if value is None:
            continue
        try:
            pairs.append((field_key, normalize_custom_field(value)))
        except ProjectionError as exc:
            raise ProjectionError(f"{field_key}: {exc}", issue_key) from exc
    if pairs:
        logger.debug("Projected %d custom field(s) for %s", len(pairs), issue_key)
    return tuple(pairs)


def _link(link: Mapping[str, Any]) -> LinkRecord:
    link_type = _obj(link.get("type"))
    outward = link.get("outwardIssue")
    target = outward or link.get("inwardIssue")
    linked = None
    if isinstance(target, Mapping):
        linked = LinkedIssueRef(
            key=target.get("key"),
            summary=_obj(target.get("fields")).get("summary"),
        )
    return LinkRecord(
        id=_str(link.get("id")),
        type_name=link_type.get("name"),
        inward=link_type.get("inward"),
        outward=link_type.get("outward"),
        linked_issue=linked,
        direction="outward" if outward else "inward",
    )


def _versions(value: Any) -> list[VersionRef]:
    return [
        VersionRef(id=_str(v.get("id")), name=v.get("name"), release_date=v.get("releaseDate"))
        for v in _objs(value)
    ]


def _named(value: Any) -> NamedRef | None:
    if not isinstance(value, Mapping):
        return None
    return NamedRef(id=_str(value.get("id")), name=value.get("name"), icon_url=value.get("iconUrl"))


def _user(value: Any) -> UserRef | None:
    if not isinstance(value, Mapping):
        return None
    return UserRef(
        display_name=value.get("displayName"),
        email_address=value.get("emailAddress"),
        username=value.get("name") or value.get("key"),
    )


def _display_name(value: Any) -> str | None:
    if isinstance(value, Mapping):
        return value.get("displayName")
    return None


def _total(section: Mapping[str, Any], fallback: int) -> int:
    total = section.get("total")
    return int(total) if total is not None else fallback


def _obj(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _objs(value: Any) -> list[Mapping[str, Any]]:
    return [item for item in _list(value) if isinstance(item, Mapping)]


def _str(value: Any) -> str | None:
    return None if value is None else str(value)
