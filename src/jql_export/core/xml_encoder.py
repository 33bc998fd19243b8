"""RSS-style XML encoder modelled on JIRA's own issue XML view."""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any

from jql_export.core.data_models import IssueRecord, UserRef, VersionRef, iso_timestamp
from jql_export.core.errors import EncodingError

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
BUILD_VERSION = "1.0.0"
BUILD_NUMBER = "1"

# Characters XML 1.0 forbids even when escaped.
_ILLEGAL_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


class XmlEncoder:
    """Accumulate issue records into one ``<rss><channel>`` document."""

    extension = "xml"
    mime_type = "application/xml;charset=utf-8"

    def __init__(self, total: int, exported_at: datetime) -> None:
        self._root = ET.Element("rss", {
            "version": "2.0",
            "xmlns:jira": "http://www.atlassian.com/jira",
            "xmlns:dc": "http://purl.org/dc/elements/1.1/",
        })
        self._channel = ET.SubElement(self._root, "channel")
        _child(self._channel, "title", "JIRA Feature Extract")
        _child(self._channel, "link", "#")
        _child(self._channel, "description", f"Exported {total} issues")
        _child(self._channel, "language", "en-uk")
        build = ET.SubElement(self._channel, "build-info")
        _child(build, "version", BUILD_VERSION)
        _child(build, "build-number", BUILD_NUMBER)
        _child(build, "build-date", iso_timestamp(exported_at))
        self._count = 0

    def add(self, record: IssueRecord) -> None:
        """Append one ``<item>`` for *record*."""
        item = ET.SubElement(self._channel, "item", _attrs(id=record.id))
        _add_core(item, record)
        _add_sections(item, record)
        self._count += 1

    def finish(self) -> str:
        """Serialize the document with an XML declaration."""
        try:
            ET.indent(self._root, space="  ")
            body = ET.tostring(self._root, encoding="unicode")
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"Failed to build XML document: {exc}") from exc
        logger.debug("XML document built: %d item(s), %d chars", self._count, len(body))
        return f"{XML_DECLARATION}\n{body}\n"


# -- item building ------------------------------------------------------------


def _add_core(item: ET.Element, r: IssueRecord) -> None:
    _child(item, "title", r.summary)
    _child(item, "link", r.self_url)
    _child(item, "project-key", r.project.key)
    _child(item, "description", r.description)
    _child(item, "environment", r.environment)
    _child(item, "key", r.key)
    _child(item, "summary", r.summary)
    _child(item, "type", r.issue_type.name, id=r.issue_type.id, iconUrl=r.issue_type.icon_url)
    if r.priority:
        _child(item, "priority", r.priority.name, id=r.priority.id, iconUrl=r.priority.icon_url)
    _child(item, "status", r.status.name, id=r.status.id, description=r.status.description)
    if r.resolution:
        _child(item, "resolution", r.resolution.name, id=r.resolution.id)
    _user(item, "assignee", r.assignee)
    _user(item, "reporter", r.reporter)
    _child(item, "created", r.created)
    _child(item, "updated", r.updated)
    _child(item, "resolved", r.resolution_date)
    _versions(item, "version", r.versions)
    _versions(item, "fix-version", r.fix_versions)
    for component in r.components:
        _child(item, "component", component.name, id=component.id)
    labels = ET.Element("labels")
    for label in r.labels:
        _child(labels, "label", label)
    _append_if_filled(item, labels)
    _child(item, "due-date", r.due_date)


def _add_sections(item: ET.Element, r: IssueRecord) -> None:
    if r.comments is not None:
        group = ET.Element("comments", _attrs(total=r.comment_total))
        for c in r.comments:
            _child(group, "comment", c.body, id=c.id, author=c.author,
                   created=c.created, updated=c.updated)
        _append_if_filled(item, group)

    if r.attachments is not None:
        group = ET.Element("attachments", _attrs(total=len(r.attachments)))
        for a in r.attachments:
            _child(group, "attachment", a.content, id=a.id, name=a.filename,
                   size=a.size, author=a.author, created=a.created)
        _append_if_filled(item, group)

    if r.worklogs is not None:
        group = ET.Element("worklogs", _attrs(total=r.worklog_total))
        for w in r.worklogs:
            _child(group, "worklog", w.comment, id=w.id, author=w.author,
                   created=w.created, started=w.started, timeSpent=w.time_spent,
                   timeSpentSeconds=w.time_spent_seconds)
        _append_if_filled(item, group)

    if r.subtasks is not None:
        group = ET.Element("subtasks", _attrs(total=len(r.subtasks)))
        for s in r.subtasks:
            _child(group, "subtask", s.summary, id=s.id, key=s.key,
                   type=s.issue_type, status=s.status)
        _append_if_filled(item, group)

    if r.parent:
        _child(item, "parent", r.parent.summary, id=r.parent.id, key=r.parent.key)

    if r.issue_links is not None:
        group = ET.Element("issuelinks", _attrs(total=len(r.issue_links)))
        for link in r.issue_links:
            label = link.outward if link.direction == "outward" else link.inward
            node = ET.SubElement(group, "issuelink", _attrs(
                id=link.id, type=link.type_name, direction=link.direction, linktype=label,
            ))
            if link.linked_issue:
                _child(node, "issuekey", link.linked_issue.key)
                _child(node, "summary", link.linked_issue.summary)
        _append_if_filled(item, group)

    if r.custom_fields:
        group = ET.Element("customfields")
        for key, value in r.custom_fields:
            field_node = ET.Element("customfield", {"id": key})
            values = ET.Element("customfieldvalues")
            for v in value if isinstance(value, list) else [value]:
                _child(values, "customfieldvalue", v)
            if _append_if_filled(field_node, values):
                group.append(field_node)
        _append_if_filled(item, group)


def _user(parent: ET.Element, tag: str, user: UserRef | None) -> None:
    if user:
        _child(parent, tag, user.display_name, username=user.username)


def _versions(parent: ET.Element, tag: str, versions: list[VersionRef]) -> None:
    for v in versions:
        _child(parent, tag, v.name, id=v.id)


# -- low-level ----------------------------------------------------------------


def _child(parent: ET.Element, tag: str, text: Any = None, **attrs: Any) -> ET.Element | None:
    """Add ``<tag>`` under *parent* unless it would carry neither text nor attributes."""
    rendered = _text(text)
    attributes = _attrs(**attrs)
    if not rendered and not attributes:
        return None
    node = ET.SubElement(parent, tag, attributes)
    if rendered:
        node.text = rendered
    return node


def _append_if_filled(parent: ET.Element, node: ET.Element) -> bool:
    if len(node) == 0:
        return False
    parent.append(node)
    return True


def _attrs(**values: Any) -> dict[str, str]:
    rendered = {k: _text(v) for k, v in values.items()}
    return {k: v for k, v in rendered.items() if v}


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return _ILLEGAL_XML_CHARS.sub("", str(value))
