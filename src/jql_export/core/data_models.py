"""Data models for JQL Export."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

SUPPORTED_FORMATS = ("xml", "json", "csv")


class ProgressStage(str, Enum):
    """Stage reported with every progress event."""

    FETCHING = "fetching"
    PROCESSING = "processing"
    EXPORTING = "exporting"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ExportConfig:
    """Selects the output format and which optional sections to include."""

    format: str = "xml"
    include_fields: tuple[str, ...] = ()
    include_comments: bool = False
    include_attachments: bool = False
    include_worklog: bool = False
    include_subtasks: bool = True
    include_links: bool = False


@dataclass(frozen=True)
class ProgressInfo:
    """A single progress event emitted during a fetch or export run."""

    current: int
    total: int
    percentage: int
    stage: ProgressStage
    message: str
    start_time: datetime
    estimated_time_remaining: int | None = None


@dataclass(frozen=True)
class ExportArtifact:
    """Serialized export output ready to be written or downloaded."""

    content: str
    filename: str
    mime_type: str

    def save(self, directory: str | Path) -> Path:
        """Write the content to *directory*/``filename`` and return the path."""
        path = Path(directory) / self.filename
        path.parent.mkdir(parents=True, exist_ok=True)
        # newline="" keeps CSV \r\n terminators intact on every platform
        with open(path, "w", encoding="utf-8", newline="") as fh:
            fh.write(self.content)
        return path


# -- intermediate record -------------------------------------------------------


@dataclass
class NamedRef:
    """An id/name pair such as a priority or resolution."""

    id: str | None
    name: str | None
    icon_url: str | None = None


@dataclass
class IssueTypeRef:
    id: str | None
    name: str | None
    subtask: bool = False
    icon_url: str | None = None


@dataclass
class StatusRef:
    id: str | None
    name: str | None
    category: str | None = None
    description: str | None = None


@dataclass
class ProjectRef:
    id: str | None
    key: str | None
    name: str | None


@dataclass
class UserRef:
    display_name: str | None
    email_address: str | None = None
    username: str | None = None


@dataclass
class ComponentRef:
    id: str | None
    name: str | None
    description: str | None = None


@dataclass
class VersionRef:
    id: str | None
    name: str | None
    release_date: str | None = None


@dataclass
class CommentRecord:
    id: str | None
    author: str | None
    body: str | None
    created: str | None
    updated: str | None


@dataclass
class AttachmentRecord:
    id: str | None
    filename: str | None
    size: int | None
    mime_type: str | None
    author: str | None
    created: str | None
    content: str | None = None  # content URL, surfaced by the XML encoder only


@dataclass
class WorklogRecord:
    id: str | None
    author: str | None
    time_spent: str | None
    time_spent_seconds: int
    started: str | None
    created: str | None = None
    comment: str | None = None


@dataclass
class SubtaskRecord:
    id: str | None
    key: str | None
    summary: str | None
    status: str | None
    issue_type: str | None


@dataclass
class LinkedIssueRef:
    key: str | None
    summary: str | None


@dataclass
class LinkRecord:
    id: str | None
    type_name: str | None
    inward: str | None
    outward: str | None
    linked_issue: LinkedIssueRef | None
    direction: str  # "outward" or "inward"


@dataclass
class ParentRecord:
    id: str | None
    key: str | None
    summary: str | None


@dataclass
class IssueRecord:
    """Format-agnostic projection of one issue.

    Optional blocks are ``None`` when their section is disabled in the
    :class:`ExportConfig`, and a (possibly empty) list when it is enabled.
    """

    id: str | None
    key: str
    self_url: str | None
    summary: str | None
    description: str | None
    environment: str | None
    issue_type: IssueTypeRef
    project: ProjectRef
    status: StatusRef
    priority: NamedRef | None
    resolution: NamedRef | None
    assignee: UserRef | None
    reporter: UserRef | None
    created: str | None
    updated: str | None
    resolution_date: str | None
    due_date: str | None
    labels: list[str] = field(default_factory=list)
    components: list[ComponentRef] = field(default_factory=list)
    fix_versions: list[VersionRef] = field(default_factory=list)
    versions: list[VersionRef] = field(default_factory=list)

    comments: list[CommentRecord] | None = None
    comment_total: int = 0
    attachments: list[AttachmentRecord] | None = None
    worklogs: list[WorklogRecord] | None = None
    worklog_total: int = 0
    subtasks: list[SubtaskRecord] | None = None
    issue_links: list[LinkRecord] | None = None
    parent: ParentRecord | None = None

    # Ordered (key, normalized value) pairs
    custom_fields: tuple[tuple[str, Any], ...] = ()


def iso_timestamp(moment: datetime) -> str:
    """Render *moment* as UTC ISO-8601 with millisecond precision and a ``Z``."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"
