"""Exception hierarchy for JQL Export."""

from __future__ import annotations


class JqlExportError(Exception):
    """Base class for every error raised by this package."""


class UnsupportedFormatError(JqlExportError, ValueError):
    """The requested export format is not one of xml, json or csv."""

    def __init__(self, fmt: object) -> None:
        super().__init__(f"Unsupported export format: {fmt}")
        self.format = fmt


class EncodingError(JqlExportError):
    """Building the serialized export document failed."""


class ProjectionError(EncodingError):
    """An issue could not be projected into an intermediate record."""

    def __init__(self, message: str, issue_key: str | None = None) -> None:
        if issue_key:
            message = f"{issue_key}: {message}"
        super().__init__(message)
        self.issue_key = issue_key


class QueryError(JqlExportError):
    """A JIRA REST request failed."""

    def __init__(
        self, message: str, status: int = 0, details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.details = details
