"""Tests for jql_export.core.data_models."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from jql_export.core.data_models import (
    ExportArtifact,
    ExportConfig,
    IssueRecord,
    IssueTypeRef,
    ProjectRef,
    StatusRef,
    iso_timestamp,
)


def _make_record(key: str = "PROJ-1") -> IssueRecord:
    return IssueRecord(
        id="1", key=key, self_url=None, summary="S", description=None, environment=None,
        issue_type=IssueTypeRef(id="1", name="Bug"),
        project=ProjectRef(id="1", key="PROJ", name="Project"),
        status=StatusRef(id="1", name="Open"),
        priority=None, resolution=None, assignee=None, reporter=None,
        created=None, updated=None, resolution_date=None, due_date=None,
    )


class TestExportConfig:
    """Verify ExportConfig defaults."""

    def test_defaults(self) -> None:
        cfg = ExportConfig()
        assert cfg.format == "xml"
        assert cfg.include_fields == ()
        assert cfg.include_subtasks is True
        assert cfg.include_comments is False
        assert cfg.include_links is False

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            ExportConfig().format = "csv"  # type: ignore[misc]


class TestIssueRecord:
    """Optional blocks default to 'not included'."""

    def test_optional_blocks_none(self) -> None:
        r = _make_record()
        assert r.comments is None
        assert r.worklogs is None
        assert r.parent is None
        assert r.custom_fields == ()

    def test_lists_not_shared(self) -> None:
        a = _make_record("A-1")
        b = _make_record("B-1")
        a.labels.append("x")
        assert b.labels == []


class TestIsoTimestamp:
    def test_utc_milliseconds(self) -> None:
        moment = datetime(2024, 6, 15, 8, 30, 5, 123456, tzinfo=timezone.utc)
        assert iso_timestamp(moment) == "2024-06-15T08:30:05.123Z"

    def test_converts_to_utc(self) -> None:
        moment = datetime(2024, 6, 15, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        assert iso_timestamp(moment) == "2024-06-15T08:00:00.000Z"


class TestExportArtifact:
    def test_save_keeps_crlf(self, tmp_path) -> None:
        artifact = ExportArtifact('"a"\r\n"b"\r\n', "x.csv", "text/csv;charset=utf-8")
        path = artifact.save(tmp_path)
        assert path.read_bytes() == b'"a"\r\n"b"\r\n'
