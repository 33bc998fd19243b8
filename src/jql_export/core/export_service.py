"""Drive an export run: project issues, feed an encoder, report progress."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from jql_export.core.csv_encoder import CsvEncoder
from jql_export.core.data_models import (
    ExportArtifact,
    ExportConfig,
    IssueRecord,
    ProgressStage,
)
from jql_export.core.errors import (
    EncodingError,
    JqlExportError,
    ProjectionError,
    UnsupportedFormatError,
)
from jql_export.core.json_encoder import JsonEncoder
from jql_export.core.progress import ProgressCallback, ProgressTracker
from jql_export.core.projector import project_issue
from jql_export.core.xml_encoder import XmlEncoder

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10

ENCODERS: dict[str, Any] = {
    "xml": XmlEncoder,
    "json": JsonEncoder,
    "csv": CsvEncoder,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def export_filename(fmt: str, exported_at: datetime) -> str:
    """Return ``jira-export-<YYYY-MM-DD>.<ext>`` for *exported_at*."""
    return f"jira-export-{exported_at:%Y-%m-%d}.{ENCODERS[fmt].extension}"


class ExportService:
    """Export already-fetched issues to XML, JSON or CSV.

    The service holds no per-run state; every :meth:`export` call builds its
    own encoder and progress tracker, so concurrent calls are independent.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self._now = now

    def export(
        self,
        issues: Sequence[Mapping[str, Any]],
        config: ExportConfig,
        on_progress: ProgressCallback | None = None,
    ) -> ExportArtifact:
        """Serialize *issues* according to *config*.

        Progress is reported through *on_progress*: one ``processing`` event
        at the start, one every ``PROGRESS_EVERY`` issues, one ``exporting``
        event before serialization and a final ``complete`` event.  On failure
        a single ``error`` event is emitted and the error is re-raised.

        Raises:
            UnsupportedFormatError: Before any progress event, when
                ``config.format`` is not xml, json or csv.
            ProjectionError: When an issue cannot be projected.
            EncodingError: When the document cannot be built.
        """
        encoder_cls = ENCODERS.get(config.format)
        if encoder_cls is None:
            raise UnsupportedFormatError(config.format)

        fmt = config.format.upper()
        exported_at = self._now()
        total = len(issues)
        tracker = ProgressTracker(
            total, on_progress, clock=self._clock, start_time=exported_at,
        )
        logger.info("Starting %s export of %d issue(s)", fmt, total)
        tracker.emit(ProgressStage.PROCESSING, 0, f"Starting {fmt} export...")

        processed = 0
        try:
            encoder = encoder_cls(total, exported_at)
            for issue in issues:
                encoder.add(_project(issue, config))
                processed += 1
                if processed % PROGRESS_EVERY == 0:
                    tracker.emit(
                        ProgressStage.PROCESSING,
                        processed,
                        f"Processing issue {processed} of {total}",
                        with_eta=True,
                    )

            tracker.emit(ProgressStage.EXPORTING, processed, f"Generating {fmt}...")
            content = encoder.finish()
        except JqlExportError as exc:
            _report_failure(tracker, processed, exc)
            raise
        except Exception as exc:
            error = EncodingError(f"{fmt} export failed: {exc}")
            _report_failure(tracker, processed, error)
            raise error from exc

        tracker.emit(ProgressStage.COMPLETE, processed, f"{fmt} export complete")
        artifact = ExportArtifact(
            content=content,
            filename=export_filename(config.format, exported_at),
            mime_type=encoder_cls.mime_type,
        )
        logger.info(
            "%s export complete: %d issue(s), %d chars -> %s",
            fmt, processed, len(content), artifact.filename,
        )
        return artifact


def _project(issue: Mapping[str, Any], config: ExportConfig) -> IssueRecord:
    try:
        return project_issue(issue, config)
    except ProjectionError:
        raise
    except Exception as exc:
        key = issue.get("key") if isinstance(issue, Mapping) else None
        raise ProjectionError(str(exc), key) from exc


def _report_failure(tracker: ProgressTracker, processed: int, exc: Exception) -> None:
    logger.error("Export failed after %d issue(s): %s", processed, exc)
    tracker.emit(ProgressStage.ERROR, processed, str(exc) or "Export failed")
