"""Export JIRA Server issues selected by JQL to XML, JSON or CSV."""

from jql_export.core.data_models import ExportArtifact, ExportConfig, ProgressInfo, ProgressStage
from jql_export.core.errors import (
    EncodingError,
    JqlExportError,
    ProjectionError,
    QueryError,
    UnsupportedFormatError,
)
from jql_export.core.export_service import ExportService

__version__ = "1.0.0"

__all__ = [
    "EncodingError",
    "ExportArtifact",
    "ExportConfig",
    "ExportService",
    "JqlExportError",
    "ProgressInfo",
    "ProgressStage",
    "ProjectionError",
    "QueryError",
    "UnsupportedFormatError",
]
