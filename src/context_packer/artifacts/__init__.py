"""Run artifacts: versioned report, manifests, and output locations."""

from context_packer.artifacts.manifests import ManifestSet, build_selection_rows, write_manifests
from context_packer.artifacts.output_paths import (
    output_basename,
    output_extension,
    resolve_output_paths,
)
from context_packer.artifacts.report import (
    ContextPackReport,
    CountSummary,
    ReportError,
    ReportErrorCode,
    ReportFormatError,
    ReportPaths,
    ReportStatus,
    TokenSummary,
    is_report_v1,
    load_report,
    write_report,
)

__all__ = [
    "ContextPackReport",
    "CountSummary",
    "ManifestSet",
    "ReportError",
    "ReportErrorCode",
    "ReportFormatError",
    "ReportPaths",
    "ReportStatus",
    "TokenSummary",
    "build_selection_rows",
    "is_report_v1",
    "load_report",
    "output_basename",
    "output_extension",
    "resolve_output_paths",
    "write_manifests",
    "write_report",
]
