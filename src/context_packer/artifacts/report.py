"""
context-packer - versioned run report

File: src/context_packer/artifacts/report.py
Last updated: 2026-10-19

Purpose
- Final, persisted decision record of one run (version 1).

What should be included in this file
- Report dataclasses and their camelCase JSON serialization.
- ``is_report_v1`` shape check for readers and ``load_report``/``write_report``.

Functional requirements
- Readers must check ``version`` before trusting the shape.
- A report is written once; a new run produces a new report.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from context_packer.constants import REPORT_VERSION, TOKEN_ENCODING
from context_packer.utils.fs import atomic_write


class ReportStatus(StrEnum):
    OK = "ok"
    CORE_OVER_BUDGET = "core-over-budget"
    ERROR = "error"


class ReportErrorCode(StrEnum):
    CORE_OVER_BUDGET = "core-over-budget"
    RECALL_FAILURE = "scribe-failure"
    GIT_ERROR = "git-error"
    TOKEN_ERROR = "token-error"
    UNKNOWN = "unknown"


class ReportFormatError(ValueError):
    """Raised when a persisted report does not match the version 1 shape."""


@dataclass(frozen=True, slots=True)
class TokenSummary:
    baseline: int
    final: int
    remaining: int
    encoding: str = TOKEN_ENCODING

    @classmethod
    def from_counts(cls, baseline: int, final: int, budget: int) -> TokenSummary:
        """``remaining`` is ``budget - final`` and may be negative."""

        return cls(baseline=baseline, final=final, remaining=budget - final)

    def to_dict(self) -> dict[str, object]:
        return {
            "baseline": self.baseline,
            "final": self.final,
            "remaining": self.remaining,
            "encoding": self.encoding,
        }


@dataclass(frozen=True, slots=True)
class CountSummary:
    changed: int = 0
    related_candidates: int = 0
    related_included: int = 0
    related_omitted: int = 0
    recall_targets: int = 0
    recall_failed_targets: int = 0
    recall_limit_signals: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "changed": self.changed,
            "relatedCandidates": self.related_candidates,
            "relatedIncluded": self.related_included,
            "relatedOmitted": self.related_omitted,
            "scribeTargets": self.recall_targets,
            "scribeFailedTargets": self.recall_failed_targets,
            "scribeLimitSignals": self.recall_limit_signals,
        }


@dataclass(frozen=True, slots=True)
class ReportPaths:
    """Absolute locations of every artifact produced by a run."""

    output_dir: str
    pack: str
    changed_manifest: str
    related_manifest: str
    omitted_manifest: str
    related_omitted_manifest: str
    related_selection_manifest: str
    recall_targets_manifest: str
    report_path: str

    def to_dict(self) -> dict[str, object]:
        return {
            "outputDir": self.output_dir,
            "pack": self.pack,
            "changedManifest": self.changed_manifest,
            "relatedManifest": self.related_manifest,
            "omittedManifest": self.omitted_manifest,
            "relatedOmittedManifest": self.related_omitted_manifest,
            "relatedSelectionManifest": self.related_selection_manifest,
            "scribeTargetsManifest": self.recall_targets_manifest,
            "reportPath": self.report_path,
        }


@dataclass(frozen=True, slots=True)
class ReportError:
    code: ReportErrorCode
    message: str
    details: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"code": self.code.value, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


@dataclass(frozen=True, slots=True)
class ContextPackReport:
    generated_at: str
    status: ReportStatus
    project_dir: str
    repo_root: str
    base_ref: str
    base_commit: str
    head_commit: str
    budget: int
    tokens: TokenSummary
    counts: CountSummary
    paths: ReportPaths | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)
    error: ReportError | None = None
    version: int = REPORT_VERSION

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "version": self.version,
            "generatedAt": self.generated_at,
            "status": self.status.value,
            "projectDir": self.project_dir,
            "repoRoot": self.repo_root,
            "baseRef": self.base_ref,
            "baseCommit": self.base_commit,
            "headCommit": self.head_commit,
            "budget": self.budget,
            "tokens": self.tokens.to_dict(),
            "counts": self.counts.to_dict(),
            "paths": self.paths.to_dict() if self.paths is not None else {},
            "warnings": list(self.warnings),
        }
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4, ensure_ascii=False) + "\n"


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""

    utc_moment = moment.astimezone(UTC) if moment.tzinfo is not None else moment
    return utc_moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_moment.microsecond // 1000:03d}Z"


def is_report_v1(value: object) -> bool:
    if not isinstance(value, dict):
        return False
    budget = value.get("budget")
    return (
        value.get("version") == REPORT_VERSION
        and all(
            isinstance(value.get(key), str)
            for key in (
                "generatedAt",
                "status",
                "projectDir",
                "repoRoot",
                "baseRef",
                "baseCommit",
                "headCommit",
            )
        )
        and isinstance(budget, (int, float))
        and not isinstance(budget, bool)
    )


def write_report(path: Path | str, report: ContextPackReport) -> None:
    atomic_write(path, report.to_json())


def load_report(path: Path | str) -> dict[str, Any]:
    """Read a persisted report, refusing anything that is not version 1."""

    report_path = Path(path)
    try:
        payload = json.loads(report_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ReportFormatError(f"invalid report JSON in {report_path}: {exc}") from exc
    if not is_report_v1(payload):
        raise ReportFormatError(f"unsupported report shape in {report_path}")
    return payload


__all__ = [
    "ContextPackReport",
    "CountSummary",
    "ReportError",
    "ReportErrorCode",
    "ReportFormatError",
    "ReportPaths",
    "ReportStatus",
    "TokenSummary",
    "format_timestamp",
    "is_report_v1",
    "load_report",
    "write_report",
]
