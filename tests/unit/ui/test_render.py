"""Unit tests for the terminal run summary."""

from __future__ import annotations

import io

import pytest

from context_packer.artifacts.report import (
    ContextPackReport,
    CountSummary,
    ReportError,
    ReportErrorCode,
    ReportPaths,
    ReportStatus,
    TokenSummary,
)
from context_packer.ui.render import (
    WARNING_DISPLAY_LIMIT,
    SummaryRenderer,
    create_renderer,
    summarize_warnings,
)


class TtyStream(io.StringIO):
    def isatty(self) -> bool:
        return True


def _paths() -> ReportPaths:
    return ReportPaths(
        output_dir="/out",
        pack="/out/pr-context.txt",
        changed_manifest="/out/pr-context.changed.files.txt",
        related_manifest="/out/pr-context.related.files.txt",
        omitted_manifest="/out/pr-context.omitted.files.txt",
        related_omitted_manifest="/out/pr-context.related.omitted.files.txt",
        related_selection_manifest="/out/pr-context.related.selection.tsv",
        recall_targets_manifest="/out/pr-context.scribe.targets.tsv",
        report_path="/out/pr-context.report.json",
    )


def _report(**overrides: object) -> ContextPackReport:
    values: dict[str, object] = {
        "generated_at": "2026-10-19T08:30:00.000Z",
        "status": ReportStatus.OK,
        "project_dir": "/repo",
        "repo_root": "/repo",
        "base_ref": "origin/main",
        "base_commit": "a" * 40,
        "head_commit": "b" * 40,
        "budget": 1000,
        "tokens": TokenSummary.from_counts(300, 640, 1000),
        "counts": CountSummary(changed=3, related_candidates=5, related_included=4),
        "paths": _paths(),
    }
    values.update(overrides)
    return ContextPackReport(**values)  # type: ignore[arg-type]


def _render(report: ContextPackReport) -> str:
    stream = io.StringIO()
    create_renderer(no_color=True, stream=stream).render_report(report)
    return stream.getvalue()


def test_summarize_warnings_caps_the_list() -> None:
    warnings = [f"warning-{index:02d}" for index in range(WARNING_DISPLAY_LIMIT + 3)]

    shown = summarize_warnings(warnings)

    assert len(shown) == WARNING_DISPLAY_LIMIT + 1
    assert shown[-1] == "...and 3 more warnings"
    assert summarize_warnings(["only"]) == ["only"]


def test_ok_summary_is_plain_text() -> None:
    output = _render(_report())

    assert "\x1b[" not in output
    assert "Context pack: ok" in output
    assert "Repo root: /repo" in output
    assert "Range: origin/main (aaaaaaaaaaaa...bbbbbbbbbbbb)" in output
    assert "Tokens" in output
    assert "640" in output
    assert "relatedIncluded" in output
    assert "Report: /out/pr-context.report.json" in output
    assert "Pack: /out/pr-context.txt" in output
    assert "Warnings" not in output


def test_warning_overflow_is_counted() -> None:
    warnings = tuple(f"warning-{index:02d}" for index in range(15))

    output = _render(_report(warnings=warnings))

    assert "Warnings (15):" in output
    assert "  - warning-11" in output
    assert "warning-12" not in output
    assert "  - ...and 3 more warnings" in output


def test_core_over_budget_summary() -> None:
    output = _render(
        _report(
            status=ReportStatus.CORE_OVER_BUDGET,
            tokens=TokenSummary.from_counts(1200, 1200, 1000),
            error=ReportError(
                ReportErrorCode.CORE_OVER_BUDGET, "Core context exceeds budget by 200 tokens"
            ),
        )
    )

    assert "Context pack: core-over-budget" in output
    assert "core-over-budget: Core context exceeds budget by 200 tokens" in output
    assert "The pack holds the baseline only" in output
    assert "-200" in output


def test_error_summary_skips_tables_and_escapes_markup() -> None:
    output = _render(
        _report(
            status=ReportStatus.ERROR,
            base_commit="",
            head_commit="",
            paths=None,
            error=ReportError(ReportErrorCode.UNKNOWN, "bad [bold]input[/bold]"),
        )
    )

    assert "Context pack: error" in output
    assert "unknown: bad [bold]input[/bold]" in output
    assert "Range:" not in output
    assert "Tokens" not in output
    assert "Report:" not in output


def test_color_detection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    assert SummaryRenderer(stream=TtyStream()).color is True
    assert SummaryRenderer(no_color=True, stream=TtyStream()).color is False
    assert SummaryRenderer(stream=io.StringIO()).color is False

    monkeypatch.setenv("NO_COLOR", "1")
    assert SummaryRenderer(stream=TtyStream()).color is False
