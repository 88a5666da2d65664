"""Run summary rendering for the context-packer CLI.

File: src/context_packer/ui/render.py
Last updated: 2026-10-19

Purpose
- Render a finished run's report as a compact terminal summary with ``rich``.
- Respect NO_COLOR environment variable and --no-color CLI flag.

Functional requirements
- Plain output (no ANSI codes) whenever color is not allowed.
- At most ``WARNING_DISPLAY_LIMIT`` warnings are listed; the rest are counted.
"""

from __future__ import annotations

import os
import sys
from typing import IO, TYPE_CHECKING, Final

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from context_packer.artifacts.report import ReportStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_packer.artifacts.report import ContextPackReport

WARNING_DISPLAY_LIMIT: Final[int] = 12

_STATUS_STYLES: Final[dict[ReportStatus, str]] = {
    ReportStatus.OK: "bold green",
    ReportStatus.CORE_OVER_BUDGET: "bold yellow",
    ReportStatus.ERROR: "bold red",
}


def _color_allowed(no_color_flag: bool, stream: IO[str]) -> bool:
    """Check whether color output should be attempted."""

    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def summarize_warnings(
    warnings: Sequence[str], *, limit: int = WARNING_DISPLAY_LIMIT
) -> list[str]:
    shown = list(warnings[:limit])
    hidden = len(warnings) - len(shown)
    if hidden > 0:
        shown.append(f"...and {hidden} more warnings")
    return shown


class SummaryRenderer:
    """Terminal summary of one context-pack report."""

    def __init__(self, *, no_color: bool = False, stream: IO[str] | None = None) -> None:
        target = stream if stream is not None else sys.stdout
        self.color = _color_allowed(no_color, target)
        self._console = Console(
            file=target,
            color_system="auto" if self.color else None,
            no_color=not self.color,
            highlight=False,
            soft_wrap=True,
        )

    def render_report(self, report: ContextPackReport) -> None:
        console = self._console
        console.print(
            f"Context pack: [{_STATUS_STYLES[report.status]}]{report.status.value}[/]"
        )
        console.print(f"Repo root: {report.repo_root}", markup=False)
        if report.base_commit:
            short_range = f"{report.base_commit[:12]}...{report.head_commit[:12]}"
            console.print(f"Range: {report.base_ref} ({short_range})", markup=False)

        if report.error is not None:
            message = escape(report.error.message)
            console.print(f"[bold red]{report.error.code.value}[/]: {message}")
            if report.status is ReportStatus.CORE_OVER_BUDGET:
                console.print("The pack holds the baseline only, with no related context.")

        if report.status is not ReportStatus.ERROR:
            console.print(self._token_table(report))
            console.print(self._count_table(report))

        if report.warnings:
            console.print(f"Warnings ({len(report.warnings)}):")
            for line in summarize_warnings(report.warnings):
                console.print(f"  - {line}", markup=False)

        if report.paths is not None:
            console.print(f"Report: {report.paths.report_path}", markup=False)
            console.print(f"Pack: {report.paths.pack}", markup=False)

    @staticmethod
    def _token_table(report: ContextPackReport) -> Table:
        table = Table(title="Tokens", show_header=True, header_style="bold")
        for column in ("budget", "baseline", "final", "remaining", "encoding"):
            table.add_column(column, justify="right" if column != "encoding" else "left")
        tokens = report.tokens
        table.add_row(
            str(report.budget),
            str(tokens.baseline),
            str(tokens.final),
            str(tokens.remaining),
            tokens.encoding,
        )
        return table

    @staticmethod
    def _count_table(report: ContextPackReport) -> Table:
        table = Table(title="Files", show_header=True, header_style="bold")
        table.add_column("count")
        table.add_column("value", justify="right")
        for key, value in report.counts.to_dict().items():
            table.add_row(key, str(value))
        return table


def create_renderer(*, no_color: bool = False, stream: IO[str] | None = None) -> SummaryRenderer:
    """Create a summary renderer with the given settings."""

    return SummaryRenderer(no_color=no_color, stream=stream)


__all__ = ["WARNING_DISPLAY_LIMIT", "SummaryRenderer", "create_renderer", "summarize_warnings"]
