"""
context-packer - dependency recall adapter

File: src/context_packer/integration_plane/recall_tool.py
Last updated: 2026-10-19

Purpose
- Query the external ``scribe`` covering-set tool for files related to each
  changed file and normalize its XML output into related candidates.

Functional requirements
- A missing or outdated tool skips every target with a single warning.
- Per-target failures are recorded as ``failed`` rows plus a warning, never raised.
- Paths outside the repository root, and the target itself, are dropped.

Non-functional requirements
- Output parsing is tolerant of surrounding noise; only ``<file>`` blocks and the
  document-level limit tags are read.
"""

from __future__ import annotations

import html
import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

import structlog

from context_packer.constants import RECALL_COMMAND, RECALL_MAX_OUTPUT_BYTES, RECALL_PACKAGE
from context_packer.domain.models import RecallTargetRow, RecallTargetStatus, RelatedCandidate
from context_packer.selection_plane.ranking import relation_weight_for_reason
from context_packer.utils.process import (
    CommandError,
    SubprocessRunner,
    command_exists,
    failure_text,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_packer.domain.models import RepoContext
    from context_packer.utils.process import CommandRunner

NOTE_UNAVAILABLE: Final[str] = "scribe-modern-unavailable"
NOTE_ERROR: Final[str] = "scribe-error"
_REQUIRED_HELP_FLAGS: Final[tuple[str, ...]] = ("--covering-set", "--granularity", "--stdout")
_FILE_BLOCK_RE: Final[re.Pattern[str]] = re.compile(r"<file>(.*?)</file>", re.DOTALL)


@dataclass(frozen=True, slots=True)
class RecallTargetRequest:
    target: str
    include_dependents: bool = True


@dataclass(frozen=True, slots=True)
class RecallTargetResult:
    row: RecallTargetRow
    candidates: tuple[RelatedCandidate, ...] = ()


@dataclass(frozen=True, slots=True)
class RecallResult:
    targets: tuple[RecallTargetResult, ...]
    warnings: tuple[str, ...]

    @property
    def rows(self) -> tuple[RecallTargetRow, ...]:
        return tuple(result.row for result in self.targets)


def extract_tag_value(xml: str, tag: str) -> str | None:
    """Decoded, stripped text of the first ``<tag>`` element, if present."""

    match = re.search(rf"<{tag}>(.*?)</{tag}>", xml, re.DOTALL)
    if match is None:
        return None
    return html.unescape(match.group(1)).strip()


def to_repo_relative_path(abs_path: str, repo_root: str) -> str | None:
    normalized_root = repo_root.replace("\\", "/").rstrip("/")
    normalized_abs = abs_path.replace("\\", "/")
    prefix = f"{normalized_root}/"
    if not normalized_abs.startswith(prefix):
        return None
    return normalized_abs[len(prefix) :]


def parse_recall_output(target: str, xml: str, repo_root: str) -> RecallTargetResult:
    """Normalize one covering-set document into a target row and candidates."""

    blocks = _FILE_BLOCK_RE.findall(xml)
    candidates: list[RelatedCandidate] = []

    for block in blocks:
        abs_path = extract_tag_value(block, "path")
        if not abs_path:
            continue
        relative = to_repo_relative_path(abs_path, repo_root)
        if not relative or relative == target:
            continue
        reason = extract_tag_value(block, "reason") or "Unknown"
        candidates.append(
            RelatedCandidate(
                path=relative,
                reason=reason,
                distance=_parse_distance(extract_tag_value(block, "distance")),
                frequency=1,
                relation_weight=relation_weight_for_reason(reason),
            )
        )

    limits_raw = extract_tag_value(xml, "limits_reached") or "false"
    max_depth = _parse_optional_int(extract_tag_value(xml, "max_depth_reached"))

    return RecallTargetResult(
        row=RecallTargetRow(
            target=target,
            status=RecallTargetStatus.OK,
            total_paths=len(blocks),
            eligible_paths=len(candidates),
            limits_reached=limits_raw.lower() == "true",
            max_depth_reached=max_depth,
        ),
        candidates=tuple(candidates),
    )


def summarize_recall_error(raw: str) -> str:
    """First ``error:`` line, else the first non-empty line."""

    lines = [line.strip() for line in raw.replace("\r", "\n").split("\n") if line.strip()]
    for line in lines:
        if line.lower().startswith("error:"):
            return line
    return lines[0] if lines else "unknown scribe error"


def is_modern_help(help_text: str) -> bool:
    return all(flag in help_text for flag in _REQUIRED_HELP_FLAGS)


class ScribeRecall:
    """Covering-set queries through ``npx -y @sibyllinesoft/scribe@<version>``."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        command: str = RECALL_COMMAND,
        package: str = RECALL_PACKAGE,
        max_output_bytes: int = RECALL_MAX_OUTPUT_BYTES,
        logger: Any | None = None,
    ) -> None:
        self._runner = runner if runner is not None else SubprocessRunner()
        self._command = command
        self._package = package
        self._max_output_bytes = max_output_bytes
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def base_command(self) -> tuple[str, ...]:
        return (self._command, "-y", self._package)

    def is_available(self) -> bool:
        """The launcher exists and its help advertises covering-set queries."""

        if not command_exists(self._runner, self._command):
            return False
        try:
            result = self._runner.run(
                (*self.base_command, "--help"), max_output_bytes=self._max_output_bytes
            )
            help_text = f"{result.stdout}\n{result.stderr}"
        except CommandError as exc:
            help_text = failure_text(exc)
        return is_modern_help(help_text)

    def recall(
        self,
        context: RepoContext,
        targets: Sequence[RecallTargetRequest],
        *,
        include_dependents: bool = True,
    ) -> RecallResult:
        if not targets:
            return RecallResult(targets=(), warnings=())

        if not self.is_available():
            self._logger.warning("recall_unavailable", package=self._package, targets=len(targets))
            return RecallResult(
                targets=tuple(self._skipped(request.target) for request in targets),
                warnings=(
                    f"Modern scribe is unavailable. Install/use {self._package} via npx; "
                    "skipping related expansion.",
                ),
            )

        results: list[RecallTargetResult] = []
        warnings: list[str] = []
        for request in targets:
            args = [
                context.repo_root,
                "--covering-set",
                request.target,
                "--granularity",
                "file",
                "--stdout",
            ]
            if include_dependents and request.include_dependents:
                args.append("--include-dependents")

            try:
                output = self._runner.run(
                    (*self.base_command, *args),
                    cwd=context.repo_root,
                    max_output_bytes=self._max_output_bytes,
                ).stdout
            except CommandError as exc:
                summary = summarize_recall_error(failure_text(exc))
                warnings.append(f"Scribe query failed for target {request.target}: {summary}")
                results.append(self._failed(request.target))
                self._logger.warning(
                    "recall_target_failed", target=request.target, error=summary
                )
                continue

            parsed = parse_recall_output(request.target, output, context.repo_root)
            results.append(parsed)
            self._logger.info(
                "recall_target_completed",
                target=request.target,
                total_paths=parsed.row.total_paths,
                eligible_paths=parsed.row.eligible_paths,
                limits_reached=parsed.row.limits_reached,
            )

        return RecallResult(targets=tuple(results), warnings=tuple(warnings))

    @staticmethod
    def _skipped(target: str) -> RecallTargetResult:
        return RecallTargetResult(
            row=RecallTargetRow(
                target=target, status=RecallTargetStatus.SKIPPED, note=NOTE_UNAVAILABLE
            )
        )

    @staticmethod
    def _failed(target: str) -> RecallTargetResult:
        return RecallTargetResult(
            row=RecallTargetRow(target=target, status=RecallTargetStatus.FAILED, note=NOTE_ERROR)
        )


def _parse_distance(raw: str | None) -> int:
    try:
        value = float(raw if raw is not None else "0")
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, math.floor(value))


def _parse_optional_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return math.floor(value)


__all__ = [
    "NOTE_ERROR",
    "NOTE_UNAVAILABLE",
    "RecallResult",
    "RecallTargetRequest",
    "RecallTargetResult",
    "ScribeRecall",
    "extract_tag_value",
    "is_modern_help",
    "parse_recall_output",
    "summarize_recall_error",
    "to_repo_relative_path",
]
