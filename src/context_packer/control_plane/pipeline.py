"""
context-packer - run orchestration

File: src/context_packer/control_plane/pipeline.py
Last updated: 2026-10-19

Purpose
- Drive one context-pack run end to end: git snapshot, changed-file filtering,
  dependency recall, ranking, budget fitting, and the render/measure
  convergence loop, then emit manifests and the versioned report.

What should be included in this file
- ``ContextPackRun``: owns all per-run state (content cache, omission map,
  warnings). Nothing is cached at module level.
- ``build_context_pack``: convenience wrapper returning a build result.

Functional requirements
- Fatal failures never escape ``execute``; they become an ``error`` report.
- A baseline (header plus changed files) above budget ends the run with
  ``core-over-budget`` before any related candidate is fitted.
- The convergence loop drops the lowest-priority included candidate until the
  measured pack fits; it is bounded by the candidate count.
"""

from __future__ import annotations

import tempfile
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from context_packer.artifacts.manifests import ManifestSet, build_selection_rows, write_manifests
from context_packer.artifacts.output_paths import output_extension, resolve_output_paths
from context_packer.artifacts.report import (
    ContextPackReport,
    CountSummary,
    ReportError,
    ReportErrorCode,
    ReportPaths,
    ReportStatus,
    TokenSummary,
    format_timestamp,
    write_report,
)
from context_packer.constants import DEFAULT_OUTPUT_EXTENSION, RECALL_TARGET_EXTENSIONS
from context_packer.domain.models import (
    ContextPackOptions,
    OmissionReason,
    OmittedEntry,
    RankedRelatedCandidate,
    RecallTargetRow,
    RecallTargetStatus,
    RelatedCandidate,
    RepoContext,
)
from context_packer.integration_plane.git_snapshot import (
    GitCommandError,
    GitSnapshotCollector,
    GitSnapshotError,
)
from context_packer.integration_plane.pr_description import GhPullRequestSource
from context_packer.integration_plane.recall_tool import RecallTargetRequest, ScribeRecall
from context_packer.integration_plane.token_oracle import (
    TokencountOracle,
    TokenOracle,
    TokenOracleError,
)
from context_packer.observability.logging import correlation_scope
from context_packer.selection_plane.budget import fit_related_candidates_with_close_test_preference
from context_packer.selection_plane.classifier import (
    evaluate_changed_file,
    evaluate_related_file,
    file_extension,
    is_recognized_source,
    normalize_path,
)
from context_packer.selection_plane.proximity import ChangeProximity, is_test_like_path
from context_packer.selection_plane.ranking import merge_candidate, rank_related_candidates
from context_packer.synthesis_plane.pack_render import FileBlock, PackHeader, PackRenderer
from context_packer.utils.fs import atomic_write, is_likely_text_file, read_text_lossy
from context_packer.utils.process import CommandError, failure_text

Clock = Callable[[], datetime]

PR_DESCRIPTION_WARNING = "PR description unavailable via gh (missing gh, auth, or matching PR)"
NO_ELIGIBLE_CHANGED_FILES = "No eligible changed files after filtering"


class NoEligibleChangedFilesError(RuntimeError):
    """Every changed file was filtered out."""


@dataclass(frozen=True, slots=True)
class ContextPackBuildResult:
    """Outcome handed back to callers; ``report`` is always present."""

    ok: bool
    reason: ReportStatus | None
    report: ContextPackReport
    pack_path: str | None = None
    paths: ReportPaths | None = None


@dataclass(frozen=True, slots=True)
class _ChangedSelection:
    included: tuple[str, ...]
    omitted: tuple[OmittedEntry, ...]


class ContextPackRun:
    """A single context-pack build. Instances are single-use."""

    def __init__(
        self,
        options: ContextPackOptions,
        *,
        git: GitSnapshotCollector | None = None,
        recall: ScribeRecall | None = None,
        token_oracle: TokenOracle | None = None,
        pr_source: GhPullRequestSource | None = None,
        renderer: PackRenderer | None = None,
        clock: Clock | None = None,
        tmp_root: Path | None = None,
        logger: Any | None = None,
    ) -> None:
        self._options = options
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._git = git if git is not None else GitSnapshotCollector(logger=self._logger)
        self._recall = recall if recall is not None else ScribeRecall(logger=self._logger)
        self._oracle: TokenOracle = (
            token_oracle if token_oracle is not None else TokencountOracle(logger=self._logger)
        )
        self._pr_source = (
            pr_source if pr_source is not None else GhPullRequestSource(logger=self._logger)
        )
        self._renderer = renderer if renderer is not None else PackRenderer()
        self._clock = clock if clock is not None else _utc_now
        self._tmp_root = tmp_root

        self._content_by_path: dict[str, str] = {}
        self._omitted_related: dict[str, OmissionReason] = {}
        self._warnings: list[str] = []
        self._paths: ReportPaths | None = None

    def execute(self) -> ContextPackBuildResult:
        run_id = uuid.uuid4().hex[:12]
        with correlation_scope(run_id=run_id):
            try:
                return self._build()
            except Exception as exc:  # noqa: BLE001
                return self._fail(exc)

    def _build(self) -> ContextPackBuildResult:
        options = self._options
        self._oracle.ensure_available()

        context = self._git.resolve_repo_context(options)
        snapshot = self._git.collect_snapshot(context, options.diff_context)
        paths = resolve_output_paths(
            options, context.repo_root, now=self._clock(), tmp_root=self._tmp_root
        )
        self._paths = paths

        changed = self._select_changed_files(
            context, (record.path for record in snapshot.changed_files)
        )
        if not changed.included:
            raise NoEligibleChangedFilesError(NO_ELIGIBLE_CHANGED_FILES)

        targets = [
            RecallTargetRequest(target=path, include_dependents=True)
            for path in changed.included
            if file_extension(path) in RECALL_TARGET_EXTENSIONS
        ]
        recall = self._recall.recall(
            context, targets, include_dependents=options.include_dependents
        )
        self._warnings.extend(recall.warnings)
        for result in recall.targets:
            if result.row.limits_reached:
                self._warnings.append(f"Scribe limits reached for target: {result.row.target}")

        merged = self._merge_related_mentions(
            context,
            (candidate for result in recall.targets for candidate in result.candidates),
            changed_paths=set(changed.included),
        )
        proximity = ChangeProximity(
            changed.included,
            max_distance=options.close_test_max_distance,
            shared_segments=options.close_test_shared_segments,
        )
        eligible: list[RelatedCandidate] = []
        for candidate in merged:
            if is_test_like_path(candidate.path) and not proximity.is_close(candidate):
                self._omit_related(candidate.path, OmissionReason.TESTS_NOT_CLOSE)
                continue
            eligible.append(candidate)

        provisional = rank_related_candidates(eligible)
        ranked = rank_related_candidates(self._estimate_candidates(provisional))

        changed_blocks = [
            FileBlock(path=path, content=self._content_by_path[path]) for path in changed.included
        ]
        pull_request = None
        if options.include_pr_description:
            pull_request = self._pr_source.fetch(context.repo_root, options.pr_ref)
            if pull_request is None:
                self._warnings.append(PR_DESCRIPTION_WARNING)

        header = self._renderer.render_header(
            PackHeader(
                generated_at=format_timestamp(self._clock()),
                repo_root=context.repo_root,
                project_dir=options.project_dir,
                base_ref=context.base_ref,
                base_commit=context.base_commit,
                head_commit=context.head_commit,
                recall_targets_ok=sum(
                    1 for row in recall.rows if row.status is RecallTargetStatus.OK
                ),
                recall_targets_total=len(recall.rows),
                budget=options.budget,
                name_status_text=snapshot.name_status_text,
                diff_text=snapshot.diff_text,
                pull_request=pull_request,
            )
        )

        def render_and_measure(related: Sequence[RankedRelatedCandidate]) -> int:
            markdown = self._renderer.render_pack(
                header=header,
                changed_files=changed_blocks,
                related_files=[
                    FileBlock(path=candidate.path, content=self._content_by_path[candidate.path])
                    for candidate in related
                    if candidate.path in self._content_by_path
                ],
                omitted_changed=changed.omitted,
            )
            atomic_write(paths.pack, markdown)
            return self._oracle.count_file(
                paths.pack, include_ext=output_extension(options.output_name)
            )

        baseline_tokens = render_and_measure(())
        if baseline_tokens > options.budget:
            return self._finish_over_budget(
                paths,
                context=context,
                changed=changed,
                ranked=ranked,
                recall_rows=recall.rows,
                baseline_tokens=baseline_tokens,
            )

        fit = fit_related_candidates_with_close_test_preference(
            budget=options.budget,
            baseline_tokens=baseline_tokens,
            candidates=ranked,
            is_close_test_candidate=lambda candidate: is_test_like_path(candidate.path),
            reserve_ratio=options.close_test_reserve_ratio,
            reserve_min_tokens=options.close_test_reserve_min_tokens,
            logger=self._logger,
        )
        for omitted in fit.omitted:
            self._omit_related(omitted.candidate.path, omitted.reason)

        included = list(fit.included)
        final_tokens = render_and_measure(included)
        while final_tokens > options.budget and included:
            dropped = included.pop()
            self._omit_related(dropped.path, OmissionReason.OVER_BUDGET)
            self._logger.info(
                "pack_convergence_evicted",
                path=dropped.path,
                rank=dropped.rank,
                measured_tokens=final_tokens,
                budget=options.budget,
            )
            final_tokens = render_and_measure(included)

        included_paths = tuple(candidate.path for candidate in included)
        self._write_manifests(
            paths,
            changed=changed,
            related_included=included_paths,
            ranked=ranked,
            recall_rows=recall.rows,
        )
        report = ContextPackReport(
            generated_at=format_timestamp(self._clock()),
            status=ReportStatus.OK,
            project_dir=context.project_dir,
            repo_root=context.repo_root,
            base_ref=context.base_ref,
            base_commit=context.base_commit,
            head_commit=context.head_commit,
            budget=options.budget,
            tokens=TokenSummary.from_counts(baseline_tokens, final_tokens, options.budget),
            counts=self._counts(
                changed=changed,
                ranked=ranked,
                related_included=len(included_paths),
                recall_rows=recall.rows,
            ),
            paths=paths,
            warnings=tuple(self._warnings),
        )
        write_report(paths.report_path, report)
        self._logger.info(
            "context_pack_completed",
            pack=paths.pack,
            baseline_tokens=baseline_tokens,
            final_tokens=final_tokens,
            related_included=len(included_paths),
            related_candidates=len(ranked),
        )
        return ContextPackBuildResult(
            ok=True, reason=None, report=report, pack_path=paths.pack, paths=paths
        )

    def _select_changed_files(
        self, context: RepoContext, paths: Iterable[str]
    ) -> _ChangedSelection:
        included: list[str] = []
        omitted: list[OmittedEntry] = []
        for raw_path in paths:
            path = normalize_path(raw_path)
            absolute = Path(context.repo_root) / path
            if not absolute.is_file():
                omitted.append(OmittedEntry(path=path, reason=OmissionReason.MISSING))
                continue
            decision = evaluate_changed_file(path, self._options)
            if not decision.include:
                omitted.append(
                    OmittedEntry(path=path, reason=decision.reason or OmissionReason.UNKNOWN)
                )
                continue
            if not is_likely_text_file(absolute):
                omitted.append(OmittedEntry(path=path, reason=OmissionReason.BINARY))
                continue
            self._content_by_path[path] = read_text_lossy(absolute)
            included.append(path)
        return _ChangedSelection(included=tuple(included), omitted=tuple(omitted))

    def _merge_related_mentions(
        self,
        context: RepoContext,
        mentions: Iterable[RelatedCandidate],
        *,
        changed_paths: set[str],
    ) -> list[RelatedCandidate]:
        merged: dict[str, RelatedCandidate] = {}
        for mention in mentions:
            path = normalize_path(mention.path)
            if path in changed_paths:
                continue
            decision = evaluate_related_file(path, self._options)
            if not decision.include:
                self._omit_related(path, decision.reason or OmissionReason.UNKNOWN)
                continue
            absolute = Path(context.repo_root) / path
            if not absolute.is_file():
                self._omit_related(path, OmissionReason.MISSING)
                continue
            if not is_likely_text_file(absolute):
                self._omit_related(path, OmissionReason.BINARY)
                continue
            if path not in self._content_by_path:
                if not is_recognized_source(path):
                    self._logger.debug("related_unrecognized_extension", path=path)
                self._content_by_path[path] = read_text_lossy(absolute)

            existing = merged.get(path)
            if existing is None:
                merged[path] = replace(mention, path=path)
            else:
                merged[path] = merge_candidate(existing, replace(mention, path=path))
        return list(merged.values())

    def _estimate_candidates(
        self, ranked: Sequence[RankedRelatedCandidate]
    ) -> list[RankedRelatedCandidate]:
        """Measure each candidate's rendered file block in isolation."""

        if not ranked:
            return []
        estimated: list[RankedRelatedCandidate] = []
        with tempfile.TemporaryDirectory(prefix="context-packer-estimate-") as scratch_dir:
            scratch = Path(scratch_dir) / f"candidate-token-estimate.{DEFAULT_OUTPUT_EXTENSION}"
            for candidate in ranked:
                content = self._content_by_path.get(candidate.path)
                if content is None:
                    estimated.append(replace(candidate, estimated_tokens=None))
                    continue
                block = self._renderer.render_file_block(
                    FileBlock(path=candidate.path, content=content)
                )
                scratch.write_text(block, encoding="utf-8")
                tokens = self._oracle.count_file(scratch, include_ext=DEFAULT_OUTPUT_EXTENSION)
                estimated.append(replace(candidate, estimated_tokens=tokens))
        return estimated

    def _finish_over_budget(
        self,
        paths: ReportPaths,
        *,
        context: RepoContext,
        changed: _ChangedSelection,
        ranked: Sequence[RankedRelatedCandidate],
        recall_rows: tuple[RecallTargetRow, ...],
        baseline_tokens: int,
    ) -> ContextPackBuildResult:
        options = self._options
        self._write_manifests(
            paths, changed=changed, related_included=(), ranked=ranked, recall_rows=recall_rows
        )
        overflow = baseline_tokens - options.budget
        report = ContextPackReport(
            generated_at=format_timestamp(self._clock()),
            status=ReportStatus.CORE_OVER_BUDGET,
            project_dir=context.project_dir,
            repo_root=context.repo_root,
            base_ref=context.base_ref,
            base_commit=context.base_commit,
            head_commit=context.head_commit,
            budget=options.budget,
            tokens=TokenSummary.from_counts(baseline_tokens, baseline_tokens, options.budget),
            counts=self._counts(
                changed=changed, ranked=ranked, related_included=0, recall_rows=recall_rows
            ),
            paths=paths,
            warnings=tuple(self._warnings),
            error=ReportError(
                code=ReportErrorCode.CORE_OVER_BUDGET,
                message=f"Core context exceeds budget by {overflow} tokens",
            ),
        )
        write_report(paths.report_path, report)
        self._logger.warning(
            "context_pack_core_over_budget",
            baseline_tokens=baseline_tokens,
            budget=options.budget,
            overflow_tokens=overflow,
        )
        return ContextPackBuildResult(
            ok=False,
            reason=ReportStatus.CORE_OVER_BUDGET,
            report=report,
            pack_path=paths.pack,
            paths=paths,
        )

    def _fail(self, exc: Exception) -> ContextPackBuildResult:
        options = self._options
        code = _error_code_for(exc)
        report = ContextPackReport(
            generated_at=format_timestamp(self._clock()),
            status=ReportStatus.ERROR,
            project_dir=options.project_dir,
            repo_root=options.project_dir,
            base_ref=options.base_ref or "",
            base_commit="",
            head_commit="",
            budget=options.budget,
            tokens=TokenSummary.from_counts(0, 0, options.budget),
            counts=CountSummary(),
            paths=self._paths,
            error=ReportError(code=code, message=str(exc), details=_error_details(exc)),
        )
        self._logger.error(
            "context_pack_failed",
            error_code=code.value,
            error=str(exc),
            exception_type=type(exc).__name__,
        )
        if self._paths is not None:
            try:
                write_report(self._paths.report_path, report)
            except OSError as write_exc:
                self._logger.error(
                    "context_pack_report_write_failed",
                    report_path=self._paths.report_path,
                    error=str(write_exc),
                )
        return ContextPackBuildResult(
            ok=False, reason=ReportStatus.ERROR, report=report, paths=self._paths
        )

    def _write_manifests(
        self,
        paths: ReportPaths,
        *,
        changed: _ChangedSelection,
        related_included: tuple[str, ...],
        ranked: Sequence[RankedRelatedCandidate],
        recall_rows: tuple[RecallTargetRow, ...],
    ) -> None:
        write_manifests(
            paths,
            ManifestSet(
                changed_included=changed.included,
                related_included=related_included,
                omitted_changed=changed.omitted,
                omitted_related=dict(self._omitted_related),
                selection_rows=build_selection_rows(
                    ranked, set(related_included), self._omitted_related
                ),
                recall_rows=recall_rows,
            ),
        )

    def _counts(
        self,
        *,
        changed: _ChangedSelection,
        ranked: Sequence[RankedRelatedCandidate],
        related_included: int,
        recall_rows: tuple[RecallTargetRow, ...],
    ) -> CountSummary:
        return CountSummary(
            changed=len(changed.included),
            related_candidates=len(ranked),
            related_included=related_included,
            related_omitted=len(self._omitted_related),
            recall_targets=len(recall_rows),
            recall_failed_targets=sum(
                1 for row in recall_rows if row.status is RecallTargetStatus.FAILED
            ),
            recall_limit_signals=sum(1 for row in recall_rows if row.limits_reached),
        )

    def _omit_related(self, path: str, reason: OmissionReason) -> None:
        # First recorded reason wins.
        self._omitted_related.setdefault(path, reason)


def build_context_pack(
    options: ContextPackOptions, **collaborators: Any
) -> ContextPackBuildResult:
    """Run one build with optional collaborator overrides (see ``ContextPackRun``)."""

    return ContextPackRun(options, **collaborators).execute()


def _error_code_for(exc: Exception) -> ReportErrorCode:
    if isinstance(exc, GitSnapshotError):
        return ReportErrorCode.GIT_ERROR
    if isinstance(exc, TokenOracleError):
        return ReportErrorCode.TOKEN_ERROR
    return ReportErrorCode.UNKNOWN


def _error_details(exc: Exception) -> str | None:
    if isinstance(exc, GitCommandError):
        return exc.stderr.strip() or None
    cause = exc.__cause__
    while cause is not None:
        if isinstance(cause, GitCommandError):
            return cause.stderr.strip() or None
        if isinstance(cause, CommandError):
            return failure_text(cause).strip() or None
        cause = cause.__cause__
    return None


def _utc_now() -> datetime:
    return datetime.now(UTC)


__all__ = [
    "NO_ELIGIBLE_CHANGED_FILES",
    "PR_DESCRIPTION_WARNING",
    "ContextPackBuildResult",
    "ContextPackRun",
    "NoEligibleChangedFilesError",
    "build_context_pack",
]
