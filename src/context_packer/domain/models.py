"""Immutable run entities for context-pack selection.

Every entity is owned by the single run that creates it. Candidates are frozen;
merging and re-estimation produce new instances via ``dataclasses.replace``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from context_packer.constants import (
    DEFAULT_BUDGET,
    DEFAULT_CLOSE_TEST_MAX_DISTANCE,
    DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS,
    DEFAULT_CLOSE_TEST_RESERVE_RATIO,
    DEFAULT_CLOSE_TEST_SHARED_SEGMENTS,
    DEFAULT_DIFF_CONTEXT,
    DEFAULT_OUTPUT_NAME,
)


class OmissionReason(StrEnum):
    """Closed vocabulary for why a path is not part of the pack."""

    LOCKFILE = "filtered:lockfile"
    ENV = "filtered:env"
    SECRET = "filtered:secret"
    BINARY = "filtered:binary"
    DOCS = "filtered:docs"
    TESTS = "filtered:tests"
    TESTS_NOT_CLOSE = "filtered:tests-not-close"
    GENERATED_CACHE = "filtered:generated-cache"
    MISSING = "filtered:missing"
    UNKNOWN = "filtered:unknown"
    OVER_BUDGET = "over-budget"
    RECALL_TARGET_FAILED = "scribe-target-failed"
    RECALL_LIMITS_REACHED = "scribe-limits-reached"


class RecallTargetStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class SelectionDecision(StrEnum):
    INCLUDED = "included"
    OMITTED = "omitted"


WITHIN_BUDGET = "within-budget"


@dataclass(frozen=True, slots=True)
class ChangedFileRecord:
    """One path touched between base and head; ``status`` is the raw git code."""

    path: str
    status: str


@dataclass(frozen=True, slots=True)
class RelatedCandidate:
    """A related-file mention, possibly merged across several recall targets."""

    path: str
    reason: str
    distance: int
    frequency: int
    relation_weight: int
    estimated_tokens: int | None = None

    def __post_init__(self) -> None:
        _validate_candidate(self)

    @property
    def token_cost(self) -> float:
        """Estimate used for ordering and fitting; a missing estimate never fits."""

        return float("inf") if self.estimated_tokens is None else float(self.estimated_tokens)


@dataclass(frozen=True, slots=True, kw_only=True)
class RankedRelatedCandidate(RelatedCandidate):
    """A candidate with its dense 1-based priority rank."""

    rank: int

    def __post_init__(self) -> None:
        _validate_candidate(self)
        if self.rank < 1:
            raise ValueError(f"rank must be >= 1, got {self.rank}")


@dataclass(frozen=True, slots=True)
class OmittedEntry:
    path: str
    reason: OmissionReason


@dataclass(frozen=True, slots=True)
class OmittedCandidate:
    candidate: RankedRelatedCandidate
    reason: OmissionReason


@dataclass(frozen=True, slots=True)
class BudgetFitResult:
    """Partition of ranked candidates into included and omitted sets."""

    included: tuple[RankedRelatedCandidate, ...]
    omitted: tuple[OmittedCandidate, ...]
    final_tokens_estimate: int
    remaining_budget_estimate: int


@dataclass(frozen=True, slots=True)
class RepoContext:
    project_dir: str
    repo_root: str
    base_ref: str
    base_commit: str
    head_commit: str


@dataclass(frozen=True, slots=True)
class GitSnapshot:
    changed_files: tuple[ChangedFileRecord, ...]
    name_status_text: str
    diff_text: str


@dataclass(frozen=True, slots=True)
class RecallTargetRow:
    """Outcome of one recall-tool query, as written to the targets table."""

    target: str
    status: RecallTargetStatus
    total_paths: int = 0
    eligible_paths: int = 0
    limits_reached: bool = False
    max_depth_reached: int | None = None
    note: str | None = None


@dataclass(frozen=True, slots=True)
class RelatedSelectionRow:
    path: str
    frequency: int
    tokens_estimate: int | None
    decision: SelectionDecision
    reason: str


@dataclass(frozen=True, slots=True)
class ContextPackOptions:
    """Run configuration. Immutable for the lifetime of a run."""

    project_dir: str
    base_ref: str | None = None
    budget: int = DEFAULT_BUDGET
    output_name: str = DEFAULT_OUTPUT_NAME
    tmp_output: bool = True
    output_dir: str | None = None
    include_dependents: bool = True
    include_docs: bool = False
    include_tests: bool = True
    include_lockfiles: bool = False
    include_env: bool = False
    include_secrets: bool = False
    diff_context: int = DEFAULT_DIFF_CONTEXT
    include_pr_description: bool = True
    pr_ref: str | None = None
    fail_over_budget: bool = False
    debug: bool = False
    close_test_reserve_ratio: float = DEFAULT_CLOSE_TEST_RESERVE_RATIO
    close_test_reserve_min_tokens: int = DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS
    close_test_max_distance: int = DEFAULT_CLOSE_TEST_MAX_DISTANCE
    close_test_shared_segments: int = DEFAULT_CLOSE_TEST_SHARED_SEGMENTS

    def __post_init__(self) -> None:
        if self.budget < 1:
            raise ValueError(f"budget must be >= 1, got {self.budget}")
        if self.diff_context < 0:
            raise ValueError(f"diff_context must be >= 0, got {self.diff_context}")
        if not self.output_name.strip():
            raise ValueError("output_name must not be empty")

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        project_dir: str,
        base_ref: str | None = None,
        pr_ref: str | None = None,
        debug: bool = False,
    ) -> ContextPackOptions:
        """Build run options from a validated effective config mapping."""

        pack = config.get("pack", {})
        filters = config.get("filters", {})
        selection = config.get("selection", {})
        output_dir = pack.get("output_dir") or None

        return cls(
            project_dir=project_dir,
            base_ref=(base_ref or "").strip() or None,
            budget=int(pack.get("budget", DEFAULT_BUDGET)),
            output_name=str(pack.get("output_name", DEFAULT_OUTPUT_NAME)),
            tmp_output=bool(pack.get("tmp_output", True)),
            output_dir=str(output_dir) if output_dir is not None else None,
            include_dependents=bool(filters.get("include_dependents", True)),
            include_docs=bool(filters.get("include_docs", False)),
            include_tests=bool(filters.get("include_tests", True)),
            include_lockfiles=bool(filters.get("include_lockfiles", False)),
            include_env=bool(filters.get("include_env", False)),
            include_secrets=bool(filters.get("include_secrets", False)),
            diff_context=int(pack.get("diff_context", DEFAULT_DIFF_CONTEXT)),
            include_pr_description=bool(pack.get("include_pr_description", True)),
            pr_ref=(pr_ref or "").strip() or None,
            fail_over_budget=bool(pack.get("fail_over_budget", False)),
            debug=debug,
            close_test_reserve_ratio=float(
                selection.get("close_test_reserve_ratio", DEFAULT_CLOSE_TEST_RESERVE_RATIO)
            ),
            close_test_reserve_min_tokens=int(
                selection.get(
                    "close_test_reserve_min_tokens", DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS
                )
            ),
            close_test_max_distance=int(
                selection.get("close_test_max_distance", DEFAULT_CLOSE_TEST_MAX_DISTANCE)
            ),
            close_test_shared_segments=int(
                selection.get("close_test_shared_segments", DEFAULT_CLOSE_TEST_SHARED_SEGMENTS)
            ),
        )


def _validate_candidate(candidate: RelatedCandidate) -> None:
    if not candidate.path:
        raise ValueError("candidate path must not be empty")
    if candidate.distance < 0:
        raise ValueError(f"{candidate.path}: distance must be >= 0, got {candidate.distance}")
    if candidate.frequency < 1:
        raise ValueError(f"{candidate.path}: frequency must be >= 1, got {candidate.frequency}")
    if candidate.estimated_tokens is not None and candidate.estimated_tokens < 0:
        raise ValueError(
            f"{candidate.path}: estimated_tokens must be >= 0, got {candidate.estimated_tokens}"
        )


__all__ = [
    "WITHIN_BUDGET",
    "BudgetFitResult",
    "ChangedFileRecord",
    "ContextPackOptions",
    "GitSnapshot",
    "OmissionReason",
    "OmittedCandidate",
    "OmittedEntry",
    "RankedRelatedCandidate",
    "RecallTargetRow",
    "RecallTargetStatus",
    "RelatedCandidate",
    "RelatedSelectionRow",
    "RepoContext",
    "SelectionDecision",
]
