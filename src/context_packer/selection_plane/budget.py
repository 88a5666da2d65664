"""
context-packer - related-file budget fitting

File: src/context_packer/selection_plane/budget.py
Last updated: 2026-10-19

Purpose
- Partition ranked related candidates into included and omitted sets under a
  token budget.

What should be included in this file
- ``fit_within_budget``: greedy first-fit primitive over a remaining-budget value.
- ``fit_related_candidates_to_budget``: one greedy pass over the full list.
- ``fit_related_candidates_with_close_test_preference``: reserve part of the related
  budget for close test files, then hand unused reserve back to non-test files.

Functional requirements
- Each pass is a pure function from (remaining budget, candidates) to a
  ``PartialFit``; passes compose by threading the remaining budget forward.
- Candidates without an estimate never fit.
- Greedy by priority order only. No backtracking or knapsack optimization.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from context_packer.constants import (
    DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS,
    DEFAULT_CLOSE_TEST_RESERVE_RATIO,
)
from context_packer.domain.models import (
    BudgetFitResult,
    OmissionReason,
    OmittedCandidate,
    RankedRelatedCandidate,
)

CandidatePredicate = Callable[[RankedRelatedCandidate], bool]


@dataclass(frozen=True, slots=True)
class PartialFit:
    """Outcome of one greedy pass."""

    included: tuple[RankedRelatedCandidate, ...]
    omitted: tuple[RankedRelatedCandidate, ...]
    remaining_budget: int
    used_tokens: int


def fit_within_budget(
    remaining_budget: int,
    candidates: Sequence[RankedRelatedCandidate],
) -> PartialFit:
    """Walk ``candidates`` in order, keeping every one that still fits."""

    remaining = max(0, remaining_budget)
    used = 0
    included: list[RankedRelatedCandidate] = []
    omitted: list[RankedRelatedCandidate] = []

    for candidate in candidates:
        cost = candidate.estimated_tokens
        if cost is not None and cost <= remaining:
            included.append(candidate)
            remaining -= cost
            used += cost
        else:
            omitted.append(candidate)

    return PartialFit(
        included=tuple(included),
        omitted=tuple(omitted),
        remaining_budget=remaining,
        used_tokens=used,
    )


def compute_close_test_reserve(
    related_budget: int,
    *,
    has_close_tests: bool,
    reserve_ratio: float = DEFAULT_CLOSE_TEST_RESERVE_RATIO,
    reserve_min_tokens: int = DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS,
) -> int:
    """Budget held back for close tests during the first non-test pass."""

    if not has_close_tests or related_budget <= 0:
        return 0
    ratio = reserve_ratio if math.isfinite(reserve_ratio) else 0.0
    clamped_ratio = min(1.0, max(0.0, ratio))
    ratio_reserve = math.floor(related_budget * clamped_ratio)
    min_reserve = min(related_budget, max(0, reserve_min_tokens))
    return min(related_budget, max(min_reserve, ratio_reserve))


def fit_related_candidates_to_budget(
    *,
    budget: int,
    baseline_tokens: int,
    candidates: Sequence[RankedRelatedCandidate],
) -> BudgetFitResult:
    """Single greedy pass over the full ranked list.

    Unused budget is not handed back to later candidates beyond what the single
    pass already does.
    """

    related_budget = max(0, budget - baseline_tokens)
    fit = fit_within_budget(related_budget, candidates)
    return BudgetFitResult(
        included=fit.included,
        omitted=_tag_over_budget(fit.omitted),
        final_tokens_estimate=baseline_tokens + fit.used_tokens,
        remaining_budget_estimate=fit.remaining_budget,
    )


def fit_related_candidates_with_close_test_preference(
    *,
    budget: int,
    baseline_tokens: int,
    candidates: Sequence[RankedRelatedCandidate],
    is_close_test_candidate: CandidatePredicate,
    reserve_ratio: float = DEFAULT_CLOSE_TEST_RESERVE_RATIO,
    reserve_min_tokens: int = DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS,
    logger: Any | None = None,
) -> BudgetFitResult:
    """Three-pass fit that keeps close tests from being starved by bulk files.

    1. Non-tests into ``related_budget - reserve``.
    2. Close tests into whatever pass 1 left unused.
    3. Pass-1 leftovers into whatever pass 2 left unused.
    """

    related_budget = max(0, budget - baseline_tokens)
    close_tests = _by_rank_then_path(c for c in candidates if is_close_test_candidate(c))
    non_tests = _by_rank_then_path(c for c in candidates if not is_close_test_candidate(c))

    reserve = compute_close_test_reserve(
        related_budget,
        has_close_tests=bool(close_tests),
        reserve_ratio=reserve_ratio,
        reserve_min_tokens=reserve_min_tokens,
    )

    first_pass = fit_within_budget(related_budget - reserve, non_tests)
    test_pass = fit_within_budget(related_budget - first_pass.used_tokens, close_tests)
    reclaim_pass = fit_within_budget(test_pass.remaining_budget, first_pass.omitted)

    included = _by_rank_then_path(
        (*first_pass.included, *test_pass.included, *reclaim_pass.included)
    )
    omitted = sorted(
        (*test_pass.omitted, *reclaim_pass.omitted),
        key=lambda candidate: (candidate.path, candidate.rank),
    )
    final_tokens = baseline_tokens + sum(
        candidate.estimated_tokens or 0 for candidate in included
    )
    result = BudgetFitResult(
        included=included,
        omitted=_tag_over_budget(omitted),
        final_tokens_estimate=final_tokens,
        remaining_budget_estimate=max(0, budget - final_tokens),
    )

    log = logger if logger is not None else structlog.get_logger(__name__)
    log.debug(
        "budget_fit_completed",
        policy="close-test-preference",
        budget=budget,
        baseline_tokens=baseline_tokens,
        related_budget=related_budget,
        reserve_tokens=reserve,
        close_test_candidates=len(close_tests),
        non_test_candidates=len(non_tests),
        first_pass_included=len(first_pass.included),
        test_pass_included=len(test_pass.included),
        reclaim_pass_included=len(reclaim_pass.included),
        final_tokens_estimate=result.final_tokens_estimate,
    )
    return result


def _by_rank_then_path(
    candidates: Iterable[RankedRelatedCandidate],
) -> tuple[RankedRelatedCandidate, ...]:
    return tuple(sorted(candidates, key=lambda candidate: (candidate.rank, candidate.path)))


def _tag_over_budget(
    candidates: Sequence[RankedRelatedCandidate],
) -> tuple[OmittedCandidate, ...]:
    return tuple(
        OmittedCandidate(candidate=candidate, reason=OmissionReason.OVER_BUDGET)
        for candidate in candidates
    )


__all__ = [
    "CandidatePredicate",
    "PartialFit",
    "compute_close_test_reserve",
    "fit_related_candidates_to_budget",
    "fit_related_candidates_with_close_test_preference",
    "fit_within_budget",
]
