"""
context-packer - unit tests for related-file budget fitting.

File: tests/unit/selection_plane/test_budget.py
Last updated: 2026-10-19

Purpose
- Validate greedy fitting, the close-test reserve, and the return of unused reserve
  to previously omitted non-test candidates.

What this test file should cover
- Reserve arithmetic including clamping and the minimum floor.
- Worked three-pass examples.
- Candidates without an estimate never fit.
"""

from __future__ import annotations

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from context_packer.domain.models import OmissionReason, RankedRelatedCandidate
from context_packer.selection_plane.budget import (
    compute_close_test_reserve,
    fit_related_candidates_to_budget,
    fit_related_candidates_with_close_test_preference,
    fit_within_budget,
)


def _ranked(path: str, rank: int, tokens: int | None) -> RankedRelatedCandidate:
    return RankedRelatedCandidate(
        path=path,
        reason="DirectDependency",
        distance=1,
        frequency=1,
        relation_weight=90,
        estimated_tokens=tokens,
        rank=rank,
    )


def _is_test(candidate: RankedRelatedCandidate) -> bool:
    return candidate.path.startswith("tests/")


def test_fit_within_budget_skips_and_continues() -> None:
    candidates = [_ranked("a", 1, 50), _ranked("b", 2, 80), _ranked("c", 3, 30)]

    fit = fit_within_budget(100, candidates)

    assert [c.path for c in fit.included] == ["a", "c"]
    assert [c.path for c in fit.omitted] == ["b"]
    assert fit.used_tokens == 80
    assert fit.remaining_budget == 20


def test_missing_estimate_never_fits() -> None:
    fit = fit_within_budget(1_000, [_ranked("unknown", 1, None), _ranked("zero", 2, 0)])
    assert [c.path for c in fit.included] == ["zero"]
    assert [c.path for c in fit.omitted] == ["unknown"]


def test_negative_remaining_budget_is_clamped() -> None:
    fit = fit_within_budget(-5, [_ranked("a", 1, 0), _ranked("b", 2, 1)])
    assert [c.path for c in fit.included] == ["a"]
    assert fit.remaining_budget == 0


@pytest.mark.parametrize(
    ("related_budget", "has_tests", "ratio", "minimum", "expected"),
    [
        (60, True, 0.34, 0, 20),
        (60, True, 0.5, 0, 30),
        (60, False, 0.5, 0, 0),
        (0, True, 0.5, 100, 0),
        (10_000, True, 0.25, 4096, 4096),
        (100_000, True, 0.25, 4096, 25_000),
        (1_000, True, 0.25, 4096, 1_000),
        (100, True, 7.0, 0, 100),
        (100, True, -1.0, 0, 0),
        (100, True, math.nan, 10, 10),
    ],
)
def test_compute_close_test_reserve(
    related_budget: int, has_tests: bool, ratio: float, minimum: int, expected: int
) -> None:
    assert (
        compute_close_test_reserve(
            related_budget,
            has_close_tests=has_tests,
            reserve_ratio=ratio,
            reserve_min_tokens=minimum,
        )
        == expected
    )


def test_close_test_preference_worked_example() -> None:
    candidates = [
        _ranked("src/a.py", 1, 35),
        _ranked("src/b.py", 2, 25),
        _ranked("tests/c.py", 3, 20),
    ]

    result = fit_related_candidates_with_close_test_preference(
        budget=100,
        baseline_tokens=40,
        candidates=candidates,
        is_close_test_candidate=_is_test,
        reserve_ratio=0.34,
        reserve_min_tokens=0,
    )

    assert [c.path for c in result.included] == ["src/a.py", "tests/c.py"]
    assert [o.candidate.path for o in result.omitted] == ["src/b.py"]
    assert all(o.reason is OmissionReason.OVER_BUDGET for o in result.omitted)
    assert result.final_tokens_estimate == 95
    assert result.remaining_budget_estimate == 5


def test_unused_reserve_is_returned_to_non_tests() -> None:
    candidates = [
        _ranked("src/a.py", 1, 30),
        _ranked("src/b.py", 2, 20),
        _ranked("tests/c.py", 3, 5),
    ]

    result = fit_related_candidates_with_close_test_preference(
        budget=100,
        baseline_tokens=40,
        candidates=candidates,
        is_close_test_candidate=_is_test,
        reserve_ratio=0.5,
        reserve_min_tokens=0,
    )

    assert [c.path for c in result.included] == ["src/a.py", "src/b.py", "tests/c.py"]
    assert result.omitted == ()
    assert result.final_tokens_estimate == 95
    assert result.remaining_budget_estimate == 5


def test_close_test_fit_sorts_omitted_by_path() -> None:
    candidates = [
        _ranked("src/a.py", 1, 50),
        _ranked("zz/big.py", 2, 60),
        _ranked("tests/b.py", 3, 30),
        _ranked("src/c.py", 4, 25),
        _ranked("lib/m.py", 5, 30),
    ]

    result = fit_related_candidates_with_close_test_preference(
        budget=100,
        baseline_tokens=0,
        candidates=candidates,
        is_close_test_candidate=_is_test,
        reserve_ratio=0.2,
        reserve_min_tokens=0,
    )

    assert [c.path for c in result.included] == ["src/a.py", "src/c.py"]
    assert [o.candidate.path for o in result.omitted] == [
        "lib/m.py",
        "tests/b.py",
        "zz/big.py",
    ]
    assert result.final_tokens_estimate == 75
    assert result.remaining_budget_estimate == 25


def test_plain_fit_does_not_reserve_for_tests() -> None:
    candidates = [
        _ranked("src/a.py", 1, 35),
        _ranked("src/b.py", 2, 25),
        _ranked("tests/c.py", 3, 20),
    ]

    result = fit_related_candidates_to_budget(
        budget=100, baseline_tokens=40, candidates=candidates
    )

    assert [c.path for c in result.included] == ["src/a.py", "src/b.py"]
    assert [o.candidate.path for o in result.omitted] == ["tests/c.py"]
    assert result.final_tokens_estimate == 100
    assert result.remaining_budget_estimate == 0


def test_baseline_over_budget_only_fits_zero_cost_candidates() -> None:
    result = fit_related_candidates_with_close_test_preference(
        budget=10,
        baseline_tokens=50,
        candidates=[_ranked("src/a.py", 1, 0), _ranked("tests/t.py", 2, 1)],
        is_close_test_candidate=_is_test,
        reserve_min_tokens=0,
    )
    assert [c.path for c in result.included] == ["src/a.py"]
    assert [o.candidate.path for o in result.omitted] == ["tests/t.py"]
    assert result.remaining_budget_estimate == 0


_TOKENS = st.one_of(st.none(), st.integers(min_value=0, max_value=400))


@settings(max_examples=80, derandomize=True, deadline=None)
@given(
    sizes=st.lists(st.tuples(st.booleans(), _TOKENS), max_size=10),
    budget=st.integers(min_value=1, max_value=2_000),
    baseline=st.integers(min_value=0, max_value=1_000),
    ratio=st.floats(min_value=0.0, max_value=1.0),
    minimum=st.integers(min_value=0, max_value=500),
)
def test_close_test_fit_partitions_and_respects_budget(
    sizes: list[tuple[bool, int | None]],
    budget: int,
    baseline: int,
    ratio: float,
    minimum: int,
) -> None:
    candidates = [
        _ranked(f"tests/t{index}.py" if is_test else f"src/m{index}.py", index + 1, tokens)
        for index, (is_test, tokens) in enumerate(sizes)
    ]

    result = fit_related_candidates_with_close_test_preference(
        budget=budget,
        baseline_tokens=baseline,
        candidates=candidates,
        is_close_test_candidate=_is_test,
        reserve_ratio=ratio,
        reserve_min_tokens=minimum,
    )

    included = {c.path for c in result.included}
    omitted = {o.candidate.path for o in result.omitted}
    assert included.isdisjoint(omitted)
    assert included | omitted == {c.path for c in candidates}
    assert all(c.estimated_tokens is not None for c in result.included)
    related_used = sum(c.estimated_tokens or 0 for c in result.included)
    assert related_used <= max(0, budget - baseline)
    assert result.final_tokens_estimate == baseline + related_used
    assert [c.rank for c in result.included] == sorted(c.rank for c in result.included)
    omitted_paths = [o.candidate.path for o in result.omitted]
    assert omitted_paths == sorted(omitted_paths)
    assert result.remaining_budget_estimate == max(0, budget - result.final_tokens_estimate)


@settings(max_examples=80, derandomize=True, deadline=None)
@given(
    tokens=st.lists(_TOKENS, max_size=12),
    budget=st.integers(min_value=1, max_value=2_000),
    baseline=st.integers(min_value=0, max_value=1_000),
)
def test_plain_fit_partitions_and_respects_budget(
    tokens: list[int | None], budget: int, baseline: int
) -> None:
    candidates = [
        _ranked(f"src/m{index}.py", index + 1, cost) for index, cost in enumerate(tokens)
    ]

    result = fit_related_candidates_to_budget(
        budget=budget, baseline_tokens=baseline, candidates=candidates
    )

    included = [c.path for c in result.included]
    omitted = [o.candidate.path for o in result.omitted]
    assert sorted(included + omitted) == sorted(c.path for c in candidates)
    assert included == [c.path for c in candidates if c.path in set(included)]
    assert all(o.reason is OmissionReason.OVER_BUDGET for o in result.omitted)
    related_used = sum(c.estimated_tokens or 0 for c in result.included)
    assert related_used <= max(0, budget - baseline)
    assert result.final_tokens_estimate == baseline + related_used
    assert result.remaining_budget_estimate == max(0, budget - baseline) - related_used
