"""Related-candidate merging and strict total ordering."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Final

from context_packer.domain.models import RankedRelatedCandidate, RelatedCandidate

if TYPE_CHECKING:
    from collections.abc import Iterable

RELATION_WEIGHTS: Final[dict[str, int]] = {
    "TargetFile": 100,
    "DirectDependency": 90,
    "DirectDependent": 90,
    "Dependency": 70,
    "Dependent": 70,
}
UNKNOWN_RELATION_WEIGHT: Final[int] = 50


def relation_weight_for_reason(reason: str) -> int:
    return RELATION_WEIGHTS.get(reason, UNKNOWN_RELATION_WEIGHT)


def candidate_sort_key(candidate: RelatedCandidate) -> tuple[int, int, int, float, str]:
    """Weight desc, frequency desc, distance asc, estimate asc (missing last), path."""

    return (
        -candidate.relation_weight,
        -candidate.frequency,
        candidate.distance,
        candidate.token_cost,
        candidate.path,
    )


def merge_candidate(existing: RelatedCandidate, mention: RelatedCandidate) -> RelatedCandidate:
    """Fold another mention of the same path into an accumulated candidate."""

    if existing.path != mention.path:
        raise ValueError(f"cannot merge {mention.path!r} into {existing.path!r}")
    return replace(
        existing,
        frequency=existing.frequency + 1,
        distance=min(existing.distance, mention.distance),
        relation_weight=max(existing.relation_weight, mention.relation_weight),
    )


def rank_related_candidates(
    candidates: Iterable[RelatedCandidate],
) -> list[RankedRelatedCandidate]:
    """Sort by priority and assign dense ranks ``1..n``.

    Already-ranked input is re-ranked from scratch, so applying this twice is a no-op.
    """

    ordered = sorted(candidates, key=candidate_sort_key)
    return [
        RankedRelatedCandidate(
            path=candidate.path,
            reason=candidate.reason,
            distance=candidate.distance,
            frequency=candidate.frequency,
            relation_weight=candidate.relation_weight,
            estimated_tokens=candidate.estimated_tokens,
            rank=index,
        )
        for index, candidate in enumerate(ordered, start=1)
    ]


__all__ = [
    "RELATION_WEIGHTS",
    "UNKNOWN_RELATION_WEIGHT",
    "candidate_sort_key",
    "merge_candidate",
    "rank_related_candidates",
    "relation_weight_for_reason",
]
