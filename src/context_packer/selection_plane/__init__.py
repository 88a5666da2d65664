"""Selection plane: path eligibility, candidate ranking, proximity, and budget fitting."""

from context_packer.selection_plane.budget import (
    PartialFit,
    compute_close_test_reserve,
    fit_related_candidates_to_budget,
    fit_related_candidates_with_close_test_preference,
    fit_within_budget,
)
from context_packer.selection_plane.classifier import (
    FilterDecision,
    classify_path,
    evaluate_changed_file,
    evaluate_related_file,
    normalize_path,
)
from context_packer.selection_plane.proximity import ChangeProximity, is_test_like_path
from context_packer.selection_plane.ranking import (
    candidate_sort_key,
    merge_candidate,
    rank_related_candidates,
    relation_weight_for_reason,
)

__all__ = [
    "ChangeProximity",
    "FilterDecision",
    "PartialFit",
    "candidate_sort_key",
    "classify_path",
    "compute_close_test_reserve",
    "evaluate_changed_file",
    "evaluate_related_file",
    "fit_related_candidates_to_budget",
    "fit_related_candidates_with_close_test_preference",
    "fit_within_budget",
    "is_test_like_path",
    "merge_candidate",
    "normalize_path",
    "rank_related_candidates",
    "relation_weight_for_reason",
]
