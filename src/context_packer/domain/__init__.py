"""Domain entities shared by every context-packer plane."""

from context_packer.domain.models import (
    WITHIN_BUDGET,
    BudgetFitResult,
    ChangedFileRecord,
    ContextPackOptions,
    GitSnapshot,
    OmissionReason,
    OmittedCandidate,
    OmittedEntry,
    RankedRelatedCandidate,
    RecallTargetRow,
    RecallTargetStatus,
    RelatedCandidate,
    RelatedSelectionRow,
    RepoContext,
    SelectionDecision,
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
