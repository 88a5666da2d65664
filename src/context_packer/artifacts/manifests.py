"""Companion manifests written next to every pack.

All tables are sorted by path so that two runs over the same inputs produce
identical files.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from context_packer.constants import RECALL_TARGETS_HEADER, RELATED_SELECTION_HEADER
from context_packer.domain.models import (
    WITHIN_BUDGET,
    OmissionReason,
    RelatedSelectionRow,
    SelectionDecision,
)
from context_packer.utils.fs import write_lines

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping, Sequence

    from context_packer.artifacts.report import ReportPaths
    from context_packer.domain.models import (
        OmittedEntry,
        RankedRelatedCandidate,
        RecallTargetRow,
    )


@dataclass(frozen=True, slots=True)
class ManifestSet:
    """Everything the manifests describe for one run."""

    changed_included: tuple[str, ...]
    related_included: tuple[str, ...]
    omitted_changed: tuple[OmittedEntry, ...]
    omitted_related: Mapping[str, OmissionReason]
    selection_rows: tuple[RelatedSelectionRow, ...]
    recall_rows: tuple[RecallTargetRow, ...]


def build_selection_rows(
    ranked: Sequence[RankedRelatedCandidate],
    included_paths: Collection[str],
    omitted_reasons: Mapping[str, OmissionReason],
) -> tuple[RelatedSelectionRow, ...]:
    """One row per ranked candidate plus one per path dropped before ranking."""

    rows: list[RelatedSelectionRow] = []
    for candidate in ranked:
        included = candidate.path in included_paths
        rows.append(
            RelatedSelectionRow(
                path=candidate.path,
                frequency=candidate.frequency,
                tokens_estimate=candidate.estimated_tokens,
                decision=SelectionDecision.INCLUDED if included else SelectionDecision.OMITTED,
                reason=(
                    WITHIN_BUDGET
                    if included
                    else omitted_reasons.get(candidate.path, OmissionReason.OVER_BUDGET)
                ),
            )
        )

    ranked_paths = {candidate.path for candidate in ranked}
    for path, reason in omitted_reasons.items():
        if path in ranked_paths:
            continue
        rows.append(
            RelatedSelectionRow(
                path=path,
                frequency=0,
                tokens_estimate=None,
                decision=SelectionDecision.OMITTED,
                reason=reason,
            )
        )
    return tuple(sorted(rows, key=lambda row: row.path))


def format_omitted_entries(entries: Iterable[OmittedEntry]) -> list[str]:
    return [f"{entry.path}\t{entry.reason}" for entry in sorted(entries, key=lambda e: e.path)]


def format_omitted_reasons(reasons: Mapping[str, OmissionReason]) -> list[str]:
    return [f"{path}\t{reasons[path]}" for path in sorted(reasons)]


def format_selection_rows(rows: Iterable[RelatedSelectionRow]) -> list[str]:
    lines = [RELATED_SELECTION_HEADER]
    for row in rows:
        estimate = "-" if row.tokens_estimate is None else str(row.tokens_estimate)
        lines.append(f"{row.path}\t{row.frequency}\t{estimate}\t{row.decision}\t{row.reason}")
    return lines


def format_recall_rows(rows: Iterable[RecallTargetRow]) -> list[str]:
    lines = [RECALL_TARGETS_HEADER]
    for row in rows:
        max_depth = "" if row.max_depth_reached is None else str(row.max_depth_reached)
        lines.append(
            "\t".join(
                (
                    row.target,
                    str(row.status),
                    str(row.total_paths),
                    str(row.eligible_paths),
                    "true" if row.limits_reached else "false",
                    max_depth,
                    row.note or "",
                )
            )
        )
    return lines


def write_manifests(paths: ReportPaths, manifests: ManifestSet) -> None:
    write_lines(paths.changed_manifest, list(manifests.changed_included))
    write_lines(paths.related_manifest, list(manifests.related_included))
    write_lines(paths.omitted_manifest, format_omitted_entries(manifests.omitted_changed))
    write_lines(paths.related_omitted_manifest, format_omitted_reasons(manifests.omitted_related))
    write_lines(paths.related_selection_manifest, format_selection_rows(manifests.selection_rows))
    write_lines(paths.recall_targets_manifest, format_recall_rows(manifests.recall_rows))


__all__ = [
    "ManifestSet",
    "build_selection_rows",
    "format_omitted_entries",
    "format_omitted_reasons",
    "format_recall_rows",
    "format_selection_rows",
    "write_manifests",
]
