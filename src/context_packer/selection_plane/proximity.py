"""Test-likeness and closeness of related candidates to the change-set."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from context_packer.constants import (
    DEFAULT_CLOSE_TEST_MAX_DISTANCE,
    DEFAULT_CLOSE_TEST_SHARED_SEGMENTS,
)
from context_packer.selection_plane.classifier import is_test_path, path_segments

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from context_packer.domain.models import RelatedCandidate

TEST_DATA_SEGMENTS: Final[frozenset[str]] = frozenset({"test_data", "test-data", "testdata"})


def lower_segments(path: str) -> tuple[str, ...]:
    return tuple(segment.lower() for segment in path_segments(path))


def shared_prefix_length(left: Sequence[str], right: Sequence[str]) -> int:
    count = 0
    for left_segment, right_segment in zip(left, right, strict=False):
        if left_segment != right_segment:
            break
        count += 1
    return count


def max_shared_prefix_segments(path: str, changed_segments: Iterable[Sequence[str]]) -> int:
    candidate_segments = lower_segments(path)
    return max(
        (shared_prefix_length(candidate_segments, segments) for segments in changed_segments),
        default=0,
    )


def is_test_data_path(path: str) -> bool:
    return any(segment in TEST_DATA_SEGMENTS for segment in lower_segments(path))


def is_test_like_path(path: str) -> bool:
    """Test-shaped path or anything under a test-data directory."""

    return is_test_path(path) or is_test_data_path(path)


class ChangeProximity:
    """Closeness policy bound to one run's eligible changed files.

    A candidate is close when it is within ``max_distance`` hops of a changed
    file, or shares at least ``shared_segments`` leading path segments with one.
    """

    def __init__(
        self,
        changed_paths: Iterable[str],
        *,
        max_distance: int = DEFAULT_CLOSE_TEST_MAX_DISTANCE,
        shared_segments: int = DEFAULT_CLOSE_TEST_SHARED_SEGMENTS,
    ) -> None:
        self._changed_segments = tuple(lower_segments(path) for path in changed_paths)
        self._max_distance = max_distance
        self._shared_segments = shared_segments

    def is_close(self, candidate: RelatedCandidate) -> bool:
        if candidate.distance <= self._max_distance:
            return True
        shared = max_shared_prefix_segments(candidate.path, self._changed_segments)
        return shared >= self._shared_segments

    def is_distant_test(self, candidate: RelatedCandidate) -> bool:
        """Test-like candidates that are not close get dropped before ranking."""

        return is_test_like_path(candidate.path) and not self.is_close(candidate)


__all__ = [
    "TEST_DATA_SEGMENTS",
    "ChangeProximity",
    "is_test_data_path",
    "is_test_like_path",
    "lower_segments",
    "max_shared_prefix_segments",
    "shared_prefix_length",
]
