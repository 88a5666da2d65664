"""Unit tests for close-test proximity rules."""

from __future__ import annotations

import pytest

from context_packer.domain.models import RelatedCandidate
from context_packer.selection_plane.proximity import (
    ChangeProximity,
    is_test_data_path,
    is_test_like_path,
    max_shared_prefix_segments,
    shared_prefix_length,
)


def _candidate(path: str, distance: int) -> RelatedCandidate:
    return RelatedCandidate(
        path=path, reason="Dependent", distance=distance, frequency=1, relation_weight=70
    )


def test_shared_prefix_length() -> None:
    assert shared_prefix_length(("a", "b", "c"), ("a", "b", "d")) == 2
    assert shared_prefix_length(("a",), ()) == 0
    assert shared_prefix_length(("x", "b"), ("a", "b")) == 0


def test_max_shared_prefix_is_case_insensitive() -> None:
    changed = [("services", "billing", "api", "handler.py"), ("web", "app.ts")]
    assert max_shared_prefix_segments("Services/Billing/API/tests/test_handler.py", changed) == 3
    assert max_shared_prefix_segments("other/file.py", changed) == 0
    assert max_shared_prefix_segments("other/file.py", []) == 0


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("fixtures/testdata/sample.json", True),
        ("pkg/test-data/input.txt", True),
        ("pkg/Test_Data/input.txt", True),
        ("pkg/data/input.txt", False),
    ],
)
def test_is_test_data_path(path: str, expected: bool) -> None:
    assert is_test_data_path(path) is expected


def test_test_like_covers_tests_and_test_data() -> None:
    assert is_test_like_path("tests/test_api.py")
    assert is_test_like_path("pkg/testdata/golden.txt")
    assert not is_test_like_path("src/api.py")


def test_close_by_distance() -> None:
    proximity = ChangeProximity(["src/app.py"], max_distance=2, shared_segments=4)
    assert proximity.is_close(_candidate("elsewhere/tests/test_x.py", 2))
    assert not proximity.is_close(_candidate("elsewhere/tests/test_x.py", 3))


def test_close_by_shared_prefix() -> None:
    proximity = ChangeProximity(
        ["services/billing/api/v1/handler.py"], max_distance=0, shared_segments=4
    )
    near = _candidate("services/billing/api/v1/tests/test_handler.py", 5)
    far = _candidate("services/billing/api/tests/test_handler.py", 5)
    assert proximity.is_close(near)
    assert not proximity.is_close(far)


def test_distant_test_detection_ignores_non_tests() -> None:
    proximity = ChangeProximity(["src/app.py"], max_distance=1, shared_segments=4)
    assert proximity.is_distant_test(_candidate("tests/test_far.py", 5))
    assert not proximity.is_distant_test(_candidate("src/far_module.py", 5))
    assert not proximity.is_distant_test(_candidate("tests/test_near.py", 1))
