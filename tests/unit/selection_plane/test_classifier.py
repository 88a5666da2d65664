"""
context-packer - unit tests for the path eligibility classifier.

File: tests/unit/selection_plane/test_classifier.py
Last updated: 2026-10-19

Purpose
- Validate ordered exclusion rules and the changed/related asymmetry for docs and tests.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from context_packer.domain.models import ContextPackOptions, OmissionReason
from context_packer.selection_plane.classifier import (
    classify_path,
    evaluate_changed_file,
    evaluate_related_file,
    file_extension,
    is_hard_excluded_path,
    is_recognized_source,
    is_secret_path,
    is_test_path,
    normalize_path,
)


def _options(**overrides: object) -> ContextPackOptions:
    return ContextPackOptions(project_dir="/repo", **overrides)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("./src/app.py", "src/app.py"),
        ("src\\win\\path.ts", "src/win/path.ts"),
        ("  lib/mod.rs ", "lib/mod.rs"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_file_extension_is_lowercased_and_basename_scoped() -> None:
    assert file_extension("src/Main.PY") == ".py"
    assert file_extension("some.dir/Makefile") == ""
    assert file_extension("archive.tar.gz") == ".gz"


@pytest.mark.parametrize(
    "path",
    [
        "node_modules/react/index.js",
        "build/output.js",
        "pkg/__pycache__/mod.cpython-312.pyc",
        "src/context_packer.egg-info/PKG-INFO",
        "assets/.DS_Store",
        "notes/chatgpt_code_dump.txt",
        "prompt/pr-context.txt",
    ],
)
def test_hard_excluded_paths(path: str) -> None:
    assert is_hard_excluded_path(path)
    decision = classify_path(path, _options(), include_docs=True, include_tests=True)
    assert decision.include is False
    assert decision.reason is OmissionReason.GENERATED_CACHE


@pytest.mark.parametrize(
    "path",
    [
        ".npmrc",
        "config/.netrc",
        "home/.aws/credentials",
        "deploy/id_ed25519",
        "certs/server.PEM",
        "keys/my-service-account.json",
        "android/app/google-services.json",
    ],
)
def test_secret_paths(path: str) -> None:
    assert is_secret_path(path)
    assert evaluate_changed_file(path, _options()).reason is OmissionReason.SECRET
    assert evaluate_changed_file(path, _options(include_secrets=True)).include is True


def test_env_files_filtered_unless_enabled() -> None:
    for path in (".env", "app/.env.local", ".envrc"):
        assert evaluate_related_file(path, _options()).reason is OmissionReason.ENV
        assert evaluate_related_file(path, _options(include_env=True)).include is True


def test_lockfiles_filtered_unless_enabled() -> None:
    assert evaluate_changed_file("web/pnpm-lock.yaml", _options()).reason is (
        OmissionReason.LOCKFILE
    )
    assert evaluate_changed_file("Cargo.lock", _options(include_lockfiles=True)).include is True


def test_rule_order_first_match_wins() -> None:
    # A lockfile under a hard-excluded segment reports the generated/cache reason.
    decision = evaluate_changed_file("node_modules/pkg/yarn.lock", _options())
    assert decision.reason is OmissionReason.GENERATED_CACHE

    # An env file inside docs is reported as env, not docs.
    decision = evaluate_related_file("docs/.env", _options())
    assert decision.reason is OmissionReason.ENV


def test_changed_files_are_never_filtered_as_docs_or_tests() -> None:
    options = _options(include_docs=False, include_tests=False)
    assert evaluate_changed_file("docs/guide.md", options).include is True
    assert evaluate_changed_file("tests/test_api.py", options).include is True


def test_related_files_honour_docs_and_tests_toggles() -> None:
    assert evaluate_related_file("docs/guide.md", _options()).reason is OmissionReason.DOCS
    assert evaluate_related_file("docs/guide.md", _options(include_docs=True)).include is True

    assert evaluate_related_file("src/api.test.ts", _options()).include is True
    decision = evaluate_related_file("src/api.test.ts", _options(include_tests=False))
    assert decision.reason is OmissionReason.TESTS


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("tests/helpers.py", True),
        ("src/__tests__/widget.tsx", True),
        ("pkg/test_models.py", True),
        ("pkg/models_test.go", True),
        ("web/app.spec.ts", True),
        ("src/contest.py", False),
        ("src/testing_utils.py", False),
    ],
)
def test_is_test_path(path: str, expected: bool) -> None:
    assert is_test_path(path) is expected


def test_unknown_extensions_are_still_eligible() -> None:
    assert is_recognized_source("data/blob.xyz") is False
    assert evaluate_related_file("data/blob.xyz", _options()).include is True
    assert evaluate_changed_file("data/blob.xyz", _options()).include is True


def test_explicit_basenames_are_recognized() -> None:
    assert is_recognized_source("Dockerfile")
    assert is_recognized_source("deploy/Procfile.web")
    assert is_recognized_source("src/lib.rs")


_DIRS = st.lists(
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz", max_size=6).map(lambda s: f"pkg{s}"),
    max_size=3,
)


@settings(max_examples=60, derandomize=True, deadline=None)
@given(
    dirs=_DIRS,
    suffix=st.sampled_from(["", ".local", ".production", ".development"]),
    include_env=st.booleans(),
)
def test_env_files_follow_the_toggle_for_both_roles(
    dirs: list[str], suffix: str, include_env: bool
) -> None:
    path = "/".join([*dirs, f".env{suffix}"])
    options = _options(include_env=include_env)

    for decision in (evaluate_changed_file(path, options), evaluate_related_file(path, options)):
        if include_env:
            assert decision.include is True
        else:
            assert decision.reason is OmissionReason.ENV


@settings(max_examples=60, derandomize=True, deadline=None)
@given(
    dirs=_DIRS,
    stem=st.text(alphabet="abcdefghijklmnopqrstuvwxyz", max_size=8),
    extension=st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=4),
)
def test_unknown_extensions_are_eligible_for_both_roles(
    dirs: list[str], stem: str, extension: str
) -> None:
    path = "/".join([*dirs, f"mod{stem}.zz{extension}"])

    assert is_recognized_source(path) is False
    assert evaluate_changed_file(path, _options()).include is True
    assert evaluate_related_file(path, _options()).include is True
