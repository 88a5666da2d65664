"""Unit tests for output directory resolution and artifact naming."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from context_packer.artifacts.output_paths import (
    date_stamp,
    output_basename,
    output_extension,
    resolve_output_dir,
    resolve_output_paths,
    sanitize_repo_slug,
)
from context_packer.domain.models import ContextPackOptions

NOW = datetime(2026, 10, 19, 8, 30, 5)


@pytest.mark.parametrize(
    ("name", "basename", "extension"),
    [
        ("pr-context.txt", "pr-context", "txt"),
        ("review.md", "review", "md"),
        ("pack", "pack", "txt"),
        ("archive.tar.gz", "archive.tar", "gz"),
    ],
)
def test_output_name_parts(name: str, basename: str, extension: str) -> None:
    assert output_basename(name) == basename
    assert output_extension(name) == extension


def test_sanitize_repo_slug() -> None:
    assert sanitize_repo_slug("/home/dev/My Repo (fork)") == "My-Repo-fork"
    assert sanitize_repo_slug("/home/dev/!!!") == "repo"


def test_date_stamp_for_naive_local_time() -> None:
    assert date_stamp(NOW) == "20261019-083005"


def test_output_dir_precedence(tmp_path: Path) -> None:
    repo_root = str(tmp_path / "my repo")

    explicit = ContextPackOptions(project_dir=repo_root, output_dir=str(tmp_path / "explicit"))
    assert resolve_output_dir(explicit, repo_root, now=NOW) == (tmp_path / "explicit").resolve()

    in_tmp = ContextPackOptions(project_dir=repo_root)
    assert resolve_output_dir(in_tmp, repo_root, now=NOW, tmp_root=tmp_path) == (
        tmp_path / "context-packer" / "pr-my-repo-20261019-083005"
    )

    in_repo = ContextPackOptions(project_dir=repo_root, tmp_output=False)
    assert resolve_output_dir(in_repo, repo_root, now=NOW) == Path(repo_root) / "prompt"


def test_resolve_output_paths_names_every_artifact(tmp_path: Path) -> None:
    options = ContextPackOptions(
        project_dir=str(tmp_path), output_name="review.md", output_dir=str(tmp_path / "out")
    )

    paths = resolve_output_paths(options, str(tmp_path), now=NOW)

    out = (tmp_path / "out").resolve()
    assert out.is_dir()
    assert paths.output_dir == str(out)
    assert paths.pack == str(out / "review.md")
    assert paths.changed_manifest == str(out / "review.changed.files.txt")
    assert paths.related_manifest == str(out / "review.related.files.txt")
    assert paths.omitted_manifest == str(out / "review.omitted.files.txt")
    assert paths.related_omitted_manifest == str(out / "review.related.omitted.files.txt")
    assert paths.related_selection_manifest == str(out / "review.related.selection.tsv")
    assert paths.recall_targets_manifest == str(out / "review.scribe.targets.tsv")
    assert paths.report_path == str(out / "review.report.json")
