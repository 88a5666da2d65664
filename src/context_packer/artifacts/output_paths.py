"""Output directory and artifact naming for one run."""

from __future__ import annotations

import re
import tempfile
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Final

from context_packer.artifacts.report import ReportPaths
from context_packer.constants import (
    DEFAULT_OUTPUT_BASENAME,
    DEFAULT_OUTPUT_EXTENSION,
    IN_REPO_OUTPUT_DIRNAME,
    TMP_OUTPUT_DIRNAME,
)

if TYPE_CHECKING:
    from context_packer.domain.models import ContextPackOptions

_WHITESPACE_RE: Final[re.Pattern[str]] = re.compile(r"\s+")
_SLUG_DISALLOWED_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]")


def output_basename(output_name: str) -> str:
    suffix = PurePosixPath(output_name).suffix
    base = output_name[: -len(suffix)] if suffix else output_name
    return base or DEFAULT_OUTPUT_BASENAME


def output_extension(output_name: str) -> str:
    """Extension without the dot, used as the token oracle's ``--include-ext``."""

    return PurePosixPath(output_name).suffix.lstrip(".") or DEFAULT_OUTPUT_EXTENSION


def sanitize_repo_slug(repo_root: str) -> str:
    raw = Path(repo_root).name
    slug = _SLUG_DISALLOWED_RE.sub("", _WHITESPACE_RE.sub("-", raw))
    return slug or "repo"


def date_stamp(moment: datetime) -> str:
    """Local-time ``YYYYMMDD-HHMMSS`` stamp for directory names."""

    local = moment.astimezone() if moment.tzinfo is not None else moment
    return local.strftime("%Y%m%d-%H%M%S")


def resolve_output_dir(
    options: ContextPackOptions,
    repo_root: str,
    *,
    now: datetime,
    tmp_root: Path | None = None,
) -> Path:
    if options.output_dir:
        return Path(options.output_dir).expanduser().resolve()
    if options.tmp_output:
        root = tmp_root if tmp_root is not None else Path(tempfile.gettempdir())
        return root / TMP_OUTPUT_DIRNAME / f"pr-{sanitize_repo_slug(repo_root)}-{date_stamp(now)}"
    return Path(repo_root) / IN_REPO_OUTPUT_DIRNAME


def resolve_output_paths(
    options: ContextPackOptions,
    repo_root: str,
    *,
    now: datetime,
    tmp_root: Path | None = None,
) -> ReportPaths:
    """Create the output directory and name every artifact inside it."""

    output_dir = resolve_output_dir(options, repo_root, now=now, tmp_root=tmp_root)
    output_dir.mkdir(parents=True, exist_ok=True)
    base = output_basename(options.output_name)

    def artifact(suffix: str) -> str:
        return str(output_dir / f"{base}{suffix}")

    return ReportPaths(
        output_dir=str(output_dir),
        pack=str(output_dir / options.output_name),
        changed_manifest=artifact(".changed.files.txt"),
        related_manifest=artifact(".related.files.txt"),
        omitted_manifest=artifact(".omitted.files.txt"),
        related_omitted_manifest=artifact(".related.omitted.files.txt"),
        related_selection_manifest=artifact(".related.selection.tsv"),
        recall_targets_manifest=artifact(".scribe.targets.tsv"),
        report_path=artifact(".report.json"),
    )


__all__ = [
    "date_stamp",
    "output_basename",
    "output_extension",
    "resolve_output_dir",
    "resolve_output_paths",
    "sanitize_repo_slug",
]
