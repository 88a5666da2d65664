"""
context-packer - unit tests for the dependency recall adapter.

File: tests/unit/integration_plane/test_recall_tool.py
Last updated: 2026-10-19

Purpose
- Validate covering-set XML parsing, availability probing, and per-target failure
  handling using a scripted command runner.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from context_packer.domain.models import RecallTargetStatus, RepoContext
from context_packer.integration_plane.recall_tool import (
    NOTE_ERROR,
    NOTE_UNAVAILABLE,
    RecallTargetRequest,
    ScribeRecall,
    extract_tag_value,
    parse_recall_output,
    summarize_recall_error,
    to_repo_relative_path,
)
from context_packer.utils.process import CommandError, CommandNotFoundError, CommandResult

REPO_ROOT = "/work/repo"
HELP_TEXT = "usage: scribe [--covering-set FILE] [--granularity LEVEL] [--stdout]"

Handler = Callable[[tuple[str, ...]], CommandResult]


class ScriptedRunner:
    """``CommandRunner`` whose answers come from a handler function."""

    def __init__(self, handler: Handler) -> None:
        self._handler = handler
        self.calls: list[tuple[str, ...]] = []

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | str | None = None,
        check: bool = True,
        max_output_bytes: int | None = None,
        env_overrides: Mapping[str, str] | None = None,
    ) -> CommandResult:
        argv = tuple(command)
        self.calls.append(argv)
        return self._handler(argv)


def _ok(argv: tuple[str, ...], stdout: str = "") -> CommandResult:
    return CommandResult(command=argv, cwd=REPO_ROOT, returncode=0, stdout=stdout, stderr="")


def _context() -> RepoContext:
    return RepoContext(
        project_dir=REPO_ROOT,
        repo_root=REPO_ROOT,
        base_ref="main",
        base_commit="a" * 40,
        head_commit="b" * 40,
    )


def _file_block(path: str, reason: str, distance: str) -> str:
    return (
        f"<file><path>{path}</path><reason>{reason}</reason>"
        f"<distance>{distance}</distance></file>"
    )


COVERING_SET_XML = "\n".join(
    [
        "npm notice: noise before the document",
        "<covering_set>",
        _file_block(f"{REPO_ROOT}/src/app.py", "TargetFile", "0"),
        _file_block(f"{REPO_ROOT}/src/models.py", "DirectDependency", "1"),
        _file_block(f"{REPO_ROOT}/src/a&amp;b.py", "Dependent", "2.7"),
        _file_block("/elsewhere/lib.py", "Dependency", "1"),
        _file_block(f"{REPO_ROOT}/tests/test_app.py", "Mystery", "bogus"),
        "<limits_reached>true</limits_reached>",
        "<max_depth_reached>3</max_depth_reached>",
        "</covering_set>",
    ]
)


def test_extract_tag_value_unescapes_and_strips() -> None:
    assert extract_tag_value("<a> x &lt; y </a>", "a") == "x < y"
    assert extract_tag_value("<a>1</a>", "b") is None


def test_to_repo_relative_path() -> None:
    assert to_repo_relative_path("/work/repo/src/x.py", "/work/repo/") == "src/x.py"
    assert to_repo_relative_path("C:\\work\\repo\\x.py", "C:\\work\\repo") == "x.py"
    assert to_repo_relative_path("/work/repository/x.py", "/work/repo") is None


def test_parse_recall_output_normalizes_candidates() -> None:
    result = parse_recall_output("src/app.py", COVERING_SET_XML, REPO_ROOT)

    assert result.row.status is RecallTargetStatus.OK
    assert result.row.total_paths == 5
    assert result.row.eligible_paths == 3
    assert result.row.limits_reached is True
    assert result.row.max_depth_reached == 3

    by_path = {candidate.path: candidate for candidate in result.candidates}
    assert set(by_path) == {"src/models.py", "src/a&b.py", "tests/test_app.py"}
    assert by_path["src/models.py"].relation_weight == 90
    assert by_path["src/a&b.py"].distance == 2
    assert by_path["tests/test_app.py"].distance == 0
    assert by_path["tests/test_app.py"].relation_weight == 50
    assert all(candidate.frequency == 1 for candidate in result.candidates)


def test_parse_recall_output_defaults_without_limit_tags() -> None:
    result = parse_recall_output("src/app.py", "<covering_set></covering_set>", REPO_ROOT)
    assert result.row.total_paths == 0
    assert result.row.limits_reached is False
    assert result.row.max_depth_reached is None


def test_summarize_recall_error() -> None:
    assert summarize_recall_error("npm WARN x\nError: boom\nmore") == "Error: boom"
    assert summarize_recall_error("\n\n first line \nsecond") == "first line"
    assert summarize_recall_error("") == "unknown scribe error"


def test_recall_skips_every_target_when_tool_unavailable() -> None:
    def handler(argv: tuple[str, ...]) -> CommandResult:
        raise CommandNotFoundError(command=argv, returncode=127, stdout="", stderr="missing")

    recall = ScribeRecall(ScriptedRunner(handler))
    result = recall.recall(
        _context(), [RecallTargetRequest("src/a.py"), RecallTargetRequest("src/b.py")]
    )

    assert [row.status for row in result.rows] == [RecallTargetStatus.SKIPPED] * 2
    assert all(row.note == NOTE_UNAVAILABLE for row in result.rows)
    assert len(result.warnings) == 1
    assert "skipping related expansion" in result.warnings[0]


def test_recall_treats_outdated_help_as_unavailable() -> None:
    def handler(argv: tuple[str, ...]) -> CommandResult:
        if argv[-1] == "--help":
            return _ok(argv, "usage: scribe [--old-flag]")
        return _ok(argv, "10.0.0")

    result = ScribeRecall(ScriptedRunner(handler)).recall(
        _context(), [RecallTargetRequest("src/a.py")]
    )
    assert result.rows[0].status is RecallTargetStatus.SKIPPED


def test_recall_records_failed_target_and_continues() -> None:
    def handler(argv: tuple[str, ...]) -> CommandResult:
        if argv[-1] == "--version":
            return _ok(argv, "10.0.0")
        if argv[-1] == "--help":
            return _ok(argv, HELP_TEXT)
        target = argv[argv.index("--covering-set") + 1]
        if target == "src/broken.py":
            raise CommandError(
                command=argv, returncode=1, stdout="", stderr="warn: x\nerror: parse failed"
            )
        return _ok(argv, COVERING_SET_XML)

    runner = ScriptedRunner(handler)
    result = ScribeRecall(runner).recall(
        _context(),
        [RecallTargetRequest("src/broken.py"), RecallTargetRequest("src/app.py")],
        include_dependents=False,
    )

    broken, ok = result.rows
    assert broken.status is RecallTargetStatus.FAILED
    assert broken.note == NOTE_ERROR
    assert ok.status is RecallTargetStatus.OK
    assert result.warnings == (
        "Scribe query failed for target src/broken.py: error: parse failed",
    )
    queries = [call for call in runner.calls if "--covering-set" in call]
    assert queries[0][:3] == ("npx", "-y", "@sibyllinesoft/scribe@1.0.4")
    assert all("--include-dependents" not in call for call in queries)


def test_recall_passes_include_dependents_flag() -> None:
    def handler(argv: tuple[str, ...]) -> CommandResult:
        if argv[-1] == "--help":
            return _ok(argv, HELP_TEXT)
        return _ok(argv, "<covering_set></covering_set>")

    runner = ScriptedRunner(handler)
    ScribeRecall(runner).recall(_context(), [RecallTargetRequest("src/app.py")])
    query = next(call for call in runner.calls if "--covering-set" in call)
    assert query[-1] == "--include-dependents"
    assert query[3] == REPO_ROOT


def test_recall_without_targets_does_not_probe() -> None:
    runner = ScriptedRunner(lambda argv: _ok(argv))
    result = ScribeRecall(runner).recall(_context(), [])
    assert result.targets == ()
    assert runner.calls == []
