"""Deterministic git snapshot collection for a change-set under review."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from context_packer.constants import BASE_REF_CANDIDATES, GIT_MAX_OUTPUT_BYTES
from context_packer.domain.models import ChangedFileRecord, GitSnapshot, RepoContext
from context_packer.utils.process import CommandError, SubprocessRunner

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_packer.domain.models import ContextPackOptions
    from context_packer.utils.process import CommandRunner


class GitSnapshotError(RuntimeError):
    """Base error for git snapshot failures."""


class NotAGitRepositoryError(GitSnapshotError):
    """Raised when the project directory is not inside a work tree."""


class BaseRefError(GitSnapshotError):
    """Raised when no usable base ref can be resolved."""


class EmptyChangeSetError(GitSnapshotError):
    """Raised when the range contains no usable changed files."""


class GitCommandError(GitSnapshotError):
    """Raised when a git subprocess command exits non-zero."""

    def __init__(
        self,
        *,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = f"git command failed ({returncode}): {' '.join(command)}"
        if stderr.strip():
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


def parse_name_status(raw: str) -> tuple[ChangedFileRecord, ...]:
    """Parse ``git diff --name-status`` output.

    Rename and copy records resolve to their destination path. Later records for
    the same path win. The result is sorted by path.
    """

    by_path: dict[str, str] = {}
    for line in raw.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        status = parts[0].strip()
        file_path = parts[1].strip()
        if status[:1] in {"R", "C"} and len(parts) > 2 and parts[2].strip():
            file_path = parts[2].strip()
        if not file_path:
            continue
        by_path[file_path] = status
    return _records(by_path)


def parse_name_status_z(raw: str) -> tuple[ChangedFileRecord, ...]:
    """Parse NUL-delimited ``git diff --name-status -z`` output.

    Paths are taken verbatim, so quoting, tabs, and newlines in names survive.
    Same resolution rules as :func:`parse_name_status`.
    """

    by_path: dict[str, str] = {}
    fields = raw.split("\0")
    index = 0
    while index < len(fields):
        status = fields[index].strip()
        index += 1
        if not status:
            continue
        path_count = 2 if status[:1] in {"R", "C"} else 1
        paths = fields[index : index + path_count]
        index += path_count
        if len(paths) < path_count:
            break
        file_path = paths[-1]
        if file_path:
            by_path[file_path] = status
    return _records(by_path)


def _records(by_path: dict[str, str]) -> tuple[ChangedFileRecord, ...]:
    return tuple(
        ChangedFileRecord(path=path, status=status) for path, status in sorted(by_path.items())
    )


class GitSnapshotCollector:
    """Resolve the review range and capture diff, name-status, and changed files."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        executable: str = "git",
        max_output_bytes: int = GIT_MAX_OUTPUT_BYTES,
        logger: Any | None = None,
    ) -> None:
        self._runner = runner if runner is not None else SubprocessRunner()
        self._executable = executable
        self._max_output_bytes = max_output_bytes
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def resolve_repo_context(self, options: ContextPackOptions) -> RepoContext:
        project_dir = options.project_dir
        try:
            inside = self._git(("rev-parse", "--is-inside-work-tree"), cwd=project_dir)
        except GitCommandError as exc:
            raise NotAGitRepositoryError(f"Not a git repository: {project_dir}") from exc
        if inside.strip().lower() != "true":
            raise NotAGitRepositoryError(f"Not a git repository: {project_dir}")

        repo_root = self._git(("rev-parse", "--show-toplevel"), cwd=project_dir).strip()
        base_ref = self._resolve_base_ref(repo_root, options.base_ref)
        base_commit = self._git(("merge-base", "HEAD", base_ref), cwd=repo_root).strip()
        head_commit = self._git(("rev-parse", "HEAD"), cwd=repo_root).strip()

        self._logger.info(
            "git_base_ref_resolved",
            repo_root=repo_root,
            base_ref=base_ref,
            base_commit=base_commit,
            head_commit=head_commit,
        )
        return RepoContext(
            project_dir=project_dir,
            repo_root=repo_root,
            base_ref=base_ref,
            base_commit=base_commit,
            head_commit=head_commit,
        )

    def collect_snapshot(self, context: RepoContext, diff_context: int = 3) -> GitSnapshot:
        """Capture ``<baseCommit>...HEAD`` as changed files, name-status, and diff text."""

        revision_range = f"{context.base_commit}...HEAD"
        cwd = context.repo_root

        changed_names = self._git(
            ("diff", "-z", "--name-only", "--diff-filter=ACMR", revision_range), cwd=cwd
        )
        if not changed_names.strip("\0").strip():
            raise EmptyChangeSetError(
                f"No changed files found between {context.base_ref} and HEAD"
            )

        # Readable text for the pack; records come from the -z form.
        name_status_text = self._git(
            ("-c", "core.quotePath=false", "diff", "--name-status", revision_range), cwd=cwd
        )
        diff_text = self._git(
            (
                "-c",
                "core.quotePath=false",
                "diff",
                "--no-color",
                f"--unified={diff_context}",
                revision_range,
            ),
            cwd=cwd,
        )
        changed_files = parse_name_status_z(
            self._git(("diff", "-z", "--name-status", revision_range), cwd=cwd)
        )
        if not changed_files:
            raise EmptyChangeSetError(
                f"No parseable changed files found between {context.base_ref} and HEAD"
            )

        self._logger.info(
            "git_snapshot_collected",
            revision_range=revision_range,
            changed_files=len(changed_files),
            diff_bytes=len(diff_text.encode("utf-8")),
        )
        return GitSnapshot(
            changed_files=changed_files,
            name_status_text=name_status_text,
            diff_text=diff_text,
        )

    def verify_ref(self, cwd: str, ref: str) -> bool:
        try:
            self._git(("rev-parse", "--verify", f"{ref}^{{commit}}"), cwd=cwd)
        except GitCommandError:
            return False
        return True

    def _resolve_base_ref(self, repo_root: str, requested: str | None) -> str:
        base_ref = (requested or "").strip()
        if base_ref:
            if not self.verify_ref(repo_root, base_ref):
                raise BaseRefError(f"Base ref not found: {base_ref}")
            return base_ref

        for candidate in BASE_REF_CANDIDATES:
            if self.verify_ref(repo_root, candidate):
                return candidate
        raise BaseRefError(
            "Could not auto-detect base ref (" + ", ".join(BASE_REF_CANDIDATES) + ")"
        )

    def _git(self, args: Sequence[str], *, cwd: str) -> str:
        command = (self._executable, *args)
        try:
            result = self._runner.run(
                command, cwd=cwd, check=True, max_output_bytes=self._max_output_bytes
            )
        except CommandError as exc:
            raise GitCommandError(
                command=exc.command or command,
                returncode=exc.returncode,
                stdout=exc.stdout,
                stderr=exc.stderr or str(exc),
            ) from exc
        return result.stdout


__all__ = [
    "BaseRefError",
    "EmptyChangeSetError",
    "GitCommandError",
    "GitSnapshotCollector",
    "GitSnapshotError",
    "NotAGitRepositoryError",
    "parse_name_status",
    "parse_name_status_z",
]
