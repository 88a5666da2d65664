"""
context-packer - subprocess runner

File: src/context_packer/utils/process.py
Last updated: 2026-10-19

Purpose
- Narrow execution interface shared by every external collaborator (git, the
  recall tool, the token oracle, gh).

Functional requirements
- Execute, capture stdout/stderr, enforce a max output size, and map failures to
  typed errors.
- Deterministic fakes implementing ``CommandRunner`` replace real processes in tests.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from context_packer.constants import PROBE_MAX_OUTPUT_BYTES

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


class CommandError(RuntimeError):
    """Raised when an external command exits non-zero."""

    def __init__(
        self,
        *,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
        message: str | None = None,
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            message = f"command failed ({returncode}): {' '.join(command)}"
            if stderr.strip():
                message = f"{message}: {stderr.strip()}"
        super().__init__(message)


class CommandNotFoundError(CommandError):
    """Raised when the executable cannot be located."""


class OutputLimitExceededError(CommandError):
    """Raised when captured output exceeds the caller's size cap."""


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Normalized subprocess result."""

    command: tuple[str, ...]
    cwd: str
    returncode: int
    stdout: str
    stderr: str


class CommandRunner(Protocol):
    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | str | None = None,
        check: bool = True,
        max_output_bytes: int | None = None,
        env_overrides: Mapping[str, str] | None = None,
    ) -> CommandResult: ...


class SubprocessRunner:
    """``CommandRunner`` backed by ``subprocess.run``."""

    def __init__(self, *, env_overrides: Mapping[str, str] | None = None) -> None:
        self._env_overrides = dict(env_overrides or {})

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
        run_cwd = Path(cwd).resolve() if cwd is not None else Path.cwd()
        if not run_cwd.is_dir():
            raise CommandError(
                command=argv,
                returncode=-1,
                stdout="",
                stderr="",
                message=f"working directory does not exist: {run_cwd}",
            )
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        env.setdefault("GIT_CONFIG_NOSYSTEM", "1")
        env.update(self._env_overrides)
        env.update(env_overrides or {})

        try:
            completed = subprocess.run(
                argv,
                cwd=run_cwd,
                env=env,
                text=True,
                encoding="utf-8",
                errors="replace",
                capture_output=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandNotFoundError(
                command=argv,
                returncode=127,
                stdout="",
                stderr=str(exc),
                message=f"command not found: {argv[0]}",
            ) from exc
        except PermissionError as exc:
            raise CommandNotFoundError(
                command=argv,
                returncode=126,
                stdout="",
                stderr=str(exc),
                message=f"command not executable: {argv[0]}",
            ) from exc
        except OSError as exc:
            raise CommandError(
                command=argv,
                returncode=-1,
                stdout="",
                stderr=str(exc),
                message=f"failed to start {argv[0]}: {exc}",
            ) from exc

        result = CommandResult(
            command=argv,
            cwd=run_cwd.as_posix(),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

        if max_output_bytes is not None:
            _enforce_output_limit(result, max_output_bytes)

        if check and result.returncode != 0:
            raise CommandError(
                command=result.command,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return result


def command_exists(runner: CommandRunner, executable: str) -> bool:
    """Probe ``<executable> --version``; any failure means unavailable."""

    try:
        runner.run((executable, "--version"), max_output_bytes=PROBE_MAX_OUTPUT_BYTES)
    except CommandError:
        return False
    return True


def failure_text(exc: CommandError) -> str:
    """Most informative text of a failed command: stderr, then stdout, then the message."""

    for candidate in (exc.stderr, exc.stdout, str(exc)):
        if candidate.strip():
            return candidate.strip()
    return ""


def _enforce_output_limit(result: CommandResult, max_output_bytes: int) -> None:
    for stream_name, text in (("stdout", result.stdout), ("stderr", result.stderr)):
        size = len(text.encode("utf-8"))
        if size > max_output_bytes:
            raise OutputLimitExceededError(
                command=result.command,
                returncode=result.returncode,
                stdout="",
                stderr="",
                message=(
                    f"{stream_name} of {result.command[0]} exceeded {max_output_bytes} bytes "
                    f"({size} bytes)"
                ),
            )


__all__ = [
    "CommandError",
    "CommandNotFoundError",
    "CommandResult",
    "CommandRunner",
    "OutputLimitExceededError",
    "SubprocessRunner",
    "command_exists",
    "failure_text",
]
