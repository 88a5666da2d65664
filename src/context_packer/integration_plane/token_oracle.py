"""
context-packer - token-count oracle

File: src/context_packer/integration_plane/token_oracle.py
Last updated: 2026-10-19

Purpose
- Authoritative token counts for rendered text, delegated to the ``tokencount``
  executable.

Functional requirements
- Non-parseable or negative output is fatal for the run; there is no fallback estimate.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from context_packer.constants import TOKEN_ENCODING, TOOL_MAX_OUTPUT_BYTES
from context_packer.utils.process import (
    CommandError,
    SubprocessRunner,
    command_exists,
    failure_text,
)

if TYPE_CHECKING:
    from context_packer.utils.process import CommandRunner


class TokenOracleError(RuntimeError):
    """Raised when a token count cannot be obtained."""


class TokenOracle(Protocol):
    encoding: str

    def ensure_available(self) -> None: ...

    def count_file(self, path: Path | str, *, include_ext: str) -> int: ...


def parse_token_count(stdout: str, path: Path | str) -> int:
    """First whitespace-delimited token of the first non-empty line, floored."""

    first_line = next((line for line in stdout.splitlines() if line.strip()), "")
    first_token = first_line.split()[0] if first_line.split() else ""
    try:
        value = float(first_token)
    except ValueError:
        value = math.nan
    if not math.isfinite(value) or value < 0:
        raise TokenOracleError(
            f"Could not parse tokencount output for {path}: {stdout.strip()}"
        )
    return math.floor(value)


class TokencountOracle:
    """``TokenOracle`` backed by ``tokencount --encoding <enc> --include-ext <ext> <file>``."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        executable: str = "tokencount",
        encoding: str = TOKEN_ENCODING,
        max_output_bytes: int = TOOL_MAX_OUTPUT_BYTES,
        logger: Any | None = None,
    ) -> None:
        self._runner = runner if runner is not None else SubprocessRunner()
        self._executable = executable
        self.encoding = encoding
        self._max_output_bytes = max_output_bytes
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def ensure_available(self) -> None:
        if not command_exists(self._runner, self._executable):
            raise TokenOracleError(
                f"{self._executable} not found. Install with: cargo install tokencount"
            )

    def count_file(self, path: Path | str, *, include_ext: str) -> int:
        file_path = Path(path)
        command = (
            self._executable,
            "--encoding",
            self.encoding,
            "--include-ext",
            include_ext,
            str(file_path),
        )
        try:
            result = self._runner.run(command, max_output_bytes=self._max_output_bytes)
        except CommandError as exc:
            raise TokenOracleError(
                f"tokencount failed for {file_path}: {failure_text(exc)}"
            ) from exc

        count = parse_token_count(result.stdout, file_path)
        self._logger.debug("token_count_measured", path=str(file_path), token_count=count)
        return count


__all__ = [
    "TokenOracle",
    "TokenOracleError",
    "TokencountOracle",
    "parse_token_count",
]
