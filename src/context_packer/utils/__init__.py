"""Utility exports for filesystem and subprocess helpers."""

from context_packer.utils.fs import atomic_write, is_likely_text_file, read_text_lossy, write_lines
from context_packer.utils.process import (
    CommandError,
    CommandNotFoundError,
    CommandResult,
    CommandRunner,
    OutputLimitExceededError,
    SubprocessRunner,
    command_exists,
    failure_text,
)

__all__ = [
    "CommandError",
    "CommandNotFoundError",
    "CommandResult",
    "CommandRunner",
    "OutputLimitExceededError",
    "SubprocessRunner",
    "atomic_write",
    "command_exists",
    "failure_text",
    "is_likely_text_file",
    "read_text_lossy",
    "write_lines",
]
