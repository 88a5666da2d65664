"""Stable constants shared across context-packer planes."""

from __future__ import annotations

from typing import Final

# Persisted contract versions.
REPORT_VERSION: Final[int] = 1
TOKEN_ENCODING: Final[str] = "o200k-base"

# Run defaults.
DEFAULT_BUDGET: Final[int] = 272_000
DEFAULT_OUTPUT_NAME: Final[str] = "pr-context.txt"
DEFAULT_OUTPUT_BASENAME: Final[str] = "pr-context"
DEFAULT_OUTPUT_EXTENSION: Final[str] = "txt"
DEFAULT_DIFF_CONTEXT: Final[int] = 3
DEFAULT_CONFIG_FILE: Final[str] = "context-packer.toml"
TMP_OUTPUT_DIRNAME: Final[str] = "context-packer"
IN_REPO_OUTPUT_DIRNAME: Final[str] = "prompt"

# Base-ref auto detection order.
BASE_REF_CANDIDATES: Final[tuple[str, ...]] = (
    "origin/main",
    "origin/master",
    "main",
    "master",
    "HEAD~1",
)

# Close-test budget reservation.
DEFAULT_CLOSE_TEST_RESERVE_RATIO: Final[float] = 0.25
DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS: Final[int] = 4096
DEFAULT_CLOSE_TEST_MAX_DISTANCE: Final[int] = 2
DEFAULT_CLOSE_TEST_SHARED_SEGMENTS: Final[int] = 4

# Content probing.
BINARY_PROBE_BYTES: Final[int] = 8192

# Subprocess output caps in bytes.
GIT_MAX_OUTPUT_BYTES: Final[int] = 64 * 1024 * 1024
TOOL_MAX_OUTPUT_BYTES: Final[int] = 128 * 1024 * 1024
RECALL_MAX_OUTPUT_BYTES: Final[int] = 256 * 1024 * 1024
PROBE_MAX_OUTPUT_BYTES: Final[int] = 1024 * 1024

# Recall tool.
RECALL_COMMAND: Final[str] = "npx"
RECALL_PACKAGE: Final[str] = "@sibyllinesoft/scribe@1.0.4"
RECALL_TARGET_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {".rs", ".py", ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".go"}
)

# Manifest headers.
RELATED_SELECTION_HEADER: Final[str] = "path\tfrequency\ttokens_estimate\tdecision\treason"
RECALL_TARGETS_HEADER: Final[str] = (
    "target\tstatus\ttotal_paths\teligible_paths\tlimits_reached\tmax_depth_reached\tnote"
)

__all__ = [
    "BASE_REF_CANDIDATES",
    "BINARY_PROBE_BYTES",
    "DEFAULT_BUDGET",
    "DEFAULT_CLOSE_TEST_MAX_DISTANCE",
    "DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS",
    "DEFAULT_CLOSE_TEST_RESERVE_RATIO",
    "DEFAULT_CLOSE_TEST_SHARED_SEGMENTS",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_DIFF_CONTEXT",
    "DEFAULT_OUTPUT_BASENAME",
    "DEFAULT_OUTPUT_EXTENSION",
    "DEFAULT_OUTPUT_NAME",
    "GIT_MAX_OUTPUT_BYTES",
    "IN_REPO_OUTPUT_DIRNAME",
    "PROBE_MAX_OUTPUT_BYTES",
    "RECALL_COMMAND",
    "RECALL_MAX_OUTPUT_BYTES",
    "RECALL_PACKAGE",
    "RECALL_TARGETS_HEADER",
    "RECALL_TARGET_EXTENSIONS",
    "RELATED_SELECTION_HEADER",
    "REPORT_VERSION",
    "TMP_OUTPUT_DIRNAME",
    "TOKEN_ENCODING",
    "TOOL_MAX_OUTPUT_BYTES",
]
