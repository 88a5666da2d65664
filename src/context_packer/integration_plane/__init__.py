"""
context-packer - integration plane

File: src/context_packer/integration_plane/__init__.py
Last updated: 2026-10-19

Purpose
- External collaborators behind narrow interfaces: git, the dependency recall
  tool, the token-count oracle, and the GitHub CLI.
"""

from context_packer.integration_plane.git_snapshot import (
    BaseRefError,
    EmptyChangeSetError,
    GitCommandError,
    GitSnapshotCollector,
    GitSnapshotError,
    NotAGitRepositoryError,
    parse_name_status,
    parse_name_status_z,
)
from context_packer.integration_plane.pr_description import (
    GhPullRequestSource,
    PullRequestDescription,
)
from context_packer.integration_plane.recall_tool import (
    RecallResult,
    RecallTargetRequest,
    RecallTargetResult,
    ScribeRecall,
    parse_recall_output,
)
from context_packer.integration_plane.token_oracle import (
    TokencountOracle,
    TokenOracle,
    TokenOracleError,
    parse_token_count,
)

__all__ = [
    "BaseRefError",
    "EmptyChangeSetError",
    "GhPullRequestSource",
    "GitCommandError",
    "GitSnapshotCollector",
    "GitSnapshotError",
    "NotAGitRepositoryError",
    "PullRequestDescription",
    "RecallResult",
    "RecallTargetRequest",
    "RecallTargetResult",
    "ScribeRecall",
    "TokenOracle",
    "TokenOracleError",
    "TokencountOracle",
    "parse_name_status",
    "parse_name_status_z",
    "parse_recall_output",
    "parse_token_count",
]
