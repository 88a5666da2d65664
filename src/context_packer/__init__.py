"""
context-packer - package root

File: src/context_packer/__init__.py
Last updated: 2026-10-19

Purpose
- Build bounded-size review context packs (diff, changed files, ranked related files)
  from a git change-set under a hard token budget.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
