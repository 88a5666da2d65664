"""
context-packer - pack rendering

File: src/context_packer/synthesis_plane/pack_render.py
Last updated: 2026-10-19

Purpose
- Render the context pack markdown (header, diff, file blocks, omissions) from
  strict jinja2 templates.

Functional requirements
- Must render deterministically for the same inputs.
- File content is inserted verbatim; templates never interpret it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from jinja2 import Environment, StrictUndefined

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_packer.domain.models import OmittedEntry
    from context_packer.integration_plane.pr_description import PullRequestDescription

FILE_BLOCK_TEMPLATE: Final[str] = """### {{ path }}

```
{{ content }}```
"""

HEADER_TEMPLATE: Final[str] = """{% if pr %}
## PR Description

- PR: #{{ pr.number }}
- Title: {{ pr.title }}
- URL: {{ pr.url }}
- State: {{ pr.state }}
- Base: {{ pr.base }}
- Head: {{ pr.head }}
- Author: {{ pr.author }}

### Body

{{ pr.body }}

---

{% endif %}
- Generated: {{ generated_at }}
- Repo root: {{ repo_root }}
- Working dir: {{ project_dir }}
- Base ref: {{ base_ref }}
- Base commit: {{ base_commit }}
- Head commit: {{ head_commit }}
- Scribe targets queried: {{ recall_ok }}/{{ recall_total }}
- Token budget: {{ budget }}

## Changed files (git name-status)

```text
{{ name_status }}
```

## Git diff ({{ base_commit }}...{{ head_commit }})

```diff
{{ diff }}
```
"""

PACK_TEMPLATE: Final[str] = """# PR Context Pack

{{ header }}
## Full current code: changed files ({{ changed_blocks | length }})

{% for block in changed_blocks %}
{{ block }}
{% else %}
None

{% endfor %}
## Full current code: related files ({{ related_blocks | length }})

{% for block in related_blocks %}
{{ block }}
{% else %}
None

{% endfor %}
## Omitted changed files ({{ omitted_lines | length }})

{% for line in omitted_lines %}
{{ line }}
{% else %}
None
{% endfor %}
"""


@dataclass(frozen=True, slots=True)
class FileBlock:
    path: str
    content: str


@dataclass(frozen=True, slots=True)
class PackHeader:
    """Run identity shown at the top of every pack."""

    generated_at: str
    repo_root: str
    project_dir: str
    base_ref: str
    base_commit: str
    head_commit: str
    recall_targets_ok: int
    recall_targets_total: int
    budget: int
    name_status_text: str
    diff_text: str
    pull_request: PullRequestDescription | None = None


class PackRenderer:
    """Deterministic pack renderer over strict templates."""

    def __init__(self) -> None:
        self._environment = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            newline_sequence="\n",
            keep_trailing_newline=True,
        )
        self._file_block = self._environment.from_string(FILE_BLOCK_TEMPLATE)
        self._header = self._environment.from_string(HEADER_TEMPLATE)
        self._pack = self._environment.from_string(PACK_TEMPLATE)

    def render_file_block(self, block: FileBlock) -> str:
        content = block.content if block.content.endswith("\n") else f"{block.content}\n"
        return self._file_block.render(path=block.path, content=content)

    def render_header(self, header: PackHeader) -> str:
        return self._header.render(
            pr=_pull_request_context(header.pull_request),
            generated_at=header.generated_at,
            repo_root=header.repo_root,
            project_dir=header.project_dir,
            base_ref=header.base_ref,
            base_commit=header.base_commit,
            head_commit=header.head_commit,
            recall_ok=header.recall_targets_ok,
            recall_total=header.recall_targets_total,
            budget=header.budget,
            name_status=header.name_status_text.rstrip(),
            diff=header.diff_text.rstrip(),
        )

    def render_pack(
        self,
        *,
        header: str,
        changed_files: Sequence[FileBlock],
        related_files: Sequence[FileBlock],
        omitted_changed: Sequence[OmittedEntry],
    ) -> str:
        return self._pack.render(
            header=header,
            changed_blocks=[self.render_file_block(block) for block in changed_files],
            related_blocks=[self.render_file_block(block) for block in related_files],
            omitted_lines=[f"- {entry.path} - {entry.reason}" for entry in omitted_changed],
        )


def _pull_request_context(pr: PullRequestDescription | None) -> dict[str, str] | None:
    if pr is None:
        return None
    return {
        "number": "" if pr.number is None else str(pr.number),
        "title": pr.title,
        "url": pr.url,
        "state": pr.state,
        "base": pr.base_ref_name,
        "head": pr.head_ref_name,
        "author": pr.author_login,
        "body": (pr.body if pr.body is not None else "(no description)").rstrip(),
    }


__all__ = [
    "FILE_BLOCK_TEMPLATE",
    "HEADER_TEMPLATE",
    "PACK_TEMPLATE",
    "FileBlock",
    "PackHeader",
    "PackRenderer",
]
