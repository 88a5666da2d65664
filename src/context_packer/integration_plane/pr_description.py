"""Optional pull-request description lookup through the ``gh`` CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

import structlog

from context_packer.constants import TOOL_MAX_OUTPUT_BYTES
from context_packer.utils.process import CommandError, SubprocessRunner, command_exists

if TYPE_CHECKING:
    from collections.abc import Mapping

    from context_packer.utils.process import CommandRunner

PR_VIEW_FIELDS: Final[str] = "number,title,body,url,baseRefName,headRefName,state,author"


@dataclass(frozen=True, slots=True)
class PullRequestDescription:
    number: int | None
    title: str
    body: str | None
    url: str
    state: str
    base_ref_name: str
    head_ref_name: str
    author_login: str

    @classmethod
    def from_gh_json(cls, payload: Mapping[str, Any]) -> PullRequestDescription:
        author = payload.get("author")
        number = payload.get("number")
        body = payload.get("body")
        return cls(
            number=number if isinstance(number, int) and not isinstance(number, bool) else None,
            title=_text(payload.get("title")),
            body=body if isinstance(body, str) else None,
            url=_text(payload.get("url")),
            state=_text(payload.get("state")),
            base_ref_name=_text(payload.get("baseRefName")),
            head_ref_name=_text(payload.get("headRefName")),
            author_login=_text(author.get("login")) if isinstance(author, dict) else "",
        )


class GhPullRequestSource:
    """Reads ``gh pr view --json ...``; every failure degrades to ``None``."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        executable: str = "gh",
        max_output_bytes: int = TOOL_MAX_OUTPUT_BYTES,
        logger: Any | None = None,
    ) -> None:
        self._runner = runner if runner is not None else SubprocessRunner()
        self._executable = executable
        self._max_output_bytes = max_output_bytes
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def fetch(self, repo_root: str, pr_ref: str | None = None) -> PullRequestDescription | None:
        if not command_exists(self._runner, self._executable):
            self._logger.info("pr_description_unavailable", reason="gh-missing")
            return None

        command = [self._executable, "pr", "view"]
        if pr_ref:
            command.append(pr_ref)
        command.extend(["--json", PR_VIEW_FIELDS])

        try:
            result = self._runner.run(
                command, cwd=repo_root, max_output_bytes=self._max_output_bytes
            )
        except CommandError as exc:
            self._logger.info(
                "pr_description_unavailable", reason="gh-failed", returncode=exc.returncode
            )
            return None

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError:
            self._logger.info("pr_description_unavailable", reason="invalid-json")
            return None
        if not isinstance(payload, dict):
            self._logger.info("pr_description_unavailable", reason="invalid-json")
            return None
        return PullRequestDescription.from_gh_json(payload)


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


__all__ = ["PR_VIEW_FIELDS", "GhPullRequestSource", "PullRequestDescription"]
