"""Command-line interface for context-packer."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any

from context_packer.artifacts.report import ReportStatus
from context_packer.config import ConfigLoadError, ConfigValidationError, load_config
from context_packer.control_plane import build_context_pack
from context_packer.domain.models import ContextPackOptions
from context_packer.main import ExitCode
from context_packer.observability import configure_logging
from context_packer.ui.render import create_renderer

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from context_packer.control_plane import ContextPackBuildResult


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = int(ExitCode.PACK_ERROR)

    def __str__(self) -> str:
        return self.message


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for a single pack run."""

    parser = argparse.ArgumentParser(
        prog="context-packer",
        description=(
            "context-packer - build a token-budgeted review pack from a git change-set.\n\n"
            "Common workflows:\n"
            "  context-packer                      Pack the current branch against origin/main\n"
            "  context-packer --base develop       Pack against an explicit base ref\n"
            "  context-packer --budget 120000      Tighten the token budget\n"
            "  context-packer --json               Print the versioned report as JSON\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "project_dir",
        nargs="?",
        default=".",
        help="Directory inside the repository to pack (default: current directory).",
    )
    parser.add_argument("--base", default=None, help="Base ref to diff against.")
    parser.add_argument("--budget", type=int, default=None, help="Token budget for the pack.")
    parser.add_argument(
        "--output-name", default=None, help="Pack file name (default: pr-context.txt)."
    )
    parser.add_argument(
        "--output-dir", default=None, help="Write artifacts here instead of the default location."
    )
    parser.add_argument(
        "--in-repo",
        action="store_true",
        default=False,
        help="Write artifacts under <repo>/prompt instead of the system temp directory.",
    )
    parser.add_argument(
        "--diff-context", type=int, default=None, help="Unified diff context lines."
    )
    parser.add_argument(
        "--no-dependents", action="store_true", default=False, help="Skip dependents in recall."
    )
    parser.add_argument(
        "--include-docs", action="store_true", default=False, help="Allow related docs files."
    )
    parser.add_argument(
        "--no-tests", action="store_true", default=False, help="Exclude related test files."
    )
    parser.add_argument(
        "--include-lockfiles", action="store_true", default=False, help="Allow lockfiles."
    )
    parser.add_argument(
        "--include-env", action="store_true", default=False, help="Allow .env files."
    )
    parser.add_argument(
        "--include-secrets",
        action="store_true",
        default=False,
        help="Allow key, certificate, and credential files.",
    )
    parser.add_argument(
        "--no-pr-description",
        action="store_true",
        default=False,
        help="Do not query gh for the pull request description.",
    )
    parser.add_argument("--pr", default=None, help="Pull request number, URL, or branch for gh.")
    parser.add_argument(
        "--fail-over-budget",
        action="store_true",
        default=False,
        help="Exit with status 3 when the changed files alone exceed the budget.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a TOML or YAML config (default: <project_dir>/context-packer.toml).",
    )
    parser.add_argument(
        "--json", action="store_true", default=False, help="Print the report JSON to stdout."
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    parser.add_argument(
        "--log-format", choices=("console", "json"), default=None, help="Log output format."
    )
    parser.add_argument(
        "--debug", action="store_true", default=False, help="Log at DEBUG level."
    )
    return parser


def run_cli(
    argv: Sequence[str] | None = None,
    *,
    builder: Callable[[ContextPackOptions], ContextPackBuildResult] | None = None,
    stdout: IO[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Parse argv, run one pack build, and return the process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    try:
        return _cmd_pack(
            namespace,
            builder=builder if builder is not None else build_context_pack,
            stdout=stdout if stdout is not None else sys.stdout,
            environ=environ,
        )
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code


def cli_overrides(args: argparse.Namespace) -> dict[str, object]:
    """Dotted config overrides for every flag the user actually passed."""

    overrides: dict[str, Any] = {
        "pack.budget": args.budget,
        "pack.output_name": args.output_name,
        "pack.diff_context": args.diff_context,
        "observability.log_format": args.log_format,
    }
    if args.output_dir is not None:
        overrides["pack.output_dir"] = str(Path(args.output_dir).expanduser().resolve())
    if args.in_repo:
        overrides["pack.tmp_output"] = False
    if args.no_pr_description:
        overrides["pack.include_pr_description"] = False
    if args.fail_over_budget:
        overrides["pack.fail_over_budget"] = True
    if args.no_dependents:
        overrides["filters.include_dependents"] = False
    if args.no_tests:
        overrides["filters.include_tests"] = False
    for flag in ("include_docs", "include_lockfiles", "include_env", "include_secrets"):
        if getattr(args, flag):
            overrides[f"filters.{flag}"] = True
    if args.debug:
        overrides["observability.log_level"] = "DEBUG"
    return {key: value for key, value in overrides.items() if value is not None}


def exit_code_for(result: ContextPackBuildResult, options: ContextPackOptions) -> int:
    if result.ok:
        return int(ExitCode.SUCCESS)
    if result.reason is ReportStatus.CORE_OVER_BUDGET:
        return int(ExitCode.OVER_BUDGET if options.fail_over_budget else ExitCode.SUCCESS)
    return int(ExitCode.PACK_ERROR)


def _cmd_pack(
    args: argparse.Namespace,
    *,
    builder: Callable[[ContextPackOptions], ContextPackBuildResult],
    stdout: IO[str],
    environ: Mapping[str, str] | None,
) -> int:
    project_dir = Path(args.project_dir).expanduser().resolve()
    if not project_dir.is_dir():
        raise CLIError(
            f"project directory not found: {project_dir}", exit_code=int(ExitCode.CONFIG_ERROR)
        )

    try:
        config = load_config(
            args.config_path,
            project_dir=project_dir,
            cli_overrides=cli_overrides(args),
            environ=environ,
        )
        options = ContextPackOptions.from_config(
            config,
            project_dir=str(project_dir),
            base_ref=args.base,
            pr_ref=args.pr,
            debug=args.debug,
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=int(ExitCode.CONFIG_ERROR)) from exc

    observability = config["observability"]
    configure_logging(
        observability["log_level"],
        json_output=observability["log_format"] == "json",
        stream=sys.stderr,
    )

    result = builder(options)
    if args.json:
        stdout.write(result.report.to_json())
    else:
        create_renderer(no_color=args.no_color, stream=stdout).render_report(result.report)
    return exit_code_for(result, options)


__all__ = ["CLIError", "build_parser", "cli_overrides", "exit_code_for", "run_cli"]
