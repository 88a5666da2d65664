"""
context-packer - path eligibility classifier

File: src/context_packer/selection_plane/classifier.py
Last updated: 2026-10-19

Purpose
- Decide, for one repository-relative path, whether it may enter the pack and,
  when it may not, which omission reason applies.

Functional requirements
- Rules are applied in a fixed order: generated/cache, env, secrets, lockfiles,
  docs, tests. The first matching rule wins.
- Changed files are never filtered as docs or tests.
- Unknown extensions are included for both roles; binary probing happens later.

Non-functional requirements
- Pure functions only. No filesystem access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from context_packer.domain.models import OmissionReason

if TYPE_CHECKING:
    from context_packer.domain.models import ContextPackOptions

ALLOWED_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {
        ".rs", ".zig", ".c", ".h", ".cpp", ".hpp", ".cc", ".hh", ".m", ".mm",
        ".swift", ".kt", ".kts", ".java", ".py", ".go", ".rb", ".php", ".cs",
        ".fs", ".lua", ".r", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
        ".svelte", ".vue", ".css", ".scss", ".sass", ".less", ".html", ".htm",
        ".svg", ".xml", ".xsd", ".xsl", ".json", ".jsonc", ".toml", ".yaml",
        ".yml", ".ini", ".cfg", ".conf", ".properties", ".md", ".mdx", ".rst",
        ".txt", ".sh", ".bash", ".zsh", ".fish", ".ps1", ".sql", ".graphql",
        ".gql", ".proto", ".tf", ".tfvars", ".cmake", ".gradle",
    }
)  # fmt: skip

EXPLICIT_INCLUDE_BASENAMES: Final[frozenset[str]] = frozenset(
    {
        "Dockerfile", "Containerfile", "Makefile", "GNUmakefile", "justfile",
        "Justfile", "Procfile", "Brewfile", "Gemfile", "Rakefile", "Vagrantfile",
        "CMakeLists.txt", "meson.build", "meson_options.txt", "BUILD",
        "BUILD.bazel", "WORKSPACE", "WORKSPACE.bazel", "MODULE.bazel",
        "Jenkinsfile", "Tiltfile", "Podfile", "Cartfile", "Fastfile", "flake.nix",
        "default.nix", "shell.nix", "Taskfile", ".editorconfig", ".gitignore",
        ".gitattributes", ".dockerignore", ".npmrc", ".nvmrc", ".prettierignore",
        ".prettierrc", ".eslintignore", ".tool-versions", ".python-version",
        ".ruby-version", ".node-version", ".terraform.lock.hcl",
        "google-services.json", "GoogleService-Info.plist",
    }
)  # fmt: skip
_EXPLICIT_INCLUDE_PREFIXES: Final[tuple[str, ...]] = ("Procfile.", "Gemfile.", "Rakefile.")

HARD_EXCLUDED_SEGMENTS: Final[frozenset[str]] = frozenset(
    {
        ".git", ".hg", ".svn", "node_modules", "prompt", "dist", "build",
        "target", "out", "coverage", ".next", ".nuxt", ".svelte-kit", ".turbo",
        ".cache", ".parcel-cache", ".venv", "venv", "__pycache__",
        ".pytest_cache", ".mypy_cache", ".terraform", ".direnv", ".gradle",
        ".idea",
    }
)  # fmt: skip
_JUNK_BASENAMES: Final[frozenset[str]] = frozenset({".DS_Store"})
_DUMP_MARKERS: Final[tuple[str, ...]] = ("chatgpt_code_dump", "code-dump")

LOCKFILE_BASENAMES: Final[frozenset[str]] = frozenset(
    {
        "pnpm-lock.yaml", "package-lock.json", "yarn.lock", "bun.lock",
        "bun.lockb", "npm-shrinkwrap.json", "Cargo.lock", "composer.lock",
        "Gemfile.lock", "poetry.lock", "Pipfile.lock", ".terraform.lock.hcl",
    }
)  # fmt: skip

_SECRET_DOTFILES: Final[tuple[str, ...]] = (".npmrc", ".pypirc", ".netrc")
_SECRET_PATH_SUFFIXES: Final[tuple[str, ...]] = (
    "/.aws/credentials",
    "/.aws/config",
    "/.gem/credentials",
)
_SECRET_BASENAMES: Final[frozenset[str]] = frozenset(
    {
        "id_rsa",
        "id_dsa",
        "id_ecdsa",
        "id_ed25519",
        "google-services.json",
        "googleservice-info.plist",
    }
)
_SECRET_EXTENSIONS: Final[tuple[str, ...]] = (
    ".pem", ".key", ".p12", ".pfx", ".jks", ".keystore", ".kdbx", ".pkcs12",
    ".der", ".crt", ".cer", ".csr", ".mobileprovision", ".provisionprofile",
)  # fmt: skip
_SECRET_MARKERS: Final[tuple[str, ...]] = ("service-account", "serviceaccount")

DOCS_SEGMENTS: Final[frozenset[str]] = frozenset({"docs", "doc", "documentation"})
TEST_SEGMENTS: Final[frozenset[str]] = frozenset({"__tests__", "test", "tests"})
_TEST_BASENAME_MARKERS: Final[tuple[str, ...]] = (".test.", ".spec.", "_test.")


@dataclass(frozen=True, slots=True)
class FilterDecision:
    include: bool
    reason: OmissionReason | None = None


_INCLUDED: Final[FilterDecision] = FilterDecision(include=True)


def normalize_path(value: str) -> str:
    """Return a forward-slash path with a leading ``./`` and surrounding blanks removed."""

    normalized = value.replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.strip()


def path_segments(value: str) -> list[str]:
    return [segment for segment in normalize_path(value).split("/") if segment]


def path_basename(value: str) -> str:
    segments = path_segments(value)
    return segments[-1] if segments else normalize_path(value)


def file_extension(value: str) -> str:
    """Lowercased extension of the basename including the dot, or ``""``."""

    base = path_basename(value)
    index = base.rfind(".")
    return base[index:].lower() if index >= 0 else ""


def is_hard_excluded_path(value: str) -> bool:
    normalized = normalize_path(value)
    if any(segment.lower() in HARD_EXCLUDED_SEGMENTS for segment in path_segments(normalized)):
        return True
    if ".egg-info/" in normalized:
        return True
    if path_basename(normalized) in _JUNK_BASENAMES:
        return True
    lowered = normalized.lower()
    return any(marker in lowered for marker in _DUMP_MARKERS)


def is_env_path(value: str) -> bool:
    base = path_basename(value)
    return base == ".env" or base.startswith(".env.") or base == ".envrc"


def is_secret_path(value: str) -> bool:
    normalized = normalize_path(value)
    for dotfile in _SECRET_DOTFILES:
        if normalized == dotfile or normalized.endswith(f"/{dotfile}"):
            return True
    if normalized.endswith(_SECRET_PATH_SUFFIXES):
        return True

    base = path_basename(normalized).lower()
    if base in _SECRET_BASENAMES:
        return True
    if base.endswith(_SECRET_EXTENSIONS):
        return True
    return any(marker in base for marker in _SECRET_MARKERS)


def is_lockfile(value: str) -> bool:
    return path_basename(value) in LOCKFILE_BASENAMES


def is_docs_path(value: str) -> bool:
    return any(segment.lower() in DOCS_SEGMENTS for segment in path_segments(value))


def is_test_path(value: str) -> bool:
    lowered = normalize_path(value).lower()
    if any(segment in TEST_SEGMENTS for segment in lowered.split("/")):
        return True
    base = path_basename(lowered)
    return base.startswith("test_") or any(marker in base for marker in _TEST_BASENAME_MARKERS)


def is_allowed_extension(value: str) -> bool:
    return file_extension(value) in ALLOWED_EXTENSIONS


def is_explicit_include(value: str) -> bool:
    base = path_basename(value)
    return base in EXPLICIT_INCLUDE_BASENAMES or base.startswith(_EXPLICIT_INCLUDE_PREFIXES)


def is_recognized_source(value: str) -> bool:
    """Whether the path is a known source extension or build/config basename."""

    return is_explicit_include(value) or is_allowed_extension(value)


def classify_path(
    path: str,
    options: ContextPackOptions,
    *,
    include_docs: bool,
    include_tests: bool,
) -> FilterDecision:
    """Apply the ordered exclusion rules shared by both file roles."""

    if is_hard_excluded_path(path):
        return FilterDecision(include=False, reason=OmissionReason.GENERATED_CACHE)
    if not options.include_env and is_env_path(path):
        return FilterDecision(include=False, reason=OmissionReason.ENV)
    if not options.include_secrets and is_secret_path(path):
        return FilterDecision(include=False, reason=OmissionReason.SECRET)
    if not options.include_lockfiles and is_lockfile(path):
        return FilterDecision(include=False, reason=OmissionReason.LOCKFILE)
    if not include_docs and is_docs_path(path):
        return FilterDecision(include=False, reason=OmissionReason.DOCS)
    if not include_tests and is_test_path(path):
        return FilterDecision(include=False, reason=OmissionReason.TESTS)
    return _INCLUDED


def evaluate_changed_file(path: str, options: ContextPackOptions) -> FilterDecision:
    """Changed files were touched on purpose, so docs and tests always pass."""

    return classify_path(path, options, include_docs=True, include_tests=True)


def evaluate_related_file(path: str, options: ContextPackOptions) -> FilterDecision:
    """Related files honour the run's docs/tests toggles.

    Paths that are neither a recognized source extension nor a known build/config
    basename are still included: recall stays broad and binary content is probed
    separately.
    """

    return classify_path(
        path,
        options,
        include_docs=options.include_docs,
        include_tests=options.include_tests,
    )


__all__ = [
    "ALLOWED_EXTENSIONS",
    "DOCS_SEGMENTS",
    "EXPLICIT_INCLUDE_BASENAMES",
    "HARD_EXCLUDED_SEGMENTS",
    "LOCKFILE_BASENAMES",
    "TEST_SEGMENTS",
    "FilterDecision",
    "classify_path",
    "evaluate_changed_file",
    "evaluate_related_file",
    "file_extension",
    "is_allowed_extension",
    "is_docs_path",
    "is_env_path",
    "is_explicit_include",
    "is_hard_excluded_path",
    "is_lockfile",
    "is_recognized_source",
    "is_secret_path",
    "is_test_path",
    "normalize_path",
    "path_basename",
    "path_segments",
]
