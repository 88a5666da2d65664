"""
context-packer - configuration schema and validation.

File: src/context_packer/config/schema.py
Last updated: 2026-10-19

Purpose
- Define authoritative configuration defaults and strict validation rules.

What should be included in this file
- Typed section layouts and built-in defaults.
- Validation rules for types, enums, and numeric constraints.
- Deterministic deep-merge helper used by the loader.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Unknown sections and fields are rejected, never ignored.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from context_packer.constants import (
    DEFAULT_BUDGET,
    DEFAULT_CLOSE_TEST_MAX_DISTANCE,
    DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS,
    DEFAULT_CLOSE_TEST_RESERVE_RATIO,
    DEFAULT_CLOSE_TEST_SHARED_SEGMENTS,
    DEFAULT_DIFF_CONTEXT,
    DEFAULT_OUTPUT_NAME,
)

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("console", "json")

# Config paths that are normalized relative to the config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (("pack", "output_dir"),)


class PackConfig(TypedDict):
    budget: int
    output_name: str
    tmp_output: bool
    output_dir: str
    diff_context: int
    include_pr_description: bool
    fail_over_budget: bool


class FiltersConfig(TypedDict):
    include_dependents: bool
    include_docs: bool
    include_tests: bool
    include_lockfiles: bool
    include_env: bool
    include_secrets: bool


class SelectionConfig(TypedDict):
    close_test_reserve_ratio: float
    close_test_reserve_min_tokens: int
    close_test_max_distance: int
    close_test_shared_segments: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["console", "json"]


class ContextPackerConfig(TypedDict):
    pack: PackConfig
    filters: FiltersConfig
    selection: SelectionConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ContextPackerConfig] = {
    "pack": {
        "budget": DEFAULT_BUDGET,
        "output_name": DEFAULT_OUTPUT_NAME,
        "tmp_output": True,
        "output_dir": "",
        "diff_context": DEFAULT_DIFF_CONTEXT,
        "include_pr_description": True,
        "fail_over_budget": False,
    },
    "filters": {
        "include_dependents": True,
        "include_docs": False,
        "include_tests": True,
        "include_lockfiles": False,
        "include_env": False,
        "include_secrets": False,
    },
    "selection": {
        "close_test_reserve_ratio": DEFAULT_CLOSE_TEST_RESERVE_RATIO,
        "close_test_reserve_min_tokens": DEFAULT_CLOSE_TEST_RESERVE_MIN_TOKENS,
        "close_test_max_distance": DEFAULT_CLOSE_TEST_MAX_DISTANCE,
        "close_test_shared_segments": DEFAULT_CLOSE_TEST_SHARED_SEGMENTS,
    },
    "observability": {
        "log_level": "WARNING",
        "log_format": "console",
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> ContextPackerConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate a complete config and return structured issues with dotted paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    _reject_unknown_keys(root, set(DEFAULT_CONFIG), "", issues)
    out: dict[str, Any] = {}
    validators: dict[str, Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]]] = {
        "pack": _validate_pack,
        "filters": _validate_filters,
        "selection": _validate_selection,
        "observability": _validate_observability,
    }
    for key, validator in validators.items():
        _section(root, key=key, issues=issues, validator=validator, out=out)

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=out, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _section(
    payload: Mapping[str, object],
    *,
    key: str,
    issues: _IssueCollector,
    validator: Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]],
    out: dict[str, Any],
) -> None:
    raw = payload.get(key)
    if raw is None:
        issues.add(key, "missing required section")
        return
    section_obj = _as_object(raw, key, issues)
    if section_obj is None:
        return
    out[key] = validator(section_obj, key, issues)


def _validate_pack(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(DEFAULT_CONFIG["pack"]), path, issues)
    out: dict[str, Any] = {}

    if "budget" in payload:
        parsed_budget = _as_int(payload["budget"], _join(path, "budget"), issues, minimum=1)
        if parsed_budget is not None:
            out["budget"] = parsed_budget

    if "output_name" in payload:
        parsed_name = _as_str(payload["output_name"], _join(path, "output_name"), issues)
        if parsed_name is not None:
            if "/" in parsed_name or "\\" in parsed_name:
                issues.add(_join(path, "output_name"), "must be a file name, not a path")
            else:
                out["output_name"] = parsed_name

    if "output_dir" in payload:
        raw_dir = payload["output_dir"]
        if not isinstance(raw_dir, str):
            issues.add(_join(path, "output_dir"), f"expected string, got {type(raw_dir).__name__}")
        elif "\x00" in raw_dir:
            issues.add(_join(path, "output_dir"), "must not contain NUL bytes")
        else:
            out["output_dir"] = raw_dir.strip()

    if "diff_context" in payload:
        parsed_context = _as_int(
            payload["diff_context"], _join(path, "diff_context"), issues, minimum=0
        )
        if parsed_context is not None:
            out["diff_context"] = parsed_context

    for flag in ("tmp_output", "include_pr_description", "fail_over_budget"):
        if flag in payload:
            parsed_flag = _as_bool(payload[flag], _join(path, flag), issues)
            if parsed_flag is not None:
                out[flag] = parsed_flag

    return out


def _validate_filters(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = set(DEFAULT_CONFIG["filters"])
    _reject_unknown_keys(payload, allowed, path, issues)
    out: dict[str, Any] = {}
    for flag in sorted(allowed):
        if flag in payload:
            parsed = _as_bool(payload[flag], _join(path, flag), issues)
            if parsed is not None:
                out[flag] = parsed
    return out


def _validate_selection(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(DEFAULT_CONFIG["selection"]), path, issues)
    out: dict[str, Any] = {}

    if "close_test_reserve_ratio" in payload:
        parsed_ratio = _as_float(
            payload["close_test_reserve_ratio"],
            _join(path, "close_test_reserve_ratio"),
            issues,
            minimum=0.0,
            maximum=1.0,
        )
        if parsed_ratio is not None:
            out["close_test_reserve_ratio"] = parsed_ratio

    for key in (
        "close_test_reserve_min_tokens",
        "close_test_max_distance",
        "close_test_shared_segments",
    ):
        if key in payload:
            parsed = _as_int(payload[key], _join(path, key), issues, minimum=0)
            if parsed is not None:
                out[key] = parsed

    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(DEFAULT_CONFIG["observability"]), path, issues)
    out: dict[str, Any] = {}

    if "log_level" in payload:
        raw_level = payload["log_level"]
        parsed_level = _as_enum(
            raw_level.upper() if isinstance(raw_level, str) else raw_level,
            _join(path, "log_level"),
            issues,
            allowed_values=LOG_LEVELS,
        )
        if parsed_level is not None:
            out["log_level"] = parsed_level

    if "log_format" in payload:
        parsed_format = _as_enum(
            payload["log_format"],
            _join(path, "log_format"),
            issues,
            allowed_values=LOG_FORMATS,
        )
        if parsed_format is not None:
            out["log_format"] = parsed_format

    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    if maximum is not None and parsed > maximum:
        issues.add(path, f"must be <= {maximum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = copy.deepcopy(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted(value):
        item = value[key]
        out[key] = _deep_copy_mapping(item) if isinstance(item, Mapping) else copy.deepcopy(item)
    return out


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ContextPackerConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
