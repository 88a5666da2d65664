"""Unit tests for config schema validation and merging."""

from __future__ import annotations

import math

import pytest

from context_packer.config.schema import (
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)


def _with(section: str, **values: object) -> dict[str, object]:
    return merge_config(default_config(), {section: values})


def _issue_paths(config: object) -> dict[str, str]:
    result = validate_config(config)
    assert result.config is None
    return {issue.path: issue.message for issue in result.issues}


def test_defaults_are_valid_and_copied() -> None:
    first = default_config()
    first["pack"]["budget"] = 1
    assert default_config()["pack"]["budget"] == 272_000
    assert validate_config(default_config()).is_valid


def test_root_must_be_object() -> None:
    assert _issue_paths(["not", "a", "mapping"]) == {"<root>": "expected object, got list"}


def test_missing_and_unknown_sections() -> None:
    config = default_config()
    del config["selection"]  # type: ignore[misc]
    payload = merge_config(config, {"extras": {"x": 1}})

    issues = _issue_paths(payload)
    assert issues["selection"] == "missing required section"
    assert issues["extras"] == "unknown field"


@pytest.mark.parametrize(
    ("section", "values", "path", "message"),
    [
        ("pack", {"budget": 0}, "pack.budget", "must be >= 1"),
        ("pack", {"budget": True}, "pack.budget", "expected integer, got bool"),
        ("pack", {"budget": "10"}, "pack.budget", "expected integer, got str"),
        ("pack", {"output_name": "  "}, "pack.output_name", "must not be empty"),
        (
            "pack",
            {"output_name": "a/b.txt"},
            "pack.output_name",
            "must be a file name, not a path",
        ),
        ("pack", {"output_dir": 3}, "pack.output_dir", "expected string, got int"),
        ("pack", {"output_dir": "a\x00b"}, "pack.output_dir", "must not contain NUL bytes"),
        ("pack", {"diff_context": -1}, "pack.diff_context", "must be >= 0"),
        ("pack", {"tmp_output": "yes"}, "pack.tmp_output", "expected boolean, got str"),
        ("filters", {"include_docs": 1}, "filters.include_docs", "expected boolean, got int"),
        ("filters", {"include_all": True}, "filters.include_all", "unknown field"),
        (
            "selection",
            {"close_test_reserve_ratio": 1.01},
            "selection.close_test_reserve_ratio",
            "must be <= 1.0",
        ),
        (
            "selection",
            {"close_test_reserve_ratio": math.inf},
            "selection.close_test_reserve_ratio",
            "must be finite",
        ),
        (
            "selection",
            {"close_test_max_distance": -2},
            "selection.close_test_max_distance",
            "must be >= 0",
        ),
        (
            "observability",
            {"log_format": "xml"},
            "observability.log_format",
            "invalid value 'xml'; expected one of: console, json",
        ),
    ],
)
def test_field_rules(section: str, values: dict[str, object], path: str, message: str) -> None:
    assert _issue_paths(_with(section, **values)) == {path: message}


def test_normalizes_accepted_values() -> None:
    config = assert_valid_config(
        merge_config(
            default_config(),
            {
                "pack": {"output_name": " review.md ", "output_dir": "  out  "},
                "selection": {"close_test_reserve_ratio": 1},
                "observability": {"log_level": "debug"},
            },
        )
    )
    assert config["pack"]["output_name"] == "review.md"
    assert config["pack"]["output_dir"] == "out"
    assert config["selection"]["close_test_reserve_ratio"] == 1.0
    assert isinstance(config["selection"]["close_test_reserve_ratio"], float)
    assert config["observability"]["log_level"] == "DEBUG"


def test_assert_valid_config_renders_every_issue() -> None:
    payload = merge_config(default_config(), {"pack": {"budget": -1, "diff_context": "x"}})
    with pytest.raises(ConfigValidationError) as excinfo:
        assert_valid_config(payload)
    assert str(excinfo.value) == (
        "invalid config:\n"
        "- pack.budget: must be >= 1\n"
        "- pack.diff_context: expected integer, got str"
    )


def test_merge_config_is_deep_and_non_mutating() -> None:
    base = {"pack": {"budget": 10, "output_name": "a.txt"}}
    overlay = {"pack": {"budget": 20}, "filters": {"include_env": True}}

    merged = merge_config(base, overlay)

    assert merged == {
        "pack": {"budget": 20, "output_name": "a.txt"},
        "filters": {"include_env": True},
    }
    assert base["pack"]["budget"] == 10
