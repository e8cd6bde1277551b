from __future__ import annotations

import pytest

from codefuse.config import FilterRule
from codefuse.file_manipulation import file_extension, should_skip


@pytest.mark.unit
@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("main.go", ".go"),
        ("src/pkg/archive.tar.gz", ".gz"),
        ("Makefile", ""),
        (".gitignore", ".gitignore"),
        ("dir.d/file", ""),
    ],
)
def test_file_extension_uses_last_dot_of_base_name(path: str, expected: str) -> None:
    assert file_extension(path) == expected


@pytest.mark.unit
def test_prefix_matches_base_name_only() -> None:
    assert should_skip("src/node_modules", True, {"node_modules"}, set(), set())
    assert should_skip("tests_old.py", False, {"tests"}, set(), set())
    assert not should_skip("src/tests", True, {"src"}, set(), set())


@pytest.mark.unit
def test_prefix_is_case_sensitive() -> None:
    assert not should_skip("README.md", False, {"readme"}, set(), set())


@pytest.mark.unit
def test_prefix_ignore_wins_over_include_extension() -> None:
    assert should_skip("vendor.go", False, {"vendor"}, set(), {".go"})
    assert should_skip("vendor.go", False, {"vendor"}, {".py"}, {".go"})


@pytest.mark.unit
def test_ignored_extension_wins_over_include_extension() -> None:
    assert should_skip("gen.go", False, set(), {".go"}, {".go"})


@pytest.mark.unit
def test_ignored_extension_does_not_apply_to_directories() -> None:
    assert not should_skip("site.d", True, set(), {".d"}, set())


@pytest.mark.unit
def test_include_list_keeps_directories_and_matching_files() -> None:
    include = {".go"}

    assert not should_skip("x.go", False, set(), set(), include)
    assert should_skip("x.py", False, set(), set(), include)
    assert should_skip("Makefile", False, set(), set(), include)
    assert not should_skip("y", True, set(), set(), include)


@pytest.mark.unit
def test_empty_rules_keep_everything() -> None:
    assert not should_skip("anything.bin", False, set(), set(), set())


@pytest.mark.unit
def test_filter_rule_drops_blank_items_and_splits_commas() -> None:
    rule = FilterRule(
        ignore_prefixes=["", "  ", "node_modules, .git"],
        ignore_extensions=None,
        include_extensions=".go,.py",
    )

    assert rule.ignore_prefixes == frozenset({"node_modules", ".git"})
    assert rule.ignore_extensions == frozenset()
    assert rule.include_extensions == frozenset({".go", ".py"})


@pytest.mark.unit
def test_filter_rule_blank_prefix_does_not_skip_everything() -> None:
    rule = FilterRule(ignore_prefixes=[""])

    assert not should_skip("main.go", False, rule.ignore_prefixes, set(), set())
