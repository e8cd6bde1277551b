from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

CODEFUSE_VARS = (
    "CODEFUSE_API_KEY",
    "CODEFUSE_REVIEW_URL",
    "CODEFUSE_IGNORE_PRE",
    "CODEFUSE_IGNORE_EXT",
    "CODEFUSE_INCLUDE_EXT",
    "CODEFUSE_MAX_CONCURRENCY",
    "CODEFUSE_OUTPUT",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every test from an empty working directory with an empty home.

    Both live outside `tmp_path`, which stays empty for the test itself.
    """
    home = tmp_path_factory.mktemp("home")
    work = tmp_path_factory.mktemp("work")
    monkeypatch.setenv("HOME", str(home))
    for name in CODEFUSE_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(work)
    return work


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small project: two Go files and an ignorable empty node_modules/."""
    root = tmp_path / "project"
    (root / "sub").mkdir(parents=True)
    (root / "node_modules").mkdir()
    (root / "a.go").write_text("package a", encoding="utf-8")
    (root / "sub" / "b.go").write_text("package b", encoding="utf-8")
    return root
