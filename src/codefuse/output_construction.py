from __future__ import annotations

import io
from typing import TYPE_CHECKING

from codefuse.config import DEFAULT_MAX_CONCURRENCY
from codefuse.file_manipulation import base_name, load_contents, walk_paths
from codefuse.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from pathlib import Path

    from codefuse.config import FilterRule

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


def path_level(rel: str) -> int:
    """Return the 0-based depth of a root-relative POSIX path."""
    return rel.count("/")


def render_tree(paths: Iterable[str]) -> str:
    """Render root-relative paths as a nested branch tree.

    The paths are sorted first, so the shape of the tree only depends on the set
    of paths and never on the order they were discovered in. A node is drawn as
    last when it is the final path or when the next sorted path is not deeper.

    Args:
        paths (Iterable[str]): root-relative paths with POSIX separators

    Returns:
        str: one line per path, each terminated by a newline ("" for no paths)
    """
    rels = sorted(paths)
    levels = [path_level(r) for r in rels]
    last_at_level: dict[int, bool] = {}
    out = io.StringIO()
    for i, rel in enumerate(rels):
        level = levels[i]
        is_last = i == len(rels) - 1 or levels[i + 1] <= level
        for ancestor in range(level):
            out.write(SPACE if last_at_level.get(ancestor, False) else PIPE)
        out.write(LAST_BRANCH if is_last else BRANCH)
        out.write(base_name(rel))
        out.write("\n")
        last_at_level[level] = is_last
    return out.getvalue()


def serialize_bundle(tree_text: str, contents: Mapping[str, str]) -> str:
    """Build the bundle text from a rendered tree and the loaded contents.

    Args:
        tree_text (str): the output of `render_tree`
        contents (Mapping[str, str]): relative path to file content (or empty directory marker)

    Returns:
        str: the bundle, file blocks ordered by path
    """
    out = io.StringIO()
    out.write("Project Directory Structure:\n")
    out.write(tree_text)
    out.write("\n")
    for rel in sorted(contents):
        out.write(f"File: \n{rel}\nContent: \n{contents[rel]}\n\n")
    return out.getvalue()


def build_bundle(
    root: Path | str,
    rule: FilterRule,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> str:
    """Walk `root`, load what passes `rule`, and serialize it into a bundle.

    Args:
        root (Path | str): the project directory
        rule (FilterRule): prefix and extension rules
        max_concurrency (int): maximum number of simultaneous file loads

    Raises:
        BundleIOError: if any path cannot be walked or loaded; nothing is returned then

    Returns:
        str: the bundle text
    """
    entries = walk_paths(
        root,
        rule.ignore_prefixes,
        rule.include_extensions,
        rule.ignore_extensions,
    )
    logger.info("Discovered %d path(s) under %s", len(entries), root)
    contents = load_contents(entries, max_concurrency=max_concurrency)
    logger.info("Loaded %d content record(s)", len(contents))
    tree_text = render_tree(entry.rel for entry in entries)
    return serialize_bundle(tree_text, contents)
