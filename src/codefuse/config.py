from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONFIG_FILENAME = ".codefuse-config.yaml"
DEFAULT_OUTPUT = "codefuse-project.txt"
DEFAULT_MAX_CONCURRENCY = 100
DEFAULT_REVIEW_TIMEOUT = 120.0
EMPTY_DIRECTORY_MARKER = "empty directory"
ENV_PREFIX = "CODEFUSE_"

DEFAULT_IGNORE_PREFIXES = frozenset(
    {
        ".git",
        ".env",
        DEFAULT_CONFIG_FILENAME,
        DEFAULT_OUTPUT,
    },
)

DEFAULT_CONFIG_TEMPLATE = """\
# Configuration for codefuse

# API key for the code review service (required for the "review" command)
api-key:
# URL of the code review service (required for the "review" command)
review-url:
# specify the prefixes of files and directories to ignore (by default common configuration files are ignored)
ignore-pre: # ex. [tests, readme.md, scripts]
# specify the extensions of files to ignore
ignore-ext: # ex. [.go, .py, .js]
# specify the extensions of files to include
include-ext: # ex. [.go, .py, .js]
"""


def split_values(value: Any) -> list[str]:  # noqa: ANN401
    """Flatten a filter value coming from the CLI, the environment or YAML.

    Strings are split on commas, sequences are flattened one level, and blank
    items are dropped so that an unset or garbage value means "no filtering".

    Args:
        value (Any): None, a comma separated string, or a sequence of such strings.

    Returns:
        list[str]: the stripped, non-empty items in their original order
    """
    if value is None:
        return []
    items = list(value) if isinstance(value, (list, tuple, set, frozenset)) else [value]
    out: list[str] = []
    for item in items:
        if item is None:
            continue
        for part in str(item).split(","):
            part = part.strip()  # noqa: PLW2901
            if part:
                out.append(part)
    return out


class FilterRule(BaseModel):
    """Name-prefix and extension rules deciding which paths enter a bundle.

    Attributes:
        ignore_prefixes: base-name prefixes to reject; a rejected directory is pruned.
        ignore_extensions: file extensions to reject.
        include_extensions: file extensions to allow exclusively (empty allows all).
    """

    model_config = ConfigDict(frozen=True)

    ignore_prefixes: frozenset[str] = Field(default_factory=frozenset, description="ignore-pre")
    ignore_extensions: frozenset[str] = Field(default_factory=frozenset, description="ignore-ext")
    include_extensions: frozenset[str] = Field(default_factory=frozenset, description="include-ext")

    @field_validator("ignore_prefixes", "ignore_extensions", "include_extensions", mode="before")
    @classmethod
    def _drop_blank_items(cls, value: Any) -> frozenset[str]:  # noqa: ANN401
        return frozenset(split_values(value))


class PathEntry(BaseModel):
    """A path discovered while walking the project root.

    Attributes:
        path: Absolute path on disk.
        rel: Path relative to the walked root, with POSIX separators.
        is_dir: Whether the entry is a directory (symlinks to directories included).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(..., description="Absolute path")
    rel: str = Field(..., description="Path relative to the walked root")
    is_dir: bool = Field(default=False, description="Directory flag")
