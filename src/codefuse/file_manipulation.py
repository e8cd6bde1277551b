from __future__ import annotations

import errno
import os
import stat
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from codefuse.config import DEFAULT_MAX_CONCURRENCY, EMPTY_DIRECTORY_MARKER, PathEntry
from codefuse.exceptions import BundleIOError
from codefuse.logging import logger

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def base_name(path: str) -> str:
    """Return the final segment of a path, accepting both separators."""
    return path.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def file_extension(path: str) -> str:
    """Return the extension of the final segment of `path`, leading dot included.

    Unlike `os.path.splitext`, a dotfile such as `.gitignore` is its own extension.

    Args:
        path (str): a POSIX or native path

    Returns:
        str: the substring from the last dot of the base name, or "" if there is none
    """
    name = base_name(path)
    idx = name.rfind(".")
    return name[idx:] if idx >= 0 else ""


def should_skip(
    path: str,
    is_dir: bool,  # noqa: FBT001
    prefixes_to_ignore: Collection[str],
    extensions_to_ignore: Collection[str],
    extensions_to_include: Collection[str],
) -> bool:
    """Decide whether a path is left out of the bundle.

    Rules are applied in order, the first match wins:

    1) the base name starts with an ignored prefix: skip (a directory is pruned);
    2) a file whose extension is ignored: skip;
    3) a directory, or no include list: keep;
    4) otherwise keep only files whose extension is in the include list.

    Args:
        path (str): the path to test; only its base name is matched
        is_dir (bool): whether the path is a directory
        prefixes_to_ignore (Collection[str]): base-name prefixes to reject
        extensions_to_ignore (Collection[str]): extensions (with dot) to reject
        extensions_to_include (Collection[str]): extensions (with dot) to allow exclusively

    Returns:
        bool: True if the path must be skipped, False otherwise
    """
    name = base_name(path)
    if any(name.startswith(prefix) for prefix in prefixes_to_ignore if prefix):
        return True
    ext = file_extension(name)
    if not is_dir and ext in extensions_to_ignore:
        return True
    if is_dir or not extensions_to_include:
        return False
    return ext not in extensions_to_include


def _walk_error_path(err: OSError, top: Path) -> str:
    if not err.filename:
        return str(top)
    failed = Path(os.fsdecode(err.filename))
    return str(top) if failed == top else relpath(failed, top)


def walk_paths(
    root: Path | str,
    prefixes_to_ignore: Collection[str],
    extensions_to_include: Collection[str],
    extensions_to_ignore: Collection[str],
) -> set[PathEntry]:
    """Collect the files and directories under `root` that pass the filter.

    The walk is depth-first and top-down, so a directory rejected by a prefix rule
    is pruned before it is entered. `root` itself is not part of the result.
    Symbolic links to directories are reported but not followed.

    Args:
        root (Path | str): the directory to walk
        prefixes_to_ignore (Collection[str]): base-name prefixes to reject
        extensions_to_include (Collection[str]): extensions to allow exclusively
        extensions_to_ignore (Collection[str]): extensions to reject

    Raises:
        BundleIOError: if `root` is not a directory, or if a directory cannot be
            listed (missing, permission denied, ...). The error path is relative
            to `root`, except for a failure on `root` itself.

    Returns:
        set[PathEntry]: the included paths, in no particular order
    """
    top = Path(root).absolute()
    if top.exists() and not top.is_dir():
        err = NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), str(top))
        raise BundleIOError(path=str(top), cause=err)

    def raise_walk_error(err: OSError) -> NoReturn:
        raise BundleIOError(path=_walk_error_path(err, top), cause=err) from err

    results: set[PathEntry] = set()
    for current, dirs, files in os.walk(top, onerror=raise_walk_error):
        base = Path(current)
        kept: list[str] = []
        for d in dirs:
            p = base / d
            if should_skip(d, True, prefixes_to_ignore, extensions_to_ignore, extensions_to_include):  # noqa: FBT003
                continue
            kept.append(d)
            results.add(PathEntry(path=p, rel=relpath(p, top), is_dir=True))
        dirs[:] = kept
        for f in files:
            if should_skip(f, False, prefixes_to_ignore, extensions_to_ignore, extensions_to_include):  # noqa: FBT003
                continue
            p = base / f
            results.add(PathEntry(path=p, rel=relpath(p, top), is_dir=False))
    return results


def load_entry(entry: PathEntry) -> str | None:
    """Load the bundle content of a single entry.

    Args:
        entry (PathEntry): the entry to load

    Raises:
        BundleIOError: if the entry cannot be stat'ed, read or listed

    Returns:
        str | None: the decoded text of a regular file, the empty directory marker
            for a directory without entries, or None when the entry has no content
            of its own (non-empty directory, socket, FIFO, ...)
    """
    try:
        st = entry.path.stat()
        if stat.S_ISREG(st.st_mode):
            return entry.path.read_bytes().decode("utf-8", errors="ignore")
        if stat.S_ISDIR(st.st_mode):
            with os.scandir(entry.path) as it:
                if next(it, None) is None:
                    return EMPTY_DIRECTORY_MARKER
    except OSError as e:
        raise BundleIOError(path=entry.rel, cause=e) from e
    return None


def load_contents(
    entries: Iterable[PathEntry],
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> dict[str, str]:
    """Read the content of every entry with at most `max_concurrency` reads in flight.

    Each entry is loaded by a worker of a fixed-size thread pool. Results are
    gathered by the calling thread only, so the returned mapping is never shared
    with the workers. Every submitted load runs to completion, even after a failure.

    Args:
        entries (Iterable[PathEntry]): the entries produced by `walk_paths`
        max_concurrency (int): maximum number of simultaneous loads (values below 1 mean 1)

    Raises:
        BundleIOError: the error of the lexicographically first failing path,
            once every load has finished

    Returns:
        dict[str, str]: a mapping from relative path to content, see `load_entry`
    """
    todo = list(entries)
    contents: dict[str, str] = {}
    errors: list[BundleIOError] = []
    if not todo:
        return contents

    workers = max(1, min(max_concurrency, len(todo)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="codefuse-load") as pool:
        futures = {pool.submit(load_entry, entry): entry for entry in todo}
        for future in as_completed(futures):
            entry = futures[future]
            try:
                content = future.result()
            except BundleIOError as e:
                errors.append(e)
                continue
            if content is not None:
                contents[entry.rel] = content

    if errors:
        errors.sort(key=lambda e: e.path)
        logger.warning("Failed to load %d path(s), first: %s", len(errors), errors[0].path)
        raise errors[0]
    return contents
