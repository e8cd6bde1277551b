"""
codefuse: bundle a project directory into a single annotated text file.

Overview
--------
The bundle starts with the project tree and is followed by one block per file
(path, then content). It is meant to be pasted into, or sent to, a code review
service in one piece.

Commands
--------
    codefuse [generate] [options]   write the bundle (default: codefuse-project.txt)
    codefuse init [--config PATH]   write a default .codefuse-config.yaml
    codefuse review [options]       write the bundle and submit it for review

Filters (`--ignore-pre`, `--ignore-ext`, `--include-ext`) can be repeated or
given as comma separated lists. Options are read from the command line, then
`CODEFUSE_*` environment variables (a `.env` file is honored), then the config
file, then defaults.

Usage
-----
    codefuse --ignore-pre node_modules,.git --include-ext .py,.toml
    codefuse review --api-key "$KEY" --review-url https://review.example/api
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from codefuse import __version__
from codefuse.config import DEFAULT_CONFIG_FILENAME, DEFAULT_CONFIG_TEMPLATE
from codefuse.exceptions import BundleIOError, CodefuseError
from codefuse.logging import logger, setup_logging
from codefuse.output_construction import build_bundle
from codefuse.review import submit_review
from codefuse.settings import find_config_file, load_settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codefuse.settings import Settings

COMMANDS = ("generate", "init", "review")


def add_bundle_arguments(p: argparse.ArgumentParser) -> None:
    """Register the options shared by the `generate` and `review` commands.

    Every option defaults to None so that unset flags fall through to the
    environment and the config file.

    Args:
        p (argparse.ArgumentParser): the parser to extend
    """
    p.add_argument("-d", "--dir", dest="repo", type=Path, default=None, help="Project root (default: .).")
    p.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Bundle output file (default: codefuse-project.txt).",
    )
    p.add_argument(
        "--ignore-pre",
        action="append",
        default=None,
        metavar="PREFIX[,PREFIX...]",
        help="Ignore files and directories whose name starts with PREFIX (repeatable).",
    )
    p.add_argument(
        "--ignore-ext",
        action="append",
        default=None,
        metavar="EXT[,EXT...]",
        help="Ignore files with extension EXT, e.g. .lock (repeatable).",
    )
    p.add_argument(
        "--include-ext",
        action="append",
        default=None,
        metavar="EXT[,EXT...]",
        help="Only include files with extension EXT (repeatable).",
    )
    p.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Maximum number of files read at once (default: 100).",
    )
    p.add_argument("--config", type=Path, default=None, help="Config file (default: .codefuse-config.yaml).")
    p.add_argument("--log-file", type=str, default=None, help="Log file path.")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")


def build_parser() -> argparse.ArgumentParser:
    """Build the parser of the default `generate` command.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    p = argparse.ArgumentParser(
        prog="codefuse",
        description="Bundle a project directory (tree + file contents) into one text file.",
    )
    add_bundle_arguments(p)
    return p


def build_review_parser() -> argparse.ArgumentParser:
    """Build the parser of the `review` command.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    p = argparse.ArgumentParser(
        prog="codefuse review",
        description="Generate the project bundle and submit it to the code review service.",
    )
    add_bundle_arguments(p)
    p.add_argument("--api-key", type=str, default=None, help="Review service API key.")
    p.add_argument("--review-url", type=str, default=None, help="Review service endpoint.")
    p.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds (default: 120).")
    p.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Review an existing bundle instead of generating one.",
    )
    return p


def build_init_parser() -> argparse.ArgumentParser:
    """Build the parser of the `init` command.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    p = argparse.ArgumentParser(
        prog="codefuse init",
        description=(
            "Write a default configuration file. It holds the review API key and the "
            "ignore/include rules used when generating the project bundle."
        ),
    )
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Where to write the file (default: ./{DEFAULT_CONFIG_FILENAME}).",
    )
    return p


def parse_args(argv: Sequence[str] | None = None, *, review: bool = False) -> Settings:
    """Parse CLI arguments and merge them with environment and config file.

    Args:
        argv (Sequence[str] | None): Optional CLI args (without the command name).
        review (bool): parse the options of the `review` command.

    Returns:
        Settings: Parsed settings.
    """
    parser = build_review_parser() if review else build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(vars(args))
    if settings.log_file:
        setup_logging(settings.log_file)
    return settings


def write_bundle(settings: Settings) -> str:
    """Build the bundle for `settings.repo` and write it to `settings.output`.

    The output file is only written once the whole bundle has been built.

    Args:
        settings (Settings): runtime settings

    Raises:
        BundleIOError: if the project cannot be read or the output cannot be written

    Returns:
        str: the bundle text
    """
    bundle = build_bundle(
        settings.repo,
        settings.filter_rule,
        max_concurrency=settings.max_concurrency,
    )
    try:
        settings.output.write_text(bundle, encoding="utf-8")
    except OSError as e:
        raise BundleIOError(path=str(settings.output), cause=e) from e
    logger.info("Bundle written", output=str(settings.output), chars=len(bundle))
    return bundle


def generate(argv: Sequence[str] | None = None) -> int:
    """Run the default command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code.
    """
    settings = parse_args(argv)
    bundle = write_bundle(settings)
    print(f"Wrote {settings.output} chars={len(bundle)}")
    return 0


def review(argv: Sequence[str] | None = None) -> int:
    """Run the `review` command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code.
    """
    settings = parse_args(argv, review=True)
    if settings.input is not None:
        try:
            bundle = settings.input.read_text(encoding="utf-8")
        except OSError as e:
            raise BundleIOError(path=str(settings.input), cause=e) from e
    else:
        bundle = write_bundle(settings)
    answer = submit_review(
        bundle,
        api_key=settings.api_key,
        url=settings.review_url,
        timeout=settings.timeout,
    )
    print(answer)
    return 0


def init_config(argv: Sequence[str] | None = None) -> int:
    """Run the `init` command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code (1 if a config file already exists or cannot be written).
    """
    args = build_init_parser().parse_args(argv)
    target: Path = args.config or Path(DEFAULT_CONFIG_FILENAME)
    existing = target if target.exists() else find_config_file()
    if existing is not None:
        print(f"Config file already exists at {existing}")
        return 1
    try:
        target.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    except OSError as e:
        print(f"Unable to write config file: {e}")
        return 1
    print(f"Config file created at: {target}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Dispatch to the requested command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    command = args.pop(0) if args and args[0] in COMMANDS else "generate"
    try:
        if command == "init":
            return init_config(args)
        if command == "review":
            return review(args)
        return generate(args)
    except CodefuseError as e:
        logger.error("Command failed", command=command, error=str(e), kind=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def entrypoint() -> None:
    """Console script entry point."""
    raise SystemExit(main())


if __name__ == "__main__":
    entrypoint()
