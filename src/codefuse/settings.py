from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from codefuse.config import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_IGNORE_PREFIXES,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_OUTPUT,
    DEFAULT_REVIEW_TIMEOUT,
    ENV_PREFIX,
    FilterRule,
    split_values,
)
from codefuse.exceptions import ConfigError
from codefuse.logging import logger

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_FILE = find_dotenv(usecwd=True)

CONFIG_KEYS = frozenset(
    {
        "api_key",
        "review_url",
        "ignore_pre",
        "ignore_ext",
        "include_ext",
        "max_concurrency",
        "output",
    },
)


class Settings(BaseModel):
    """Configuration settings for the codefuse commands."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    repo: Path = Field(default_factory=Path.cwd, description="Project root to bundle.")
    output: Path = Field(default=Path(DEFAULT_OUTPUT), description="Bundle output file.")
    ignore_pre: list[str] = Field(default_factory=list, description="Name prefixes to ignore.")
    ignore_ext: list[str] = Field(default_factory=list, description="Extensions to ignore.")
    include_ext: list[str] = Field(default_factory=list, description="Extensions to include.")
    max_concurrency: int = Field(
        default=DEFAULT_MAX_CONCURRENCY,
        ge=1,
        description="Maximum number of files read at once.",
    )
    config: Path | None = Field(default=None, description="Config file in use.")
    log_file: str = Field(default="", description="Log file path.")

    api_key: str = Field(default="", description="Review service API key.")
    review_url: str = Field(default="", description="Review service endpoint.")
    timeout: float = Field(
        default=DEFAULT_REVIEW_TIMEOUT,
        gt=0,
        description="Review request timeout in seconds.",
    )
    input: Path | None = Field(default=None, description="Existing bundle to review.")

    @field_validator("ignore_pre", "ignore_ext", "include_ext", mode="before")
    @classmethod
    def _split_lists(cls, value: Any) -> list[str]:  # noqa: ANN401
        return split_values(value)

    @property
    def filter_rule(self) -> FilterRule:
        """Build the filter rule matching the ignore/include options.

        Default ignores are always added, together with the output and config
        files when they live under the project root, so a bundle never contains
        a previous bundle or the API key.
        """
        root = self.repo.resolve()
        own_files = [self.output, self.config] if self.config is not None else [self.output]
        ignored = set(DEFAULT_IGNORE_PREFIXES) | set(self.ignore_pre)
        for own in own_files:
            resolved = own.resolve()
            if resolved.is_relative_to(root):
                ignored.add(resolved.name)
        return FilterRule(
            ignore_prefixes=ignored,
            ignore_extensions=self.ignore_ext,
            include_extensions=self.include_ext,
        )


def normalize_key(key: str) -> str:
    """Turn a config-file key such as `ignore-pre` into a settings field name."""
    return key.strip().lower().replace("-", "_")


def find_config_file(explicit: Path | str | None = None) -> Path | None:
    """Locate the configuration file.

    Args:
        explicit (Path | str | None): a path given on the command line, if any

    Raises:
        ConfigError: if `explicit` is given but does not exist

    Returns:
        Path | None: the explicit path, else `.codefuse-config.yaml` from the current
            directory or the home directory, else None
    """
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigError(message="config file not found", path=str(path))
        return path
    for folder in (Path.cwd(), Path.home()):
        candidate = folder / DEFAULT_CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file into settings field names.

    Unknown keys are logged and ignored, null values are dropped.

    Args:
        path (Path): the YAML file to read

    Raises:
        ConfigError: if the file cannot be read, parsed, or is not a mapping

    Returns:
        dict[str, Any]: the values set in the file, keyed by settings field name
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(message=f"cannot read config file: {e}", path=str(path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(message=f"invalid YAML: {e}", path=str(path)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(message="config file must contain a mapping", path=str(path))

    out: dict[str, Any] = {}
    for key, value in data.items():
        name = normalize_key(str(key))
        if name not in CONFIG_KEYS:
            logger.warning("Ignoring unknown config key %s in %s", key, path)
            continue
        if value is not None:
            out[name] = value
    return out


def read_environment(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect `CODEFUSE_*` variables into settings field names.

    Args:
        environ (Mapping[str, str]): the environment to read

    Returns:
        dict[str, Any]: the non-empty values, keyed by settings field name
    """
    out: dict[str, Any] = {}
    for name in CONFIG_KEYS:
        value = environ.get(ENV_PREFIX + name.upper(), "")
        if value.strip():
            out[name] = value.strip()
    return out


def load_settings(
    cli_values: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Merge command-line values, environment and config file into `Settings`.

    Precedence is command line, then environment, then config file, then defaults.
    A command-line value of None means "not given".

    Args:
        cli_values (Mapping[str, Any]): parsed command-line options, keyed by field name
        environ (Mapping[str, str] | None): environment to read; the process
            environment (after loading `.env`) when None

    Raises:
        ConfigError: if the config file is unusable or a merged value is invalid

    Returns:
        Settings: the validated settings
    """
    if environ is None:
        if ENV_FILE:
            load_dotenv(ENV_FILE, override=False)
        environ = os.environ

    config_path = find_config_file(cli_values.get("config"))
    merged: dict[str, Any] = {}
    if config_path is not None:
        logger.info("Using config file %s", config_path)
        merged.update(load_config_file(config_path))
        merged["config"] = config_path
    merged.update(read_environment(environ))
    merged.update({k: v for k, v in cli_values.items() if v is not None and k != "config"})

    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        source = str(config_path) if config_path is not None else ""
        raise ConfigError(message=f"invalid settings: {e}", path=source) from e
