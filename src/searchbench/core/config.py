"""
Configuration module for searchbench.

SearchConfig is the central configuration object for the search engine: where
relative paths resolve from, which workspace roots an unscoped search covers,
which backends may run, and how long a backend subprocess may take.

Configuration can be built in code, or loaded from the ``[searchbench]`` table
of a TOML file. A couple of environment variables override file values:

    SEARCHBENCH_ANALYTICS   "1"/"true"/"yes" enables search telemetry
    SEARCHBENCH_TIMEOUT     subprocess timeout in seconds

Example:
    >>> from searchbench.core.config import SearchConfig
    >>> cfg = SearchConfig(target_dir="/repo", workspace_dirs=["/repo", "/docs"])
    >>> cfg.get_workspace_dirs()
    ['/repo', '/docs']

    searchbench.toml:
        [searchbench]
        target_dir = "."
        workspace_dirs = [".", "../docs"]
        analytics_enabled = true
        process_timeout = 30
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from ..utils.error_handling import ConfigurationError

# Directories skipped by every backend
DEFAULT_EXCLUDED_DIRS: tuple[str, ...] = (".git", "node_modules", "bower_components")
# The in-process traversal also skips other VCS metadata
DEFAULT_FALLBACK_IGNORE: tuple[str, ...] = (
    ".git/",
    "node_modules/",
    "bower_components/",
    ".svn/",
    ".hg/",
)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class SearchConfig:
    # Scope
    target_dir: str = field(default_factory=os.getcwd, metadata={"help": "Base for relative paths."})
    workspace_dirs: list[str] | None = None  # None = [target_dir]

    # Telemetry
    analytics_enabled: bool = False
    docs_path: str | None = None  # analytics export base; default <target_dir>/input-docs

    # Backends
    enable_git_grep: bool = True
    enable_system_grep: bool = True
    process_timeout: float = 60.0
    excluded_dirs: tuple[str, ...] = DEFAULT_EXCLUDED_DIRS
    fallback_ignore: tuple[str, ...] = DEFAULT_FALLBACK_IGNORE
    max_file_bytes: int = 20_000_000  # in-process reader skips larger files

    # Multi-root fan-out
    parallel: bool = True
    max_workers: int = 4

    # Telemetry enrichment
    context_lines: int = 2

    def __post_init__(self) -> None:
        if self.process_timeout <= 0:
            raise ConfigurationError(
                f"process_timeout must be positive, got {self.process_timeout}"
            )
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.context_lines < 0:
            raise ConfigurationError(f"context_lines must be >= 0, got {self.context_lines}")
        self.excluded_dirs = tuple(self.excluded_dirs)
        self.fallback_ignore = tuple(self.fallback_ignore)

    def resolve_target_dir(self) -> Path:
        return Path(self.target_dir).resolve()

    def get_workspace_dirs(self) -> list[str]:
        """Absolute workspace roots in configured order, duplicates removed."""
        base = self.resolve_target_dir()
        raw = self.workspace_dirs if self.workspace_dirs else [str(base)]
        seen: list[str] = []
        for entry in raw:
            resolved = str((base / entry).resolve())
            if resolved not in seen:
                seen.append(resolved)
        return seen

    def resolve_docs_path(self) -> Path:
        if self.docs_path:
            return (self.resolve_target_dir() / self.docs_path).resolve()
        return self.resolve_target_dir() / "input-docs"


def _apply_env_overrides(values: dict[str, Any]) -> dict[str, Any]:
    analytics = os.environ.get("SEARCHBENCH_ANALYTICS")
    if analytics is not None:
        values["analytics_enabled"] = analytics.strip().lower() in _TRUTHY

    timeout = os.environ.get("SEARCHBENCH_TIMEOUT")
    if timeout:
        try:
            values["process_timeout"] = float(timeout)
        except ValueError as e:
            raise ConfigurationError(f"SEARCHBENCH_TIMEOUT is not a number: {timeout!r}") from e

    return values


def config_from_dict(data: dict[str, Any], base_dir: Path | None = None) -> SearchConfig:
    """Build a SearchConfig from a mapping, rejecting unknown keys."""
    known = {f.name for f in fields(SearchConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys: {', '.join(unknown)}", context={"keys": unknown}
        )

    values = dict(data)
    if base_dir is not None:
        values["target_dir"] = str((base_dir / values.get("target_dir", ".")).resolve())
    for key in ("excluded_dirs", "fallback_ignore"):
        if key in values:
            values[key] = tuple(values[key])

    return SearchConfig(**_apply_env_overrides(values))


def load_config(path: str | Path | None = None) -> SearchConfig:
    """
    Load configuration from a TOML file.

    Relative ``target_dir`` values resolve against the file's directory.
    Without a path, defaults plus environment overrides are returned.

    Raises:
        ConfigurationError: If the file is missing, malformed, or has unknown keys
    """
    if path is None:
        return SearchConfig(**_apply_env_overrides({}))

    config_path = Path(path)
    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

    section = data.get("searchbench", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[searchbench] in {config_path} must be a table")

    return config_from_dict(section, base_dir=config_path.resolve().parent)
