"""
Core type definitions for searchbench.

Key Types:
    OutputFormat: Enumeration of supported CLI output formats
    MatchRecord: One matching line, relative to the root it was found in
    SearchParams: Caller-facing search parameters
    SearchScope: The resolved set of root directories for one search
    StrategyOutcome: What a single search backend produced
    ToolResult: Rendered result handed back to the caller

Example:
    >>> from searchbench.core.types import MatchRecord, group_matches_by_file
    >>> matches = [MatchRecord("a.txt", 3, "// TODO fix"), MatchRecord("a.txt", 1, "TODO")]
    >>> group_matches_by_file(matches)["a.txt"][0].line_number
    1
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    HIGHLIGHT = "highlight"


@dataclass(slots=True, frozen=True)
class MatchRecord:
    """
    A single matching line.

    Attributes:
        file_path: Path relative to the search root (prefixed with the root's
            directory name when several workspace roots were searched)
        line_number: 1-based line number
        line: Full text of the matching line, without the line terminator
    """

    file_path: str
    line_number: int
    line: str

    def __post_init__(self) -> None:
        if self.line_number < 1:
            raise ValueError(f"line_number must be 1-based, got {self.line_number}")

    def with_prefix(self, prefix: str) -> MatchRecord:
        """Copy of this record with ``prefix`` joined in front of the path."""
        return MatchRecord(os.path.join(prefix, self.file_path), self.line_number, self.line)


@dataclass(slots=True)
class SearchParams:
    pattern: str
    path: str | None = None
    include: str | None = None


@dataclass(slots=True)
class SearchScope:
    """
    Resolved directories for one search.

    ``explicit`` is True when the caller named a path; otherwise ``roots`` are
    all configured workspace directories in their configured order.
    """

    roots: tuple[str, ...]
    explicit: bool = False
    display: str = "."

    @property
    def is_multi_root(self) -> bool:
        return len(self.roots) > 1

    def describe(self) -> str:
        if self.explicit:
            return f'in path "{self.display}"'
        if self.is_multi_root:
            return f"across {len(self.roots)} workspace directories"
        return "in the workspace directory"


@dataclass(slots=True)
class StrategyOutcome:
    strategy_name: str
    raw_output: str = ""
    matches: list[MatchRecord] = field(default_factory=list)
    files_scanned: int | None = None  # only known when the traversal ran in-process
    cancelled: bool = False
    # why earlier strategies in the chain were passed over
    fallback_reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ToolResult:
    """
    Result of one orchestrated search.

    Attributes:
        llm_content: Full summary text (summary line plus one block per file)
        return_display: Short human-facing status line
        matches: Merged matches in rendering order
        error: True when the search did not run (validation or runtime error)
        cancelled: True when the cancellation signal cut the search short
    """

    llm_content: str
    return_display: str
    matches: list[MatchRecord] = field(default_factory=list)
    error: bool = False
    cancelled: bool = False


def group_matches_by_file(matches: list[MatchRecord]) -> dict[str, list[MatchRecord]]:
    """Group by file path in first-seen order; each group ascends by line number."""
    grouped: dict[str, list[MatchRecord]] = {}
    for match in matches:
        grouped.setdefault(match.file_path, []).append(match)
    for file_matches in grouped.values():
        file_matches.sort(key=lambda m: m.line_number)
    return grouped
