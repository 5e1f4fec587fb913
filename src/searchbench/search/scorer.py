"""
Heuristic relevance scoring and ranking signals for grep matches.

These scores only feed telemetry. They never reorder or filter the matches a
search returns.

Key Functions:
    calculate_relevance_score: 0..1 score for one matching line
    get_match_reason: Human-readable explanation of why a line matched
    calculate_pattern_complexity: 0..1 estimate of how "regex-heavy" a pattern is
    build_ranking_factors: Search-level factors (complexity, scope, density, filter)
    create_match_analytics: Full per-match telemetry record, including file stats
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path

import regex

from ..analytics.models import MatchAnalytics, RankingFactor
from ..core.types import MatchRecord
from ..utils.helpers import extract_context, file_meta, read_text_file, split_lines
from ..utils.logging_config import get_logger

FAVORED_EXTENSIONS = frozenset({".md", ".txt", ".js", ".ts", ".py", ".java"})

_REGEX_METACHARS = re.compile(r"[.*+?^${}()|\[\]\\]")
_CHARACTER_CLASSES = ("\\b", "\\w", "\\d", "\\s")


@lru_cache(maxsize=128)
def _compile_case_insensitive(pattern: str) -> regex.Pattern[str] | None:
    try:
        return regex.compile(pattern, regex.IGNORECASE)
    except regex.error:
        return None


def calculate_relevance_score(match: MatchRecord, pattern: str) -> float:
    """
    Score a match between 0 and 1.

    Starts at 0.5 and adds bonuses for literal containment of the pattern,
    short lines, an early match position and a favoured file extension.
    """
    score = 0.5
    line_lower = match.line.lower()
    pattern_lower = pattern.lower()

    if pattern_lower in line_lower:
        score += 0.2

    trimmed = match.line.strip()
    if len(trimmed) < 100:
        score += 0.1
    if len(trimmed) < 50:
        score += 0.1

    # find() gives -1 when the pattern is not a literal substring; that counts as early too
    if trimmed.lower().find(pattern_lower) < 10:
        score += 0.1

    if os.path.splitext(match.file_path)[1].lower() in FAVORED_EXTENSIONS:
        score += 0.1

    return max(0.0, min(1.0, score))


def get_match_reason(match: MatchRecord, pattern: str) -> str:
    reasons: list[str] = []

    if pattern.lower() in match.line.lower():
        reasons.append("exact pattern match")

    compiled = _compile_case_insensitive(pattern)
    if compiled is not None and compiled.search(match.line):
        reasons.append("regex pattern match")

    ext = os.path.splitext(match.file_path)[1]
    if ext:
        reasons.append(f"found in {ext} file")

    if match.line_number < 10:
        reasons.append("near file beginning")

    return ", ".join(reasons) or "pattern match"


def calculate_pattern_complexity(pattern: str) -> float:
    """Estimate pattern complexity in [0, 1]; 1 is most complex."""
    complexity = 0.0

    metachars = _REGEX_METACHARS.findall(pattern)
    if metachars:
        complexity += min(len(metachars) * 0.1, 0.5)

    complexity += min(len(pattern) * 0.01, 0.3)

    if pattern != pattern.lower() and pattern != pattern.upper():
        complexity += 0.1

    if any(cls in pattern for cls in _CHARACTER_CLASSES):
        complexity += 0.2

    return min(complexity, 1.0)


def build_ranking_factors(
    pattern: str, include: str | None, match_count: int, files_scanned: int
) -> list[RankingFactor]:
    complexity = calculate_pattern_complexity(pattern)
    scope = 1.0 if files_scanned > 100 else files_scanned / 100
    density = match_count / files_scanned if files_scanned > 0 else 0.0

    factors = [
        RankingFactor(
            factor="Pattern Complexity",
            weight=0.3,
            value=complexity,
            explanation=(
                f'Pattern "{pattern}" has {"high" if complexity > 0.5 else "low"} '
                f"complexity ({complexity:.2f})"
            ),
        ),
        RankingFactor(
            factor="Search Scope",
            weight=0.2,
            value=scope,
            explanation=f"Searched {files_scanned} files (scope factor: {scope:.2f})",
        ),
        RankingFactor(
            factor="Result Density",
            weight=0.4,
            value=density,
            explanation=(
                f"Found {match_count} matches in {files_scanned} files "
                f"({density * 100:.2f}% hit rate)"
            ),
        ),
    ]
    if include:
        factors.append(
            RankingFactor(
                factor="File Filter",
                weight=0.1,
                value=1.0,
                explanation=f"Applied file filter: {include}",
            )
        )
    return factors


def create_match_analytics(
    match: MatchRecord, pattern: str, search_root: str | Path, context_lines: int = 2
) -> MatchAnalytics:
    """
    Build the telemetry record for one match.

    File size, modification time and surrounding lines are best effort: any
    failure to stat or read the file leaves them empty or zero.
    """
    full_path = Path(search_root) / match.file_path
    file_size = 0
    last_modified = 0.0
    before = after = ""

    meta = file_meta(full_path)
    if meta is not None:
        file_size = meta.size
        last_modified = meta.mtime * 1000
    try:
        content = read_text_file(full_path)
    except OSError as e:
        get_logger().debug(f"Could not read context for {match.file_path}: {e}")
        content = None
    if content is not None:
        before, after = extract_context(split_lines(content), match.line_number, context_lines)

    return MatchAnalytics(
        file_path=match.file_path,
        line_number=match.line_number,
        match_text=match.line,
        context_before=before,
        context_after=after,
        relevance_score=calculate_relevance_score(match, pattern),
        match_reason=get_match_reason(match, pattern),
        file_size=file_size,
        file_last_modified=last_modified,
    )
