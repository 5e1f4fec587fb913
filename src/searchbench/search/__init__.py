"""
Search backends, output normalization and relevance heuristics.

- Strategy chain: git grep, then system grep, then an in-process fallback
- Parsing of ``path:line:content`` output into match records
- Relevance scoring and ranking factors used by search telemetry
"""

from .parser import parse_grep_line, parse_grep_output
from .scorer import (
    build_ranking_factors,
    calculate_pattern_complexity,
    calculate_relevance_score,
    create_match_analytics,
    get_match_reason,
)
from .strategies import (
    FallbackStrategy,
    GitGrepStrategy,
    SearchStrategy,
    StrategyChain,
    StrategyRequest,
    SystemGrepStrategy,
)

__all__ = [
    # Backends
    "FallbackStrategy",
    "GitGrepStrategy",
    "SearchStrategy",
    "StrategyChain",
    "StrategyRequest",
    "SystemGrepStrategy",
    # Parsing
    "parse_grep_line",
    "parse_grep_output",
    # Scoring
    "build_ranking_factors",
    "calculate_pattern_complexity",
    "calculate_relevance_score",
    "create_match_analytics",
    "get_match_reason",
]
