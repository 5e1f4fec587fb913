"""
searchbench: layered regex content search with search telemetry.

A search runs through a chain of backends and returns the first usable
result: ``git grep`` inside git work trees, the system ``grep`` when it is on
PATH, and an in-process traversal otherwise. Matches from one directory or
from every workspace root are merged into a single, file-grouped summary.
An optional telemetry layer records per-search analytics (relevance scores,
ranking factors, file statistics) without changing the results.

Main Classes:
    GrepSearch: Validates parameters, runs the backends, renders the result
    SearchConfig: Configuration (roots, backends, timeouts, telemetry)
    WorkspaceContext: Directories a search may touch
    SearchAnalyticsCollector: Process-wide telemetry sink

Core Modules:
    core: Orchestrator, configuration, workspace and data types
    search: Backends, grep output parsing and relevance heuristics
    analytics: Search sessions, the collector and reports
    utils: Logging, error handling, file helpers and formatting
    cli: Command-line interface

Example Usage:
    API usage:
        >>> from searchbench import GrepSearch, SearchConfig, SearchParams
        >>> tool = GrepSearch(SearchConfig(target_dir="."))
        >>> result = tool.execute(SearchParams(pattern="TODO", include="*.md"))
        >>> print(result.llm_content)

    CLI usage:
        $ searchbench search "TODO" --include "*.md"
        $ searchbench search "(foo|bar)" --analytics --report
"""

from .analytics import BenchConfig, BenchMode, SearchAnalyticsCollector, generate_report
from .core import (
    GrepSearch,
    MatchRecord,
    OutputFormat,
    SearchConfig,
    SearchParams,
    ToolResult,
    WorkspaceContext,
    load_config,
    search,
)
from .utils.error_handling import SearchError

__version__ = "0.1.0"

__all__ = [
    # Main API
    "GrepSearch",
    "SearchConfig",
    "WorkspaceContext",
    "load_config",
    "search",
    # Data types
    "MatchRecord",
    "OutputFormat",
    "SearchParams",
    "ToolResult",
    # Telemetry
    "BenchConfig",
    "BenchMode",
    "SearchAnalyticsCollector",
    "generate_report",
    # Errors
    "SearchError",
]
