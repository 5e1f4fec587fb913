"""
Core functionality for the searchbench package.

This module contains the fundamental components of the search engine:
- The GrepSearch orchestrator and the ``search`` convenience function
- Configuration management
- Workspace boundaries
- Core data types
"""

from .api import GrepSearch, search
from .config import SearchConfig, load_config
from .types import (
    MatchRecord,
    OutputFormat,
    SearchParams,
    SearchScope,
    StrategyOutcome,
    ToolResult,
)
from .workspace import WorkspaceContext

__all__ = [
    # Main classes
    "GrepSearch",
    "SearchConfig",
    "WorkspaceContext",
    "load_config",
    "search",
    # Data types
    "MatchRecord",
    "OutputFormat",
    "SearchParams",
    "SearchScope",
    "StrategyOutcome",
    "ToolResult",
]
