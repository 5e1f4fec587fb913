"""
Utility functions and helper modules.

- Error handling and logging
- File traversal and text helpers
- Subprocess execution with timeout and cancellation
- Output formatting and highlighting (``searchbench.utils.formatter``)
"""

from .error_handling import (
    ConfigurationError,
    ErrorCollector,
    FileAccessError,
    PermissionError,
    SearchCancelledError,
    SearchError,
    StrategyExecutionError,
    ValidationError,
    create_error_report,
    handle_file_error,
)
from .helpers import is_command_available, is_git_repository, iter_files, read_text_file
from .logging_config import configure_logging, disable_logging, enable_debug_logging, get_logger

__all__ = [
    # Error handling
    "ConfigurationError",
    "ErrorCollector",
    "FileAccessError",
    "PermissionError",
    "SearchCancelledError",
    "SearchError",
    "StrategyExecutionError",
    "ValidationError",
    "create_error_report",
    "handle_file_error",
    # Files and environment
    "is_command_available",
    "is_git_repository",
    "iter_files",
    "read_text_file",
    # Logging
    "configure_logging",
    "disable_logging",
    "enable_debug_logging",
    "get_logger",
]
