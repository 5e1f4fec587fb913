"""
Error taxonomy and per-file error collection for searchbench.

The engine distinguishes between failures that are reported to the caller and
failures that are absorbed along the way:

    - ValidationError: bad pattern or path; reported before any strategy runs
    - StrategyExecutionError: a backend ran and failed; logged, next one tried
    - SearchCancelledError: the cancellation signal fired during a subprocess
    - FileAccessError / PermissionError: per-file problems,
      collected by ErrorCollector and never raised out of a traversal, except
      FileAccessError for the search root itself

Example:
    >>> from searchbench.utils.error_handling import ErrorCollector, handle_file_error
    >>> collector = ErrorCollector()
    >>> try:
    ...     Path("missing.txt").read_text()
    ... except OSError as e:
    ...     handle_file_error(Path("missing.txt"), "read", e, collector)
    >>> collector.get_summary()["total_errors"]
    1
"""

from __future__ import annotations

import builtins
import sys
import threading
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

BuiltinPermissionError = builtins.PermissionError


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification."""

    FILE_ACCESS = "file_access"
    PERMISSION = "permission"
    ENCODING = "encoding"
    TIMEOUT = "timeout"
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    STRATEGY = "strategy"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Detailed error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    file_path: Path | None = None
    exception_type: str | None = None
    traceback_str: str | None = None
    timestamp: float = field(default_factory=time.time)
    context: dict[str, Any] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)


class SearchError(Exception):
    """Base exception for search-related errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        file_path: Path | None = None,
        suggestions: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.category: ErrorCategory = category
        self.severity: ErrorSeverity = severity
        self.file_path: Path | None = file_path
        self.suggestions: list[str] = suggestions or []
        self.context: dict[str, Any] = context or {}
        self.timestamp: float = time.time()


class ValidationError(SearchError):
    """Caller supplied parameters that cannot be searched with."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.HIGH,
            context=context,
        )


class FileAccessError(SearchError):
    """Error accessing files."""

    def __init__(
        self, message: str, file_path: Path, context: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.FILE_ACCESS,
            severity=ErrorSeverity.MEDIUM,
            file_path=file_path,
            context=context,
        )


class PermissionError(SearchError):
    """Permission-related errors."""

    def __init__(
        self, message: str, file_path: Path, context: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.PERMISSION,
            severity=ErrorSeverity.LOW,
            file_path=file_path,
            suggestions=[
                "Check file permissions",
                "Exclude the directory from the search",
            ],
            context=context,
        )


class ConfigurationError(SearchError):
    """Configuration-related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            suggestions=[
                "Check configuration file syntax",
                "Remove unknown keys from the [searchbench] table",
            ],
            context=context,
        )


class StrategyExecutionError(SearchError):
    """A search backend ran and failed."""

    def __init__(
        self,
        strategy: str,
        message: str,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(
            message,
            category=ErrorCategory.STRATEGY,
            severity=ErrorSeverity.MEDIUM,
            context={"strategy": strategy, "exit_code": exit_code},
        )
        self.strategy = strategy
        self.exit_code = exit_code
        self.stderr = stderr


class SearchCancelledError(SearchError):
    """The cancellation signal fired while a backend was running."""

    def __init__(self, message: str = "Search cancelled") -> None:
        super().__init__(
            message,
            category=ErrorCategory.CANCELLED,
            severity=ErrorSeverity.LOW,
        )


class ErrorCollector:
    """Collects per-file errors during search operations."""

    def __init__(self, max_errors: int = 100) -> None:
        self.max_errors = max_errors
        self.errors: list[ErrorInfo] = []
        self.error_counts: dict[ErrorCategory, int] = {}
        self._lock = threading.Lock()

    def add_error(
        self,
        exception: Exception,
        file_path: Path | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        if isinstance(exception, SearchError):
            category = exception.category
            severity = exception.severity
            error_file_path = exception.file_path or file_path
            suggestions = exception.suggestions
            error_context = {**exception.context, **(context or {})}
        else:
            category = classify_exception(exception)
            severity = ErrorSeverity.MEDIUM
            error_file_path = file_path
            suggestions = []
            error_context = context or {}

        info = ErrorInfo(
            category=category,
            severity=severity,
            message=str(exception),
            file_path=error_file_path,
            exception_type=type(exception).__name__,
            traceback_str=traceback.format_exc() if sys.exc_info()[0] else None,
            context=error_context,
            suggestions=suggestions,
        )

        with self._lock:
            if len(self.errors) < self.max_errors:
                self.errors.append(info)
            self.error_counts[category] = self.error_counts.get(category, 0) + 1

    def get_errors_by_category(self, category: ErrorCategory) -> list[ErrorInfo]:
        return [error for error in self.errors if error.category == category]

    def get_summary(self) -> dict[str, Any]:
        return {
            "total_errors": sum(self.error_counts.values()),
            "by_category": {k.value: v for k, v in self.error_counts.items()},
        }

    def clear(self) -> None:
        with self._lock:
            self.errors.clear()
            self.error_counts.clear()


def classify_exception(exception: BaseException) -> ErrorCategory:
    """Map a builtin exception onto an error category."""
    if isinstance(exception, (FileNotFoundError, IsADirectoryError, NotADirectoryError)):
        return ErrorCategory.FILE_ACCESS
    if isinstance(exception, BuiltinPermissionError):
        return ErrorCategory.PERMISSION
    if isinstance(exception, UnicodeError):
        return ErrorCategory.ENCODING
    if isinstance(exception, TimeoutError):
        return ErrorCategory.TIMEOUT
    if isinstance(exception, OSError):
        return ErrorCategory.FILE_ACCESS
    return ErrorCategory.UNKNOWN


def handle_file_error(
    file_path: Path,
    operation: str,
    exception: Exception,
    error_collector: ErrorCollector | None = None,
    logger: Any | None = None,
) -> SearchError:
    """
    Classify a per-file failure, record it, and log it.

    Args:
        file_path: Path to the file that caused the error
        operation: Operation being performed (e.g., "read", "stat")
        exception: The exception that occurred
        error_collector: Optional error collector to add the error to
        logger: Optional SearchLogger to log the error

    Returns:
        The classified SearchError (never raised here)
    """
    error: SearchError
    if isinstance(exception, (FileNotFoundError, IsADirectoryError)):
        error = FileAccessError(f"Cannot {operation} file: {exception}", file_path)
    elif isinstance(exception, BuiltinPermissionError):
        error = PermissionError(f"Permission denied during {operation}: {exception}", file_path)
    else:
        error = SearchError(
            f"Unexpected error during {operation}: {exception}",
            category=classify_exception(exception),
            file_path=file_path,
        )

    if error_collector is not None:
        error_collector.add_error(error)

    if logger is not None:
        logger.log_file_error(str(file_path), error.message, file_operation=operation)

    return error


def get_error_message(error: BaseException) -> str:
    """Best human-readable message for an exception."""
    if isinstance(error, SearchError):
        return error.message
    return str(error) or type(error).__name__


def create_error_report(error_collector: ErrorCollector) -> str:
    """Create a human-readable error report."""
    if not error_collector.errors:
        return "No errors occurred during the search operation."

    summary = error_collector.get_summary()
    report = ["Search Error Report", "=" * 50, ""]
    report.append(f"Total errors: {summary['total_errors']}")
    report.append("")
    report.append("Errors by category:")
    for category, count in summary["by_category"].items():
        report.append(f"  {category}: {count}")
    report.append("")

    report.append("Details:")
    for error in error_collector.errors[:20]:
        location = f" ({error.file_path})" if error.file_path else ""
        report.append(f"  - [{error.category.value}] {error.message}{location}")

    return "\n".join(report)
