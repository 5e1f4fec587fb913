"""
Main API module for searchbench.

GrepSearch is the entry point for programmatic searches. It validates the
caller's parameters, resolves which directories to search, runs the strategy
chain on each of them, merges and renders the matches, and reports telemetry
through an injected SearchAnalyticsCollector.

Classes:
    GrepSearch: Orchestrates one regex content search per ``execute`` call

Functions:
    search: One-shot convenience wrapper around GrepSearch

Example:
    Basic search:
        >>> from searchbench.core.api import GrepSearch
        >>> from searchbench.core.config import SearchConfig
        >>> from searchbench.core.types import SearchParams
        >>>
        >>> tool = GrepSearch(SearchConfig(target_dir="/repo"))
        >>> result = tool.execute(SearchParams(pattern="TODO", include="*.py"))
        >>> print(result.return_display)
        Found 3 matches

    With telemetry:
        >>> from searchbench.analytics import SearchAnalyticsCollector, generate_report
        >>> collector = SearchAnalyticsCollector()
        >>> collector.enable_analytics()
        >>> tool = GrepSearch(SearchConfig(target_dir="/repo"), analytics=collector)
        >>> tool.execute(SearchParams(pattern="TODO"))
        >>> print(generate_report(collector))
"""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import regex

from ..analytics.collector import SearchAnalyticsCollector
from ..analytics.session import SearchSession
from ..search.scorer import build_ranking_factors, create_match_analytics
from ..search.strategies import StrategyChain, StrategyRequest
from ..utils.error_handling import (
    ErrorCollector,
    SearchError,
    ValidationError,
    create_error_report,
    get_error_message,
)
from ..utils.helpers import iter_files, shorten_path
from ..utils.logging_config import SearchLogger, get_logger
from .config import SearchConfig
from .types import (
    MatchRecord,
    SearchParams,
    SearchScope,
    StrategyOutcome,
    ToolResult,
    group_matches_by_file,
)
from .workspace import WorkspaceContext

CANCELLED_NOTE = " (search cancelled; results may be incomplete)"


class GrepSearch:
    """
    Regex content search across a directory or every workspace root.

    The instance is reusable and safe to call from several threads; each
    ``execute`` call owns its own telemetry session, match buffers and
    per-file error collector.
    """

    name = "search_file_content"

    def __init__(
        self,
        config: SearchConfig | None = None,
        workspace: WorkspaceContext | None = None,
        analytics: SearchAnalyticsCollector | None = None,
        logger: SearchLogger | None = None,
        strategy_chain: StrategyChain | None = None,
    ) -> None:
        """
        Args:
            config: Search configuration. Defaults to ``SearchConfig()``.
            workspace: Allowed roots. Defaults to the config's workspace dirs.
            analytics: Shared telemetry collector. When omitted a private one
                is created and enabled according to ``config.analytics_enabled``.
            logger: Custom logger instance. Defaults to the package logger.
            strategy_chain: Backends to try, in order. Defaults to git grep,
                system grep, then the in-process fallback.
        """
        self.cfg = config or SearchConfig()
        self.logger = logger or get_logger()
        self.workspace = workspace or WorkspaceContext.from_config(self.cfg)
        if analytics is None:
            analytics = SearchAnalyticsCollector(self.cfg.resolve_docs_path(), self.logger)
            if self.cfg.analytics_enabled:
                analytics.enable_analytics()
        self.analytics = analytics
        self.chain = strategy_chain or StrategyChain.default(self.cfg, logger=self.logger)

    # -- validation ----------------------------------------------------------

    def resolve_and_validate_path(self, relative_path: str | None) -> str | None:
        """
        Resolve ``relative_path`` against the target directory.

        Returns:
            The absolute directory, or None when no path was given (meaning
            every workspace directory is searched)

        Raises:
            ValidationError: If the path escapes the workspace, does not exist,
                or is not a directory
        """
        if not relative_path:
            return None

        target = os.path.abspath(os.path.join(self.cfg.resolve_target_dir(), relative_path))

        if not self.workspace.is_path_within_workspace(target):
            directories = ", ".join(self.workspace.get_directories())
            raise ValidationError(
                f'Path validation failed: Attempted path "{relative_path}" resolves outside '
                f"the allowed workspace directories: {directories}",
                context={"path": relative_path},
            )
        if not os.path.exists(target):
            raise ValidationError(f"Path does not exist: {target}", context={"path": target})
        if not os.path.isdir(target):
            raise ValidationError(f"Path is not a directory: {target}", context={"path": target})
        return target

    def validate_params(self, params: SearchParams) -> str | None:
        """Return a description of the first problem with ``params``, or None."""
        if not isinstance(params.pattern, str) or not params.pattern:
            return "The 'pattern' parameter must be a non-empty string."
        try:
            regex.compile(params.pattern)
        except regex.error as e:
            return (
                f"Invalid regular expression pattern provided: {params.pattern}. "
                f"Error: {get_error_message(e)}"
            )
        if params.include is not None and not isinstance(params.include, str):
            return "The 'include' parameter must be a string."
        if params.path is not None and not isinstance(params.path, str):
            return "The 'path' parameter must be a string."

        if params.path:
            try:
                self.resolve_and_validate_path(params.path)
            except ValidationError as e:
                return e.message
        return None

    def get_description(self, params: SearchParams) -> str:
        """One-line description such as ``'TODO' in *.py within src``."""
        description = f"'{params.pattern}'"
        if params.include:
            description += f" in {params.include}"
        if params.path:
            target_dir = str(self.cfg.resolve_target_dir())
            resolved = os.path.abspath(os.path.join(target_dir, params.path))
            if resolved == target_dir or params.path == ".":
                description += " within ./"
            else:
                relative = os.path.relpath(resolved, target_dir)
                description += f" within {shorten_path(relative)}"
        elif len(self.workspace.get_directories()) > 1:
            description += " across all workspace directories"
        return description

    # -- execution -----------------------------------------------------------

    def resolve_scope(self, params: SearchParams) -> SearchScope:
        explicit = self.resolve_and_validate_path(params.path)
        if explicit is not None:
            return SearchScope(roots=(explicit,), explicit=True, display=params.path or ".")
        roots = tuple(self.workspace.get_directories())
        if not roots:
            raise SearchError("No workspace directories are available to search")
        return SearchScope(roots=roots, explicit=False, display=".")

    def execute(
        self, params: SearchParams, cancel_event: threading.Event | None = None
    ) -> ToolResult:
        """
        Run one search.

        Never raises: validation problems and runtime failures are reported
        through ``ToolResult.error``. The telemetry session is completed on
        every path.
        """
        query = params.pattern if isinstance(params.pattern, str) else ""
        session = self.analytics.start_search(query, "grep", str(params.path or "."))
        session.set_pattern(query)
        try:
            validation_error = self.validate_params(params)
            if validation_error:
                return ToolResult(
                    llm_content=f"Error: Invalid parameters provided. Reason: {validation_error}",
                    return_display=f"Model provided invalid parameters. Error: {validation_error}",
                    error=True,
                )
            try:
                return self._run(params, session, cancel_event)
            except Exception as e:
                self.logger.error(f"Error during grep search operation: {e}")
                message = get_error_message(e)
                return ToolResult(
                    llm_content=f"Error during grep search operation: {message}",
                    return_display=f"Error: {message}",
                    error=True,
                )
        finally:
            session.complete()

    def _run(
        self,
        params: SearchParams,
        session: SearchSession,
        cancel_event: threading.Event | None,
    ) -> ToolResult:
        scope = self.resolve_scope(params)
        self.logger.log_search_start(params.pattern, list(scope.roots), include=params.include)
        start = time.perf_counter()
        errors = ErrorCollector()

        outcomes = self._search_roots(scope, params, cancel_event, errors)
        cancelled = any(o.cancelled for o in outcomes)

        if session.is_active():
            try:
                self._record_analytics(session, params, scope, outcomes, cancel_event)
            except Exception as e:
                # telemetry never changes the result
                self.logger.debug(f"Error recording search analytics: {e}")

        all_matches: list[MatchRecord] = []
        for root, outcome in zip(scope.roots, outcomes):
            if scope.is_multi_root:
                prefix = os.path.basename(root)
                all_matches.extend(m.with_prefix(prefix) for m in outcome.matches)
            else:
                all_matches.extend(outcome.matches)

        if errors.get_summary()["total_errors"]:
            self.logger.debug(create_error_report(errors))

        self.logger.log_search_complete(
            params.pattern,
            len(all_matches),
            (time.perf_counter() - start) * 1000,
            strategies=[o.strategy_name for o in outcomes],
            cancelled=cancelled,
        )
        return self._render(params, scope, all_matches, cancelled)

    def _search_root(
        self,
        root: str,
        params: SearchParams,
        cancel_event: threading.Event | None,
        errors: ErrorCollector,
    ) -> StrategyOutcome:
        request = StrategyRequest(
            pattern=params.pattern,
            path=root,
            include=params.include,
            cancel_event=cancel_event,
            error_collector=errors,
        )
        return self.chain.run(request)

    def _search_roots(
        self,
        scope: SearchScope,
        params: SearchParams,
        cancel_event: threading.Event | None,
        errors: ErrorCollector,
    ) -> list[StrategyOutcome]:
        """Search every root; outcomes come back in root order."""
        if not (self.cfg.parallel and scope.is_multi_root):
            return [self._search_root(root, params, cancel_event, errors) for root in scope.roots]

        workers = min(self.cfg.max_workers, len(scope.roots))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._search_root, root, params, cancel_event, errors)
                for root in scope.roots
            ]
            return [future.result() for future in futures]

    def _count_files(
        self, root: str, include: str | None, cancel_event: threading.Event | None
    ) -> int:
        try:
            return sum(
                1 for _ in iter_files(root, include, self.cfg.fallback_ignore, cancel_event)
            )
        except Exception as e:
            self.logger.debug(f"Error counting files for analytics: {e}")
            return 0

    def _record_analytics(
        self,
        session: SearchSession,
        params: SearchParams,
        scope: SearchScope,
        outcomes: list[StrategyOutcome],
        cancel_event: threading.Event | None,
    ) -> None:
        """Per-match detail and search-level factors, computed once across all roots."""
        files_scanned = 0
        match_count = 0
        for root, outcome in zip(scope.roots, outcomes):
            if outcome.files_scanned is not None:
                files_scanned += outcome.files_scanned
            else:
                files_scanned += self._count_files(root, params.include, cancel_event)
            for match in outcome.matches:
                session.add_match(
                    create_match_analytics(match, params.pattern, root, self.cfg.context_lines)
                )
            match_count += len(outcome.matches)

        session.set_files_scanned(files_scanned)
        for factor in build_ranking_factors(
            params.pattern, params.include, match_count, files_scanned
        ):
            session.add_ranking_factor(factor)

        session.set_tool_decision_reason(self._describe_decision(scope, outcomes))
        session.set_search_parameters(
            {
                "pattern": params.pattern,
                "path": params.path,
                "include": params.include,
                "roots": list(scope.roots),
                "backends": [o.strategy_name for o in outcomes],
            }
        )

    @staticmethod
    def _describe_decision(scope: SearchScope, outcomes: list[StrategyOutcome]) -> str:
        parts = []
        for root, outcome in zip(scope.roots, outcomes):
            text = f"used {outcome.strategy_name}"
            if outcome.fallback_reasons:
                text += f" after {'; '.join(outcome.fallback_reasons)}"
            if scope.is_multi_root:
                text = f"{os.path.basename(root)}: {text}"
            parts.append(text)
        return " | ".join(parts)

    # -- rendering -----------------------------------------------------------

    def _render(
        self,
        params: SearchParams,
        scope: SearchScope,
        matches: list[MatchRecord],
        cancelled: bool,
    ) -> ToolResult:
        location = scope.describe()
        filter_note = f' (filter: "{params.include}")' if params.include else ""
        cancel_note = CANCELLED_NOTE if cancelled else ""

        if not matches:
            return ToolResult(
                llm_content=(
                    f'No matches found for pattern "{params.pattern}" '
                    f"{location}{filter_note}{cancel_note}."
                ),
                return_display="No matches found",
                cancelled=cancelled,
            )

        grouped = group_matches_by_file(matches)
        match_count = len(matches)
        match_term = "match" if match_count == 1 else "matches"

        lines = [
            f'Found {match_count} {match_term} for pattern "{params.pattern}" '
            f"{location}{filter_note}{cancel_note}:",
            "---",
        ]
        ordered: list[MatchRecord] = []
        for file_path, file_matches in grouped.items():
            lines.append(f"File: {file_path}")
            lines.extend(f"L{m.line_number}: {m.line.strip()}" for m in file_matches)
            lines.append("---")
            ordered.extend(file_matches)

        return ToolResult(
            llm_content="\n".join(lines).strip(),
            return_display=f"Found {match_count} {match_term}",
            matches=ordered,
            cancelled=cancelled,
        )


def search(
    pattern: str,
    path: str | None = None,
    include: str | None = None,
    config: SearchConfig | None = None,
    analytics: SearchAnalyticsCollector | None = None,
    cancel_event: threading.Event | None = None,
) -> ToolResult:
    """
    Run a single search with a throwaway GrepSearch.

    Example:
        >>> from searchbench.core.api import search
        >>> print(search("TODO", include="*.md").llm_content)
    """
    tool = GrepSearch(config, analytics=analytics)
    return tool.execute(SearchParams(pattern=pattern, path=path, include=include), cancel_event)
