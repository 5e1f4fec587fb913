"""
Process-wide collector of search telemetry.

One SearchAnalyticsCollector is created at the composition root (the CLI or an
embedding application) and injected into every search tool. It hands out
SearchSession objects, appends each finalized record to its history and logs
a short summary of it.

Example:
    >>> from searchbench.analytics import SearchAnalyticsCollector
    >>> collector = SearchAnalyticsCollector()
    >>> collector.enable_analytics()
    >>> session = collector.start_search("TODO", "grep", ".")
    >>> session.complete()
    >>> len(collector.get_search_history())
    1
"""

from __future__ import annotations

import os
import re
import threading
from collections import Counter
from pathlib import Path
from typing import Any

from ..utils.logging_config import SearchLogger, get_logger
from .models import BenchConfig, BenchMode, SearchAnalytics
from .session import SearchSession

_REGEX_METACHAR = re.compile(r"[.*+?^${}()|\[\]\\]")


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class SearchAnalyticsCollector:
    """Hands out search sessions and keeps the history of completed ones."""

    def __init__(self, docs_path: str | Path | None = None, logger: SearchLogger | None = None) -> None:
        self.docs_path = Path(docs_path) if docs_path else Path.cwd() / "input-docs"
        self.logger = logger or get_logger()
        self._enabled = False
        self._config: BenchConfig | None = None
        self._history: list[SearchAnalytics] = []
        self._lock = threading.Lock()

    # -- configuration -------------------------------------------------------

    def set_docs_path(self, path: str | Path) -> None:
        self.docs_path = Path(path)

    def set_config(self, config: BenchConfig) -> None:
        self._config = config
        if config.mode is BenchMode.URL and config.download_path:
            self.docs_path = Path(config.download_path)
        elif config.mode is BenchMode.FOLDER:
            self.docs_path = Path(config.source)

    def get_config(self) -> BenchConfig | None:
        return self._config

    def enable_analytics(self, enabled: bool = True) -> None:
        self._enabled = enabled
        if enabled:
            mode = self._config.mode.value if self._config else BenchMode.FOLDER.value
            source = self._config.source if self._config else str(self.docs_path)
            self.logger.info(
                f"Search analytics enabled (mode: {mode}, source: {source}, "
                f"analysis path: {self.docs_path})"
            )

    def is_analytics_enabled(self) -> bool:
        return self._enabled

    # -- sessions ------------------------------------------------------------

    @staticmethod
    def determine_search_strategy(query: str, search_type: str) -> str:
        strategies: list[str] = []
        if "*" in query or "?" in query:
            strategies.append("glob-pattern")
        if _REGEX_METACHAR.search(query):
            strategies.append("regex-search")
        if len(query.split(" ")) > 1:
            strategies.append("multi-term")
        if search_type == "embedding":
            strategies.append("semantic-similarity")
        strategies.append(f"tool-{search_type}")
        return "+".join(strategies)

    def start_search(self, query: str, search_type: str, target_path: str) -> SearchSession:
        """Open a session; a no-op session when analytics are disabled."""
        if not self._enabled:
            return SearchSession.disabled()

        analytics = SearchAnalytics(
            query=query,
            search_type=search_type,
            target_path=target_path,
            search_strategy=self.determine_search_strategy(query, search_type),
        )
        return SearchSession(analytics, on_complete=self._record)

    def _record(self, analytics: SearchAnalytics) -> None:
        with self._lock:
            self._history.append(analytics)
        self.log_search_results(analytics)

    def log_search_results(self, analytics: SearchAnalytics) -> None:
        """Log a compact summary of one completed search."""
        lines = [
            "SEARCH ANALYTICS REPORT",
            "=" * 50,
            f'Query: "{analytics.query}"',
            f"Type: {analytics.search_type}",
            f"Strategy: {analytics.search_strategy}",
            f"Execution Time: {analytics.execution_time_ms:.2f}ms",
            f"Files Scanned: {analytics.files_scanned}",
            f"Results Found: {analytics.results_found}",
        ]
        if analytics.tool_decision_reason:
            lines.append(f"Tool Selection: {analytics.tool_decision_reason}")

        if analytics.embedding_details is not None:
            details = analytics.embedding_details
            lines.append("EMBEDDING ANALYSIS:")
            lines.append(f"Model: {details.embedding_model}")
            lines.append(f"Embedding Time: {details.embedding_time_ms:.2f}ms")
            for i, doc in enumerate(details.top_documents(5), 1):
                lines.append(
                    f"  {i}. {os.path.basename(doc.file_path)} ({doc.similarity_score * 100:.1f}%)"
                )

        if analytics.match_details:
            lines.append("TOP MATCHES:")
            top = sorted(
                analytics.match_details, key=lambda m: m.relevance_score or 0.0, reverse=True
            )[:3]
            for i, match in enumerate(top, 1):
                lines.append(
                    f"  {i}. {os.path.basename(match.file_path)}:{match.line_number or 'N/A'}"
                )
                lines.append(f"     Reason: {match.match_reason}")
                if match.relevance_score:
                    lines.append(f"     Score: {match.relevance_score * 100:.1f}%")
                lines.append(f'     Match: "{_truncate(match.match_text, 100)}"')

        if analytics.ranking_factors:
            lines.append("RANKING FACTORS:")
            for factor in analytics.ranking_factors:
                lines.append(
                    f"  - {factor.factor}: {factor.value:g} "
                    f"(weight: {factor.weight:g}, impact: {factor.impact:.2f})"
                )
                lines.append(f"    {factor.explanation}")

        lines.append("=" * 50)
        self.logger.info("\n".join(lines))

    # -- history -------------------------------------------------------------

    def get_search_history(self) -> list[SearchAnalytics]:
        with self._lock:
            return list(self._history)

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()

    # -- aggregates ----------------------------------------------------------

    def get_total_files_processed(self) -> int:
        return sum(s.files_scanned for s in self.get_search_history())

    def get_success_rate(self) -> float:
        """Percentage of searches that found at least one result."""
        history = self.get_search_history()
        if not history:
            return 0.0
        successful = sum(1 for s in history if s.results_found > 0)
        return round(successful / len(history) * 100, 1)

    def get_average_execution_time(self) -> float:
        history = self.get_search_history()
        if not history:
            return 0.0
        return sum(s.execution_time_ms for s in history) / len(history)

    def get_total_results(self) -> int:
        return sum(s.results_found for s in self.get_search_history())

    def _breakdown(self, key: str) -> dict[str, dict[str, Any]]:
        totals: dict[str, dict[str, float]] = {}
        for search in self.get_search_history():
            entry = totals.setdefault(
                getattr(search, key), {"count": 0, "total_time": 0.0, "total_results": 0}
            )
            entry["count"] += 1
            entry["total_time"] += search.execution_time_ms
            entry["total_results"] += search.results_found
        return {
            name: {
                "count": int(stats["count"]),
                "avg_time_ms": round(stats["total_time"] / stats["count"], 2),
                "avg_results": round(stats["total_results"] / stats["count"], 1),
            }
            for name, stats in totals.items()
        }

    def get_tool_usage_breakdown(self) -> dict[str, dict[str, Any]]:
        breakdown = self._breakdown("search_type")
        total = sum(stats["count"] for stats in breakdown.values())
        for stats in breakdown.values():
            stats["percentage"] = round(stats["count"] / total * 100, 1)
        return breakdown

    def get_strategy_breakdown(self) -> dict[str, dict[str, Any]]:
        return self._breakdown("search_strategy")

    def get_file_access_patterns(self) -> list[tuple[str, int]]:
        """How often each file name appeared among matches, most frequent first."""
        counts: Counter[str] = Counter()
        for search in self.get_search_history():
            for match in search.match_details:
                counts[os.path.basename(match.file_path)] += 1
        return counts.most_common()
