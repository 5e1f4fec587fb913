"""
Per-search telemetry session.

A session wraps one SearchAnalytics record. When analytics are disabled the
session holds no record and every method is a no-op, so callers never need to
check whether telemetry is on.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from .models import EmbeddingAnalytics, MatchAnalytics, RankingFactor, SearchAnalytics

CompletionCallback = Callable[[SearchAnalytics], None]


class SearchSession:
    """Collects telemetry for one search and finalizes it exactly once."""

    def __init__(
        self,
        analytics: SearchAnalytics | None,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        self._analytics = analytics
        self._on_complete = on_complete
        self._start = time.perf_counter()
        self._completed = False

    @classmethod
    def disabled(cls) -> SearchSession:
        return cls(None)

    def is_active(self) -> bool:
        return self._analytics is not None

    @property
    def is_completed(self) -> bool:
        return self._completed

    def get_analytics(self) -> SearchAnalytics | None:
        return self._analytics

    def set_pattern(self, pattern: str) -> None:
        if self._analytics is not None:
            self._analytics.pattern = pattern

    def add_match(self, match: MatchAnalytics) -> None:
        if self._analytics is not None:
            self._analytics.match_details.append(match)
            self._analytics.results_found += 1

    def set_files_scanned(self, count: int) -> None:
        if self._analytics is not None:
            self._analytics.files_scanned = count

    def add_ranking_factor(self, factor: RankingFactor) -> None:
        if self._analytics is not None:
            if self._analytics.ranking_factors is None:
                self._analytics.ranking_factors = []
            self._analytics.ranking_factors.append(factor)

    def set_tool_decision_reason(self, reason: str) -> None:
        if self._analytics is not None:
            self._analytics.tool_decision_reason = reason

    def set_search_parameters(self, params: dict[str, Any]) -> None:
        if self._analytics is not None:
            self._analytics.search_parameters = dict(params)

    def set_search_strategy(self, strategy: str) -> None:
        if self._analytics is not None:
            self._analytics.search_strategy = strategy

    def set_embedding_details(self, details: EmbeddingAnalytics) -> None:
        if self._analytics is not None:
            self._analytics.embedding_details = details

    def complete(self) -> SearchAnalytics | None:
        """
        Finalize the record and hand it to the completion callback.

        Only the first call records elapsed time and fires the callback;
        later calls return the same record unchanged.
        """
        if self._analytics is None or self._completed:
            return self._analytics
        self._completed = True
        self._analytics.execution_time_ms = (time.perf_counter() - self._start) * 1000
        if self._on_complete is not None:
            self._on_complete(self._analytics)
        return self._analytics
