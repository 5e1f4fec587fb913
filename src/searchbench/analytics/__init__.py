"""
Search telemetry: per-search sessions, a process-wide collector, reports.

Telemetry is strictly observational; enabling it never changes what a search
returns.
"""

from .collector import SearchAnalyticsCollector
from .models import (
    BenchConfig,
    BenchMode,
    DocumentEmbedding,
    EmbeddingAnalytics,
    MatchAnalytics,
    RankingFactor,
    SearchAnalytics,
)
from .report import export_analytics, format_bytes, generate_report, render_report_console
from .session import SearchSession

__all__ = [
    "BenchConfig",
    "BenchMode",
    "DocumentEmbedding",
    "EmbeddingAnalytics",
    "MatchAnalytics",
    "RankingFactor",
    "SearchAnalytics",
    "SearchAnalyticsCollector",
    "SearchSession",
    "export_analytics",
    "format_bytes",
    "generate_report",
    "render_report_console",
]
