"""
Reporting and export for collected search telemetry.

Key Functions:
    generate_report: Plain-text report (summary, per-search detail, breakdowns)
    render_report_console: The same information as rich tables
    export_analytics: Write the full history as indented JSON with orjson
    format_bytes: Human-readable file sizes
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson
from rich.console import Console
from rich.table import Table

from .collector import SearchAnalyticsCollector
from .models import SearchAnalytics

NO_DATA_MESSAGE = "No search analytics data available."

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: int) -> str:
    """``format_bytes(1536) == '1.5 KB'``; values stop growing at GB."""
    if size <= 0:
        return "0 B"
    index = 0
    while size >= 1024 ** (index + 1) and index < len(_SIZE_UNITS) - 1:
        index += 1
    value = round(size / 1024**index, 1)
    return f"{value:g} {_SIZE_UNITS[index]}"


def _format_timestamp(epoch_ms: float) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _search_section(index: int, search: SearchAnalytics) -> list[str]:
    out = [
        "",
        f"[{index}] SEARCH OPERATION",
        "-" * 24,
        f"Timestamp: {_format_timestamp(search.timestamp)}",
        f'Query: "{search.query}"',
        f"Tool Used: {search.search_type.upper()}",
        f"Strategy: {search.search_strategy}",
        f"Execution Time: {search.execution_time_ms:.2f}ms",
        f"Files Scanned: {search.files_scanned or 'N/A'}",
        f"Results Found: {search.results_found}",
    ]
    if search.pattern:
        out.append(f'Search Pattern: "{search.pattern}"')
    if search.tool_decision_reason:
        out.append(f"Tool Selection: {search.tool_decision_reason}")
    if search.search_parameters:
        params = orjson.dumps(search.search_parameters, option=orjson.OPT_INDENT_2).decode()
        out.append("Parameters: " + params.replace("\n", "\n     "))

    if search.match_details:
        out.append("")
        out.append("MATCHED FILES:")
        for i, match in enumerate(search.match_details, 1):
            location = f" (line {match.line_number})" if match.line_number else ""
            out.append(f"  {i}. {match.file_path}{location}")
            out.append(f"     File Size: {format_bytes(match.file_size)}")
            out.append(f"     Modified: {_format_timestamp(match.file_last_modified)}")
            if match.relevance_score:
                out.append(f"     Relevance: {match.relevance_score * 100:.1f}%")
            out.append(f"     Reason: {match.match_reason}")
            if match.match_text:
                out.append(f'     Preview: "{_truncate(match.match_text, 100)}"')
            if match.context_before or match.context_after:
                out.append(f"     Context: {match.context_before}{match.context_after}")

    if search.embedding_details is not None:
        details = search.embedding_details
        out.append("EMBEDDING ANALYSIS:")
        out.append(f"  Model: {details.embedding_model}")
        out.append(f"  Generation Time: {details.embedding_time_ms:.2f}ms")
        out.append(f"  Query Embedding Dimensions: {len(details.query_embedding)}")
        out.append(f"  Documents Analyzed: {len(details.document_embeddings)}")
        top = details.top_documents(5)
        if top:
            out.append("  TOP SEMANTIC MATCHES:")
            for i, doc in enumerate(top, 1):
                out.append(
                    f"    {i}. {os.path.basename(doc.file_path)} - "
                    f"{doc.similarity_score * 100:.1f}% similarity"
                )
                preview = doc.content_preview or doc.chunk_text
                if preview:
                    out.append(f'       "{_truncate(preview, 80)}"')

    if search.ranking_factors:
        out.append("RANKING FACTORS:")
        for factor in search.ranking_factors:
            out.append(
                f"  - {factor.factor}: {factor.value:g} "
                f"(weight: {factor.weight:g}, impact: {factor.impact:.2f})"
            )
            out.append(f"    {factor.explanation}")
    return out


def generate_report(collector: SearchAnalyticsCollector) -> str:
    history = collector.get_search_history()
    if not history:
        return NO_DATA_MESSAGE

    out = [
        "DETAILED SEARCH ANALYTICS REPORT",
        "=" * 80,
        "",
        "EXECUTIVE SUMMARY",
        "-" * 40,
        f"Total Search Operations: {len(history)}",
        f"Total Files Processed: {collector.get_total_files_processed()}",
        f"Average Execution Time: {collector.get_average_execution_time():.2f}ms",
        f"Total Results Found: {collector.get_total_results()}",
        f"Success Rate: {collector.get_success_rate():.1f}%",
        "",
        "DETAILED SEARCH OPERATIONS",
        "-" * 40,
    ]
    for index, search in enumerate(history, 1):
        out.extend(_search_section(index, search))

    out.extend(["", "PERFORMANCE ANALYSIS", "-" * 40, "TOOL USAGE BREAKDOWN:"])
    for tool, stats in collector.get_tool_usage_breakdown().items():
        out.append(
            f"  {tool.upper()}: {stats['count']} uses ({stats['percentage']:.1f}%), "
            f"avg {stats['avg_time_ms']:.2f}ms, {stats['avg_results']:.1f} results"
        )

    out.append("")
    out.append("STRATEGY EFFECTIVENESS:")
    for strategy, stats in collector.get_strategy_breakdown().items():
        out.append(
            f"  {strategy}: {stats['avg_results']:.1f} avg results, "
            f"{stats['avg_time_ms']:.2f}ms avg time, {stats['count']} uses"
        )

    patterns = collector.get_file_access_patterns()
    if patterns:
        out.append("")
        out.append("FILE ACCESS PATTERNS:")
        for i, (name, count) in enumerate(patterns[:10], 1):
            out.append(f"  {i}. {name} - accessed {count} times")

    out.extend(["", "=" * 80, f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"])
    return "\n".join(out)


def render_report_console(
    collector: SearchAnalyticsCollector, console: Console | None = None
) -> None:
    """Render the summary and breakdowns as rich tables."""
    if console is None:
        console = Console()

    history = collector.get_search_history()
    if not history:
        console.print(f"[dim]{NO_DATA_MESSAGE}[/dim]")
        return

    searches = Table(title="Search Operations")
    searches.add_column("#", justify="right")
    searches.add_column("Query")
    searches.add_column("Tool")
    searches.add_column("Strategy")
    searches.add_column("Time (ms)", justify="right")
    searches.add_column("Files", justify="right")
    searches.add_column("Results", justify="right")
    for i, search in enumerate(history, 1):
        searches.add_row(
            str(i),
            search.query,
            search.search_type,
            search.search_strategy,
            f"{search.execution_time_ms:.2f}",
            str(search.files_scanned),
            str(search.results_found),
        )
    console.print(searches)

    strategies = Table(title="Strategy Effectiveness")
    strategies.add_column("Strategy")
    strategies.add_column("Uses", justify="right")
    strategies.add_column("Avg results", justify="right")
    strategies.add_column("Avg time (ms)", justify="right")
    for name, stats in collector.get_strategy_breakdown().items():
        strategies.add_row(
            name, str(stats["count"]), f"{stats['avg_results']:.1f}", f"{stats['avg_time_ms']:.2f}"
        )
    console.print(strategies)

    console.print(
        f"[bold]Success rate:[/bold] {collector.get_success_rate():.1f}%  "
        f"[bold]Files processed:[/bold] {collector.get_total_files_processed()}  "
        f"[bold]Results:[/bold] {collector.get_total_results()}"
    )


def build_export_payload(collector: SearchAnalyticsCollector) -> dict[str, Any]:
    history = collector.get_search_history()
    return {
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "testDocsPath": str(collector.docs_path),
        "searchHistory": [s.to_dict() for s in history],
        "summary": {
            "totalSearches": len(history),
            "avgExecutionTime": collector.get_average_execution_time(),
            "totalResults": collector.get_total_results(),
        },
    }


def export_analytics(
    collector: SearchAnalyticsCollector, path: str | Path | None = None
) -> Path:
    """
    Write the collector's history as JSON.

    Defaults to ``analytics-export.json`` next to the analysed documents
    directory. Returns the path written.
    """
    export_path = Path(path) if path else collector.docs_path.parent / "analytics-export.json"
    export_path.parent.mkdir(parents=True, exist_ok=True)
    export_path.write_bytes(
        orjson.dumps(build_export_payload(collector), option=orjson.OPT_INDENT_2)
    )
    return export_path
