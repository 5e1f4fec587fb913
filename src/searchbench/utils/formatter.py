"""
Output formatting module for searchbench.

Renders a ToolResult as plain text, JSON, or rich console output with the
matched text highlighted.

Key Functions:
    format_result: Main entry point for formatting results in any supported format
    to_json_bytes: Fast JSON serialization using orjson
    format_text: The summary text, unchanged
    render_highlight_console: Rich console output with highlighted matches

Example:
    >>> from searchbench.utils.formatter import format_result
    >>> from searchbench.core.types import OutputFormat
    >>> print(format_result(result, OutputFormat.JSON))
"""

from __future__ import annotations

import sys
from typing import Any

import orjson
import regex
from rich.console import Console
from rich.text import Text

from ..core.types import OutputFormat, ToolResult, group_matches_by_file


def to_json_bytes(result: ToolResult, pattern: str | None = None) -> bytes:
    payload: dict[str, Any] = {
        "pattern": pattern,
        "summary": result.return_display,
        "error": result.error,
        "cancelled": result.cancelled,
        "matches": [
            {"file": m.file_path, "line_number": m.line_number, "line": m.line}
            for m in result.matches
        ],
        "content": result.llm_content,
    }
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2)


def format_text(result: ToolResult) -> str:
    return result.llm_content


def _highlight(line: str, compiled: regex.Pattern[str] | None) -> Text:
    text = Text(line)
    if compiled is not None:
        for match in compiled.finditer(line):
            if match.end() > match.start():
                text.stylize("bold red", match.start(), match.end())
    return text


def render_highlight_console(
    result: ToolResult, pattern: str | None = None, console: Console | None = None
) -> None:
    """Render matches grouped by file with the matched text highlighted."""
    if console is None:
        console = Console()

    if result.error or not result.matches:
        console.print(result.llm_content, markup=False, highlight=False)
        return

    compiled = None
    if pattern:
        try:
            compiled = regex.compile(pattern, regex.IGNORECASE)
        except regex.error:
            compiled = None

    for file_path, matches in group_matches_by_file(result.matches).items():
        console.print(Text(file_path, style="bold cyan"))
        for m in matches:
            line = Text(f"{m.line_number:6d} | ", style="dim")
            line.append_text(_highlight(m.line.rstrip(), compiled))
            console.print(line)
        console.print()

    status = result.return_display
    if result.cancelled:
        status += " (cancelled)"
    console.print(Text(status, style="dim"))


def format_result(result: ToolResult, fmt: OutputFormat, pattern: str | None = None) -> str:
    """Format a result according to the specified output format."""
    if fmt == OutputFormat.JSON:
        return to_json_bytes(result, pattern).decode("utf-8")
    if fmt == OutputFormat.HIGHLIGHT:
        # Use rich console rendering when stdout is a real terminal
        if sys.stdout.isatty():
            render_highlight_console(result, pattern)
            return ""
        return format_text(result)
    return format_text(result)
