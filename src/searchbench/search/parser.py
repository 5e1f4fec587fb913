"""
Normalization of ``path:line:content`` output from grep-like tools.

Both ``git grep -n`` and ``grep -n -H`` print one match per line as
``<path>:<line number>:<content>``. Paths and content may themselves contain
colons; the line number never does, so the first colon ends the path and the
next colon ends the line number. Everything after that is content, verbatim.
"""

from __future__ import annotations

import os

from ..core.types import MatchRecord


def relative_to_root(base_path: str, raw_path: str) -> str:
    """Re-express ``raw_path`` relative to ``base_path``; base name if it is the root."""
    absolute = os.path.normpath(os.path.join(base_path, raw_path))
    relative = os.path.relpath(absolute, base_path)
    if relative in ("", "."):
        return os.path.basename(absolute)
    return relative


def parse_grep_line(line: str, base_path: str) -> MatchRecord | None:
    """Parse one output line; None when it is blank or malformed."""
    if line.endswith("\r"):
        line = line[:-1]
    if not line.strip():
        return None

    first = line.find(":")
    if first == -1:
        return None
    second = line.find(":", first + 1)
    if second == -1:
        return None

    line_number_str = line[first + 1 : second]
    if not line_number_str.isdigit() or not line_number_str.isascii():
        return None
    line_number = int(line_number_str)
    if line_number < 1:
        return None

    return MatchRecord(
        file_path=relative_to_root(base_path, line[:first]),
        line_number=line_number,
        line=line[second + 1 :],
    )


def parse_grep_output(output: str, base_path: str) -> list[MatchRecord]:
    """
    Parse the full stdout of a grep-like command.

    Args:
        output: Raw stdout
        base_path: Absolute directory the command ran in

    Returns:
        Matches in output order; malformed lines are dropped
    """
    results: list[MatchRecord] = []
    if not output:
        return results

    for line in output.split(os.linesep):
        match = parse_grep_line(line, base_path)
        if match is not None:
            results.append(match)
    return results
