"""
Utility functions and helpers for searchbench.

Key Functions:
    File Operations:
        - read_text_file: Read a file as text, skipping binaries and oversized files
        - file_meta: Minimal stat information, or None when unavailable

    Text Processing:
        - split_lines: Split text the way line-oriented search tools count lines
        - extract_context: Lines surrounding a 1-based line number

    Path Utilities:
        - expand_braces: Expand ``*.{ts,tsx}`` style alternatives
        - build_include_spec / build_ignore_spec: pathspec matchers
        - iter_files: Lazy, prunable, cancellable file traversal
        - shorten_path: Abbreviate long paths for one-line descriptions

    Environment:
        - is_command_available: Whether an executable resolves on PATH
        - is_git_repository: Whether a directory lies inside a git work tree

Example:
    >>> from searchbench.utils.helpers import iter_files
    >>> for path in iter_files("/repo", include="*.md"):
    ...     print(path)
"""

from __future__ import annotations

import os
import re
import shutil
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import pathspec

from .error_handling import FileAccessError
from .logging_config import get_logger

_BRACE_RE = re.compile(r"\{([^{}]*)\}")
_BINARY_SNIFF_BYTES = 8192


@dataclass(slots=True)
class FileMeta:
    path: Path
    size: int
    mtime: float


def file_meta(path: Path) -> FileMeta | None:
    """Return size and mtime only (no read); None when stat fails."""
    try:
        st = path.stat()
        return FileMeta(path=path, size=st.st_size, mtime=st.st_mtime)
    except OSError:
        return None


def read_text_file(path: Path, max_bytes: int | None = None) -> str | None:
    """
    Read ``path`` as UTF-8 text with replacement of undecodable bytes.

    Returns None for files that look binary (NUL byte in the first block) or
    exceed ``max_bytes``. OS errors propagate so callers can classify them.
    """
    if max_bytes is not None and path.stat().st_size > max_bytes:
        return None
    raw = path.read_bytes()
    if b"\x00" in raw[:_BINARY_SNIFF_BYTES]:
        return None
    return raw.decode("utf-8", errors="replace")


def split_lines(text: str) -> list[str]:
    """
    Split on ``\\n`` (tolerating ``\\r\\n``) without a phantom final line.

    ``"a\\nb\\n"`` yields ``["a", "b"]`` so line numbers agree with grep.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def extract_context(lines: list[str], line_number: int, window: int = 2) -> tuple[str, str]:
    """
    Lines before and after a 1-based ``line_number``.

    Returns:
        (before, after), each joined with ``\\n``; empty when at a file edge
    """
    index = line_number - 1
    before = lines[max(0, index - window) : max(0, index)]
    after = lines[index + 1 : min(len(lines), index + 1 + window)]
    return "\n".join(before), "\n".join(after)


def expand_braces(pattern: str) -> list[str]:
    """Expand shell-style brace alternatives: ``*.{ts,tsx}`` -> ``*.ts``, ``*.tsx``."""
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{option}{tail}"))
    return expanded


def build_include_spec(include: str | None) -> pathspec.PathSpec:
    patterns = expand_braces(include) if include else ["**/*"]
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def build_ignore_spec(ignore: Iterable[str]) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines("gitwildmatch", list(ignore))


def iter_files(
    root: str | Path,
    include: str | None = None,
    ignore: Iterable[str] = (),
    cancel_event: threading.Event | None = None,
    follow_symlinks: bool = False,
) -> Iterator[Path]:
    """
    Lazily yield files under ``root`` matching ``include`` and not ``ignore``.

    Matching is done on the POSIX path relative to ``root`` with gitwildmatch
    semantics, hidden files included. Ignored directories are pruned so their
    subtrees are never listed. Iteration stops as soon as ``cancel_event`` is
    set.

    Raises:
        FileAccessError: If ``root`` itself cannot be listed
    """
    logger = get_logger()
    root_path = Path(root)
    root_str = os.path.abspath(root_path)
    inc = build_include_spec(include)
    exc = build_ignore_spec(ignore)

    def on_walk_error(error: OSError) -> None:
        if error.filename and os.path.abspath(error.filename) == root_str:
            raise FileAccessError(f"Cannot list search root: {error}", root_path) from error
        logger.debug(f"Skipping unreadable directory {error.filename}: {error}")

    for dirpath, dirnames, filenames in os.walk(
        root_str, onerror=on_walk_error, followlinks=follow_symlinks
    ):
        if cancel_event is not None and cancel_event.is_set():
            return

        rel_dir = os.path.relpath(dirpath, root_str)
        rel_prefix = "" if rel_dir == "." else rel_dir.replace(os.sep, "/") + "/"

        # Prune in place so os.walk never descends into ignored subtrees
        dirnames[:] = [d for d in dirnames if not exc.match_file(f"{rel_prefix}{d}/")]
        dirnames.sort()

        for name in sorted(filenames):
            if cancel_event is not None and cancel_event.is_set():
                return
            rel = f"{rel_prefix}{name}"
            if exc.match_file(rel) or not inc.match_file(rel):
                continue
            yield Path(dirpath) / name


def shorten_path(path: str, max_len: int = 35) -> str:
    """Keep the first segment and as many trailing segments as fit, joined by ``...``."""
    if len(path) <= max_len:
        return path
    parts = path.split(os.sep)
    if parts[0] == "" and len(parts) > 1:
        head, rest = os.sep + parts[1], parts[2:]
    else:
        head, rest = parts[0], parts[1:]
    tail: list[str] = []
    budget = max_len - len(head) - len(os.sep) * 2 - 3
    for part in reversed(rest):
        if tail and len(part) + len(os.sep) > budget:
            break
        tail.insert(0, part)
        budget -= len(part) + len(os.sep)
    if len(tail) >= len(rest):
        return path
    return os.sep.join([head, "...", *tail])


@lru_cache(maxsize=32)
def is_command_available(command: str) -> bool:
    """True when ``command`` resolves to an executable on PATH."""
    return shutil.which(command) is not None


def is_git_repository(directory: str | Path) -> bool:
    """True when ``directory`` or any ancestor contains a ``.git`` entry."""
    current = Path(directory).resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return True
    return False
