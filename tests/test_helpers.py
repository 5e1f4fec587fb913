from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest

from searchbench.utils.error_handling import FileAccessError
from searchbench.utils.helpers import (
    expand_braces,
    extract_context,
    file_meta,
    is_git_repository,
    iter_files,
    read_text_file,
    shorten_path,
    split_lines,
)

IGNORE = (".git/", "node_modules/", "bower_components/", ".svn/", ".hg/")


def make_tree(tmp: Path) -> None:
    # layout:
    # tmp/
    #   src/a.py
    #   src/b.txt
    #   src/deep/c.md
    #   .hidden.md
    #   .git/config
    #   node_modules/x/index.js
    #   bower_components/y.js
    for rel, content in {
        "src/a.py": "print('a')\n",
        "src/b.txt": "not python\n",
        "src/deep/c.md": "# c\n",
        ".hidden.md": "hidden\n",
        ".git/config": "[core]\n",
        "node_modules/x/index.js": "x\n",
        "bower_components/y.js": "y\n",
    }.items():
        path = tmp / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def rels(root: Path, files) -> set[str]:
    return {Path(p).relative_to(root).as_posix() for p in files}


class TestIterFiles:
    def test_ignored_directories_are_pruned(self, tmp_path):
        make_tree(tmp_path)
        found = rels(tmp_path, iter_files(tmp_path, ignore=IGNORE))
        assert found == {"src/a.py", "src/b.txt", "src/deep/c.md", ".hidden.md"}

    def test_include_without_slash_matches_at_any_depth(self, tmp_path):
        make_tree(tmp_path)
        found = rels(tmp_path, iter_files(tmp_path, include="*.md", ignore=IGNORE))
        assert found == {"src/deep/c.md", ".hidden.md"}

    def test_include_with_braces(self, tmp_path):
        make_tree(tmp_path)
        found = rels(tmp_path, iter_files(tmp_path, include="*.{py,txt}", ignore=IGNORE))
        assert found == {"src/a.py", "src/b.txt"}

    def test_include_with_directory(self, tmp_path):
        make_tree(tmp_path)
        found = rels(tmp_path, iter_files(tmp_path, include="src/**", ignore=IGNORE))
        assert found == {"src/a.py", "src/b.txt", "src/deep/c.md"}

    def test_order_is_deterministic(self, tmp_path):
        make_tree(tmp_path)
        assert list(iter_files(tmp_path, ignore=IGNORE)) == list(iter_files(tmp_path, ignore=IGNORE))

    def test_cancel_event_stops_iteration(self, tmp_path):
        make_tree(tmp_path)
        event = threading.Event()
        event.set()
        assert list(iter_files(tmp_path, ignore=IGNORE, cancel_event=event)) == []

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(FileAccessError):
            list(iter_files(tmp_path / "does-not-exist"))


class TestTextHelpers:
    def test_split_lines_has_no_phantom_last_line(self):
        assert split_lines("a\nb\n") == ["a", "b"]
        assert split_lines("a\nb") == ["a", "b"]
        assert split_lines("") == []

    def test_split_lines_handles_crlf(self):
        assert split_lines("a\r\nb\r\n") == ["a", "b"]

    def test_extract_context_middle(self):
        lines = ["l1", "l2", "l3", "l4", "l5", "l6"]
        assert extract_context(lines, 4) == ("l2\nl3", "l5\nl6")

    def test_extract_context_edges(self):
        lines = ["l1", "l2", "l3"]
        assert extract_context(lines, 1) == ("", "l2\nl3")
        assert extract_context(lines, 3) == ("l1\nl2", "")

    def test_expand_braces(self):
        assert expand_braces("*.{ts,tsx}") == ["*.ts", "*.tsx"]
        assert expand_braces("{a,b}/*.{x,y}") == ["a/*.x", "a/*.y", "b/*.x", "b/*.y"]
        assert expand_braces("*.md") == ["*.md"]

    def test_shorten_path(self):
        assert shorten_path("src/app.py") == "src/app.py"
        long_path = os.path.join("very", *(["nested"] * 10), "file.py")
        short = shorten_path(long_path)
        assert len(short) < len(long_path)
        assert short.startswith("very")
        assert short.endswith("file.py")
        assert "..." in short


class TestFileHelpers:
    def test_read_text_file_skips_binary(self, tmp_path):
        path = tmp_path / "blob.bin"
        path.write_bytes(b"abc\x00def")
        assert read_text_file(path) is None

    def test_read_text_file_skips_oversized(self, tmp_path):
        path = tmp_path / "big.txt"
        path.write_text("x" * 100, encoding="utf-8")
        assert read_text_file(path, max_bytes=10) is None
        assert read_text_file(path, max_bytes=1000) == "x" * 100

    def test_read_text_file_replaces_invalid_utf8(self, tmp_path):
        path = tmp_path / "latin.txt"
        path.write_bytes(b"caf\xe9\n")
        assert read_text_file(path) == "caf�\n"

    def test_read_text_file_missing_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_text_file(tmp_path / "missing.txt")

    def test_file_meta(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("12345", encoding="utf-8")
        meta = file_meta(path)
        assert meta is not None and meta.size == 5
        assert file_meta(tmp_path / "missing") is None

    def test_is_git_repository(self, tmp_path):
        (tmp_path / "repo" / ".git").mkdir(parents=True)
        (tmp_path / "repo" / "sub").mkdir()
        (tmp_path / "plain").mkdir()
        assert is_git_repository(tmp_path / "repo" / "sub")
        if not is_git_repository(tmp_path):
            assert not is_git_repository(tmp_path / "plain")
