"""Tests for grep output normalization."""

import os

import pytest

from searchbench.search.parser import parse_grep_line, parse_grep_output, relative_to_root

BASE = os.path.abspath(os.sep + "repo")


class TestParseGrepLine:
    def test_basic_line(self):
        match = parse_grep_line("src/app.py:12:    # TODO refactor", BASE)
        assert match is not None
        assert match.file_path == os.path.join("src", "app.py")
        assert match.line_number == 12
        assert match.line == "    # TODO refactor"

    def test_content_keeps_colons(self):
        match = parse_grep_line("a.txt:3:key: value: more", BASE)
        assert match is not None
        assert match.line == "key: value: more"

    def test_dot_slash_prefix_is_normalized(self):
        match = parse_grep_line("./docs/guide.md:1:TODO", BASE)
        assert match is not None
        assert match.file_path == os.path.join("docs", "guide.md")

    def test_empty_content(self):
        match = parse_grep_line("a.txt:7:", BASE)
        assert match is not None
        assert match.line == ""

    def test_trailing_carriage_return_stripped(self):
        match = parse_grep_line("a.txt:2:hello\r", BASE)
        assert match is not None
        assert match.line == "hello"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "   ",
            "no colons at all",
            "only:one colon",
            "a.txt:abc:content",
            "a.txt:0:content",
            "a.txt:-3:content",
            "a.txt::content",
            "Binary file a.bin matches",
        ],
    )
    def test_malformed_lines_are_skipped(self, line):
        assert parse_grep_line(line, BASE) is None

    def test_non_ascii_digits_rejected(self):
        # Arabic-Indic digits pass str.isdigit() but are not line numbers
        assert parse_grep_line("a.txt:٣:content", BASE) is None


class TestParseGrepOutput:
    def test_multiple_lines_in_order(self):
        output = os.linesep.join(
            ["b.txt:5:second file", "a.txt:2:first", "garbage", "a.txt:1:earlier", ""]
        )
        matches = parse_grep_output(output, BASE)
        assert [(m.file_path, m.line_number) for m in matches] == [
            ("b.txt", 5),
            ("a.txt", 2),
            ("a.txt", 1),
        ]

    def test_empty_output(self):
        assert parse_grep_output("", BASE) == []


def test_relative_to_root_uses_basename_for_root_itself():
    assert relative_to_root(BASE, BASE) == "repo"


def test_relative_to_root_absolute_input():
    assert relative_to_root(BASE, os.path.join(BASE, "x", "y.txt")) == os.path.join("x", "y.txt")
