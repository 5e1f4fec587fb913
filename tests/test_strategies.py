"""
Tests for the search backends and the fallback chain.

Backend availability is controlled with unittest.mock so the chain logic is
exercised the same way on every machine; tests that need a real git or grep
binary are skipped when it is missing.
"""

import subprocess
import threading
from unittest.mock import patch

import pytest

from conftest import HAS_GIT, HAS_GREP, fallback_only_config, write_file
from searchbench.core.config import SearchConfig
from searchbench.core.types import MatchRecord, StrategyOutcome
from searchbench.search.strategies import (
    GIT_GREP,
    PYTHON_FALLBACK,
    SYSTEM_GREP,
    FallbackStrategy,
    GitGrepStrategy,
    SearchStrategy,
    StrategyChain,
    StrategyRequest,
    SystemGrepStrategy,
    filter_grep_stderr,
)
from searchbench.utils.error_handling import (
    ErrorCollector,
    FileAccessError,
    SearchCancelledError,
    SearchError,
    StrategyExecutionError,
)
from searchbench.utils.helpers import read_text_file as real_read_text_file
from searchbench.utils.process import ProcessResult, ProcessTimeoutError

pytestmark = pytest.mark.strategy


class StubStrategy(SearchStrategy):
    """Strategy whose availability and behaviour are scripted by the test."""

    def __init__(self, name, available=True, outcome=None, error=None):
        self.name = name
        self.available = available
        self.outcome = outcome
        self.error = error
        self.calls = 0

    def is_available(self, request):
        return self.available

    def attempt(self, request):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.outcome or StrategyOutcome(self.name)


def request_for(path, pattern="TODO", include=None, cancel_event=None):
    return StrategyRequest(pattern=pattern, path=str(path), include=include, cancel_event=cancel_event)


class TestStrategyChain:
    def test_first_available_strategy_wins(self, tmp_path):
        first = StubStrategy("first", available=False)
        second = StubStrategy("second", outcome=StrategyOutcome("second", matches=[MatchRecord("a", 1, "x")]))
        third = StubStrategy("third")
        outcome = StrategyChain([first, second, third]).run(request_for(tmp_path))

        assert outcome.strategy_name == "second"
        assert first.calls == 0 and third.calls == 0
        assert outcome.fallback_reasons == ["first: unavailable"]

    def test_execution_failure_falls_through(self, tmp_path):
        failing = StubStrategy("failing", error=StrategyExecutionError("failing", "exit 2"))
        backup = StubStrategy("backup")
        outcome = StrategyChain([failing, backup]).run(request_for(tmp_path))

        assert outcome.strategy_name == "backup"
        assert outcome.fallback_reasons == ["failing: exit 2"]

    def test_empty_result_does_not_fall_through(self, tmp_path):
        empty = StubStrategy("empty")
        backup = StubStrategy("backup")
        outcome = StrategyChain([empty, backup]).run(request_for(tmp_path))

        assert outcome.strategy_name == "empty"
        assert outcome.matches == []
        assert backup.calls == 0

    def test_cancellation_stops_chain(self, tmp_path):
        cancelled = StubStrategy("sub", error=SearchCancelledError())
        backup = StubStrategy("backup")
        outcome = StrategyChain([cancelled, backup]).run(request_for(tmp_path))

        assert outcome.cancelled
        assert outcome.matches == []
        assert backup.calls == 0

    def test_already_cancelled_request_runs_nothing(self, tmp_path):
        event = threading.Event()
        event.set()
        only = StubStrategy("only")
        outcome = StrategyChain([only]).run(request_for(tmp_path, cancel_event=event))
        assert outcome.cancelled
        assert only.calls == 0

    def test_all_strategies_failing_raises(self, tmp_path):
        chain = StrategyChain(
            [
                StubStrategy("a", available=False),
                StubStrategy("b", error=StrategyExecutionError("b", "boom")),
            ]
        )
        with pytest.raises(SearchError) as exc_info:
            chain.run(request_for(tmp_path))
        assert "boom" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, StrategyExecutionError)

    def test_structural_fallback_error_propagates(self, tmp_path):
        chain = StrategyChain([FallbackStrategy(SearchConfig(target_dir=str(tmp_path)))])
        with pytest.raises(FileAccessError):
            chain.run(request_for(tmp_path / "missing"))

    def test_empty_chain_rejected(self):
        with pytest.raises(ValueError):
            StrategyChain([])

    def test_default_order(self, tmp_path):
        chain = StrategyChain.default(SearchConfig(target_dir=str(tmp_path)))
        assert [s.name for s in chain.strategies] == [GIT_GREP, SYSTEM_GREP, PYTHON_FALLBACK]


class TestGitGrepStrategy:
    def test_args(self, tmp_path):
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        args = strategy.build_args(request_for(tmp_path, pattern="foo|bar", include="*.{ts,tsx}"))
        assert args[:4] == ["git", "-c", "core.quotePath=false", "grep"]
        for flag in ("--untracked", "-n", "-E", "--ignore-case"):
            assert flag in args
        assert args[args.index("-e") + 1] == "foo|bar"
        assert args[args.index("--") + 1 :] == ["*.ts", "*.tsx"]

    def test_unavailable_outside_repository(self, tmp_path):
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        with patch("searchbench.search.strategies.is_git_repository", return_value=False):
            assert not strategy.is_available(request_for(tmp_path))

    def test_disabled_by_config(self, tmp_path):
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(tmp_path), enable_git_grep=False))
        with patch("searchbench.search.strategies.is_git_repository", return_value=True):
            assert not strategy.is_available(request_for(tmp_path))

    def test_exit_one_means_no_matches(self, tmp_path):
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        with patch(
            "searchbench.search.strategies.run_process",
            return_value=ProcessResult(1, "", ""),
        ):
            outcome = strategy.attempt(request_for(tmp_path))
        assert outcome.matches == []
        assert outcome.strategy_name == GIT_GREP

    def test_other_exit_codes_fail(self, tmp_path):
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        with patch(
            "searchbench.search.strategies.run_process",
            return_value=ProcessResult(128, "", "fatal: not a git repository"),
        ):
            with pytest.raises(StrategyExecutionError) as exc_info:
                strategy.attempt(request_for(tmp_path))
        assert exc_info.value.exit_code == 128

    def test_timeout_becomes_execution_error(self, tmp_path):
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        with patch(
            "searchbench.search.strategies.run_process",
            side_effect=ProcessTimeoutError(["git"], 1.0),
        ):
            with pytest.raises(StrategyExecutionError):
                strategy.attempt(request_for(tmp_path))

    def test_spawn_failure_becomes_execution_error(self, tmp_path):
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        with patch(
            "searchbench.search.strategies.run_process",
            side_effect=FileNotFoundError("git"),
        ):
            with pytest.raises(StrategyExecutionError):
                strategy.attempt(request_for(tmp_path))

    @pytest.mark.integration
    @pytest.mark.skipif(not HAS_GIT, reason="git not installed")
    def test_real_git_grep_includes_untracked(self, tmp_path):
        repo = tmp_path / "repo"
        repo.mkdir()
        subprocess.run(["git", "init", "-q"], cwd=repo, check=True)
        write_file(repo / "tracked.txt", "nothing\n")
        write_file(repo / "untracked.md", "line one\nTODO here\n")
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(repo)))

        assert strategy.is_available(request_for(repo))
        outcome = strategy.attempt(request_for(repo, pattern="todo"))
        assert [(m.file_path, m.line_number) for m in outcome.matches] == [("untracked.md", 2)]

    @pytest.mark.integration
    @pytest.mark.skipif(not HAS_GIT, reason="git not installed")
    def test_real_git_grep_keeps_non_ascii_paths(self, tmp_path):
        repo = tmp_path / "repo"
        repo.mkdir()
        subprocess.run(["git", "init", "-q"], cwd=repo, check=True)
        write_file(repo / "café.txt", "TODO: menu\n")
        strategy = GitGrepStrategy(SearchConfig(target_dir=str(repo)))

        outcome = strategy.attempt(request_for(repo, pattern="todo"))
        assert [(m.file_path, m.line_number) for m in outcome.matches] == [("café.txt", 1)]


class TestSystemGrepStrategy:
    def test_args(self, tmp_path):
        strategy = SystemGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        args = strategy.build_args(request_for(tmp_path, include="*.md"))
        assert args[0] == "grep"
        for flag in ("-r", "-n", "-H", "-E", "--ignore-case", "--include=*.md"):
            assert flag in args
        for excluded in (".git", "node_modules", "bower_components"):
            assert f"--exclude-dir={excluded}" in args
        assert args[-1] == "."

    def test_permission_noise_is_suppressed(self, tmp_path):
        strategy = SystemGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        stderr = "grep: ./secret: Permission denied\ngrep: ./dir: Is a directory\n"
        with patch(
            "searchbench.search.strategies.run_process",
            return_value=ProcessResult(2, "a.txt:1:TODO\n", stderr),
        ):
            outcome = strategy.attempt(request_for(tmp_path))
        assert [m.file_path for m in outcome.matches] == ["a.txt"]

    def test_real_stderr_fails(self, tmp_path):
        strategy = SystemGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        with patch(
            "searchbench.search.strategies.run_process",
            return_value=ProcessResult(2, "", "grep: Unmatched ( or \\(\n"),
        ):
            with pytest.raises(StrategyExecutionError):
                strategy.attempt(request_for(tmp_path))

    def test_cancelled_process_propagates(self, tmp_path):
        strategy = SystemGrepStrategy(SearchConfig(target_dir=str(tmp_path)))
        with patch(
            "searchbench.search.strategies.run_process",
            side_effect=SearchCancelledError(),
        ):
            with pytest.raises(SearchCancelledError):
                strategy.attempt(request_for(tmp_path))

    @pytest.mark.integration
    @pytest.mark.skipif(not HAS_GREP, reason="grep not installed")
    def test_real_grep_matches_fallback(self, sample_project):
        config = SearchConfig(target_dir=str(sample_project))
        request = request_for(sample_project, pattern="todo")
        grep_matches = SystemGrepStrategy(config).attempt(request).matches
        fallback_matches = FallbackStrategy(config).attempt(request).matches

        assert sorted(grep_matches, key=lambda m: (m.file_path, m.line_number)) == sorted(
            fallback_matches, key=lambda m: (m.file_path, m.line_number)
        )


def test_filter_grep_stderr():
    stderr = "grep: a: Permission denied\ngrep: b: Is a directory\ngrep: bad pattern\n"
    assert filter_grep_stderr(stderr) == "grep: bad pattern"
    assert filter_grep_stderr("") == ""


class TestFallbackStrategy:
    def test_finds_matches_case_insensitively(self, sample_project):
        strategy = FallbackStrategy(fallback_only_config(sample_project))
        outcome = strategy.attempt(request_for(sample_project))

        found = {(m.file_path.replace("\\", "/"), m.line_number) for m in outcome.matches}
        assert found == {("README.md", 3), ("src/app.py", 2), ("src/web/hello.js", 4)}
        assert outcome.strategy_name == PYTHON_FALLBACK
        # node_modules is never scanned
        assert outcome.files_scanned == 4

    def test_include_filter(self, sample_project):
        strategy = FallbackStrategy(fallback_only_config(sample_project))
        outcome = strategy.attempt(request_for(sample_project, include="*.md"))
        assert [m.file_path for m in outcome.matches] == ["README.md"]
        assert outcome.files_scanned == 1

    def test_line_numbers_without_trailing_newline(self, tmp_path):
        write_file(tmp_path / "a.txt", "x\nTODO")
        outcome = FallbackStrategy(fallback_only_config(tmp_path)).attempt(request_for(tmp_path))
        assert [(m.line_number, m.line) for m in outcome.matches] == [(2, "TODO")]

    def test_binary_files_skipped(self, tmp_path):
        (tmp_path / "blob.bin").write_bytes(b"TODO\x00\x01")
        outcome = FallbackStrategy(fallback_only_config(tmp_path)).attempt(request_for(tmp_path))
        assert outcome.matches == []

    def test_unreadable_file_recorded_and_skipped(self, tmp_path):
        write_file(tmp_path / "ok.txt", "TODO\n")
        write_file(tmp_path / "bad.txt", "TODO\n")
        collector = ErrorCollector()
        strategy = FallbackStrategy(fallback_only_config(tmp_path), collector)

        def flaky_read(path, max_bytes=None):
            if path.name == "bad.txt":
                raise PermissionError("denied")
            return real_read_text_file(path, max_bytes=max_bytes)

        with patch("searchbench.search.strategies.read_text_file", side_effect=flaky_read):
            outcome = strategy.attempt(request_for(tmp_path))

        assert [m.file_path for m in outcome.matches] == ["ok.txt"]
        assert collector.get_summary()["total_errors"] == 1

    def test_vanished_file_is_silently_skipped(self, tmp_path):
        write_file(tmp_path / "gone.txt", "TODO\n")
        collector = ErrorCollector()
        strategy = FallbackStrategy(fallback_only_config(tmp_path), collector)
        with patch(
            "searchbench.search.strategies.read_text_file",
            side_effect=FileNotFoundError("gone"),
        ):
            outcome = strategy.attempt(request_for(tmp_path))
        assert outcome.matches == []
        assert collector.get_summary()["total_errors"] == 0

    def test_cancellation_returns_partial_results(self, tmp_path):
        for i in range(20):
            write_file(tmp_path / f"f{i:02d}.txt", "TODO\n")
        event = threading.Event()
        strategy = FallbackStrategy(fallback_only_config(tmp_path))
        reads = []

        def read_then_cancel(path, max_bytes=None):
            reads.append(path)
            if len(reads) == 3:
                event.set()
            return real_read_text_file(path, max_bytes=max_bytes)

        with patch("searchbench.search.strategies.read_text_file", side_effect=read_then_cancel):
            outcome = strategy.attempt(request_for(tmp_path, cancel_event=event))

        assert outcome.cancelled
        assert len(outcome.matches) == 3
        assert len(reads) == 3

    def test_invalid_pattern_is_execution_error(self, tmp_path):
        strategy = FallbackStrategy(fallback_only_config(tmp_path))
        with pytest.raises(StrategyExecutionError):
            strategy.attempt(request_for(tmp_path, pattern="("))


class TestChainWithRealStrategies:
    def test_disabled_backends_use_fallback(self, sample_project):
        chain = StrategyChain.default(fallback_only_config(sample_project))
        outcome = chain.run(request_for(sample_project))
        assert outcome.strategy_name == PYTHON_FALLBACK
        assert outcome.fallback_reasons == [f"{GIT_GREP}: unavailable", f"{SYSTEM_GREP}: unavailable"]

    def test_missing_binaries_use_fallback(self, sample_project):
        chain = StrategyChain.default(SearchConfig(target_dir=str(sample_project)))
        with patch("searchbench.search.strategies.is_command_available", return_value=False):
            outcome = chain.run(request_for(sample_project))
        assert outcome.strategy_name == PYTHON_FALLBACK
        assert len(outcome.matches) == 3

    def test_failing_grep_falls_back(self, sample_project):
        chain = StrategyChain.default(SearchConfig(target_dir=str(sample_project)))
        with (
            patch("searchbench.search.strategies.is_git_repository", return_value=False),
            patch("searchbench.search.strategies.is_command_available", return_value=True),
            patch(
                "searchbench.search.strategies.run_process",
                return_value=ProcessResult(2, "", "grep: something broke"),
            ),
        ):
            outcome = chain.run(request_for(sample_project))
        assert outcome.strategy_name == PYTHON_FALLBACK
        assert "something broke" in outcome.fallback_reasons[-1]
