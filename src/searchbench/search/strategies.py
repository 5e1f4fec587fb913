"""
Search backends and the fallback chain that picks between them.

Three strategies share one contract: ``is_available(request)`` says whether the
backend can run here at all, and ``attempt(request)`` either returns a
StrategyOutcome or raises StrategyExecutionError. The chain tries them in
order of preference and returns the first outcome it gets:

    1. GitGrepStrategy     ``git grep`` inside a git work tree
    2. SystemGrepStrategy  ``grep -r`` from PATH
    3. FallbackStrategy    in-process traversal with the ``regex`` engine

Unavailability and execution failures only disqualify a strategy for the
current request. Cancellation stops the chain without trying the next one.

Example:
    >>> from searchbench.search.strategies import StrategyChain, StrategyRequest
    >>> chain = StrategyChain.default(SearchConfig())
    >>> outcome = chain.run(StrategyRequest(pattern="TODO", path="/repo"))
    >>> outcome.strategy_name, len(outcome.matches)
    ('git grep', 12)
"""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import regex as regex_mod

from ..core.config import SearchConfig
from ..core.types import MatchRecord, StrategyOutcome
from ..utils.error_handling import (
    ErrorCollector,
    SearchCancelledError,
    SearchError,
    StrategyExecutionError,
    get_error_message,
    handle_file_error,
)
from ..utils.helpers import (
    expand_braces,
    is_command_available,
    is_git_repository,
    iter_files,
    read_text_file,
    split_lines,
)
from ..utils.logging_config import SearchLogger, get_logger
from ..utils.process import ProcessResult, ProcessTimeoutError, run_process
from .parser import parse_grep_output, relative_to_root

GIT_GREP = "git grep"
SYSTEM_GREP = "system grep"
PYTHON_FALLBACK = "python fallback"

# grep noise that says nothing about whether the search itself worked
_BENIGN_STDERR = (
    re.compile(r"Permission denied"),
    re.compile(r"grep:.*: Is a directory", re.IGNORECASE),
)


@dataclass(slots=True)
class StrategyRequest:
    pattern: str
    path: str  # absolute directory
    include: str | None = None
    cancel_event: threading.Event | None = None
    error_collector: ErrorCollector | None = None  # per-search, overrides the strategy's own

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


def filter_grep_stderr(stderr: str) -> str:
    """Drop permission-denied and is-a-directory diagnostics."""
    kept = [
        line
        for line in stderr.splitlines()
        if line.strip() and not any(p.search(line) for p in _BENIGN_STDERR)
    ]
    return "\n".join(kept).strip()


class SearchStrategy(ABC):
    """One backend capable of producing matches for a directory."""

    name: str = "strategy"

    @abstractmethod
    def is_available(self, request: StrategyRequest) -> bool: ...

    @abstractmethod
    def attempt(self, request: StrategyRequest) -> StrategyOutcome:
        """
        Run the search.

        Raises:
            StrategyExecutionError: The backend ran but failed
            SearchCancelledError: The request's cancel event fired mid-run
        """


class SubprocessStrategy(SearchStrategy):
    """Shared plumbing for backends that shell out to a grep-like tool."""

    executable: str = ""

    def __init__(self, config: SearchConfig, logger: SearchLogger | None = None) -> None:
        self.config = config
        self.logger = logger or get_logger()

    @abstractmethod
    def build_args(self, request: StrategyRequest) -> list[str]: ...

    def _run(self, request: StrategyRequest) -> ProcessResult:
        args = self.build_args(request)
        try:
            return run_process(
                args,
                cwd=request.path,
                timeout=self.config.process_timeout,
                cancel_event=request.cancel_event,
            )
        except ProcessTimeoutError as e:
            raise StrategyExecutionError(self.name, str(e)) from e
        except OSError as e:
            raise StrategyExecutionError(
                self.name, f"Failed to start {self.name}: {get_error_message(e)}"
            ) from e


class GitGrepStrategy(SubprocessStrategy):
    """Repository-aware search through ``git grep``."""

    name = GIT_GREP
    executable = "git"

    def is_available(self, request: StrategyRequest) -> bool:
        return (
            self.config.enable_git_grep
            and is_git_repository(request.path)
            and is_command_available(self.executable)
        )

    def build_args(self, request: StrategyRequest) -> list[str]:
        args = [
            self.executable,
            "-c",
            "core.quotePath=false",
            "grep",
            "--untracked",
            "-n",
            "-I",
            "-E",
            "--ignore-case",
            "-e",
            request.pattern,
        ]
        if request.include:
            args.append("--")
            args.extend(expand_braces(request.include))
        return args

    def attempt(self, request: StrategyRequest) -> StrategyOutcome:
        result = self._run(request)
        if result.returncode == 0:
            output = result.stdout
        elif result.returncode == 1:
            output = ""
        else:
            raise StrategyExecutionError(
                self.name,
                f"git grep exited with code {result.returncode}: {result.stderr.strip()}",
                exit_code=result.returncode,
                stderr=result.stderr,
            )
        return StrategyOutcome(
            strategy_name=self.name,
            raw_output=output,
            matches=parse_grep_output(output, request.path),
        )


class SystemGrepStrategy(SubprocessStrategy):
    """General-purpose recursive search through the system ``grep``."""

    name = SYSTEM_GREP
    executable = "grep"

    def is_available(self, request: StrategyRequest) -> bool:
        return self.config.enable_system_grep and is_command_available(self.executable)

    def build_args(self, request: StrategyRequest) -> list[str]:
        args = [self.executable, "-r", "-n", "-H", "-I", "-E", "--ignore-case"]
        args.extend(f"--exclude-dir={d}" for d in self.config.excluded_dirs)
        if request.include:
            args.extend(f"--include={inc}" for inc in expand_braces(request.include))
        args.extend(["-e", request.pattern, "."])
        return args

    def attempt(self, request: StrategyRequest) -> StrategyOutcome:
        result = self._run(request)
        stderr = filter_grep_stderr(result.stderr)
        if result.returncode == 0:
            output = result.stdout
        elif result.returncode == 1:
            output = ""
        elif stderr:
            raise StrategyExecutionError(
                self.name,
                f"System grep exited with code {result.returncode}: {stderr}",
                exit_code=result.returncode,
                stderr=stderr,
            )
        else:
            # Non-zero exit caused only by suppressed diagnostics; keep what was printed
            output = result.stdout
        return StrategyOutcome(
            strategy_name=self.name,
            raw_output=output,
            matches=parse_grep_output(output, request.path),
        )


class FallbackStrategy(SearchStrategy):
    """
    In-process search: walk the tree, read each file, test every line.

    Always available. Per-file read failures are recorded and skipped; a
    failure to list the search root propagates. When the cancel event fires
    the walk stops and the matches found so far are returned with
    ``cancelled=True``.
    """

    name = PYTHON_FALLBACK

    def __init__(
        self,
        config: SearchConfig,
        error_collector: ErrorCollector | None = None,
        logger: SearchLogger | None = None,
    ) -> None:
        self.config = config
        self.error_collector = error_collector
        self.logger = logger or get_logger()

    def is_available(self, request: StrategyRequest) -> bool:
        return True

    def attempt(self, request: StrategyRequest) -> StrategyOutcome:
        self.logger.debug("Falling back to in-process grep implementation.")
        try:
            compiled = regex_mod.compile(request.pattern, regex_mod.IGNORECASE)
        except regex_mod.error as e:
            raise StrategyExecutionError(self.name, f"Invalid pattern: {e}") from e

        root = request.path
        errors = request.error_collector
        if errors is None:
            errors = self.error_collector
        matches: list[MatchRecord] = []
        files_scanned = 0

        for file_path in iter_files(
            root,
            include=request.include,
            ignore=self.config.fallback_ignore,
            cancel_event=request.cancel_event,
        ):
            if request.is_cancelled():
                break
            files_scanned += 1
            content = self._read(file_path, errors)
            if content is None:
                continue
            relative = relative_to_root(root, str(file_path))
            for index, line in enumerate(split_lines(content)):
                if compiled.search(line):
                    matches.append(MatchRecord(relative, index + 1, line))

        return StrategyOutcome(
            strategy_name=self.name,
            matches=matches,
            files_scanned=files_scanned,
            cancelled=request.is_cancelled(),
        )

    def _read(self, file_path: Path, errors: ErrorCollector | None) -> str | None:
        try:
            return read_text_file(file_path, max_bytes=self.config.max_file_bytes)
        except FileNotFoundError:
            # vanished between listing and reading
            return None
        except OSError as e:
            handle_file_error(file_path, "read", e, errors, self.logger)
            return None


class StrategyChain:
    """Ordered strategies; the first available one that succeeds wins."""

    def __init__(
        self, strategies: Sequence[SearchStrategy], logger: SearchLogger | None = None
    ) -> None:
        if not strategies:
            raise ValueError("StrategyChain needs at least one strategy")
        self.strategies = list(strategies)
        self.logger = logger or get_logger()

    @classmethod
    def default(
        cls,
        config: SearchConfig,
        error_collector: ErrorCollector | None = None,
        logger: SearchLogger | None = None,
    ) -> StrategyChain:
        return cls(
            [
                GitGrepStrategy(config, logger),
                SystemGrepStrategy(config, logger),
                FallbackStrategy(config, error_collector, logger),
            ],
            logger,
        )

    def run(self, request: StrategyRequest) -> StrategyOutcome:
        """
        Try each strategy in order.

        Raises:
            SearchError: If every strategy was unavailable or failed; the last
                failure is chained as the cause
        """
        reasons: list[str] = []
        last_error: Exception | None = None

        for strategy in self.strategies:
            if request.is_cancelled():
                return StrategyOutcome(strategy.name, cancelled=True, fallback_reasons=reasons)

            if not strategy.is_available(request):
                reasons.append(f"{strategy.name}: unavailable")
                continue

            try:
                outcome = strategy.attempt(request)
            except StrategyExecutionError as e:
                self.logger.log_strategy_fallback(strategy.name, e.message, path=request.path)
                reasons.append(f"{strategy.name}: {e.message}")
                last_error = e
                continue
            except SearchCancelledError:
                self.logger.debug(f"{strategy.name} cancelled for {request.path}")
                return StrategyOutcome(strategy.name, cancelled=True, fallback_reasons=reasons)

            outcome.fallback_reasons = reasons
            return outcome

        raise SearchError(
            f"No search strategy succeeded for {request.path} ({'; '.join(reasons)})"
        ) from last_error
