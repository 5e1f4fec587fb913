"""
Run a child process to completion with timeout and cancellation.

The subprocess backends need the whole stdout/stderr before deciding whether a
run succeeded, but must still stop promptly when the caller cancels. This
module wraps ``subprocess.Popen`` in a blocking call that polls the child and
the cancellation event together.
"""

from __future__ import annotations

import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from .error_handling import SearchCancelledError

_POLL_INTERVAL = 0.05


@dataclass(slots=True)
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str


class ProcessTimeoutError(TimeoutError):
    def __init__(self, args: list[str], timeout: float) -> None:
        super().__init__(f"{args[0]} timed out after {timeout:g}s")
        self.timeout = timeout


def _kill(proc: subprocess.Popen[bytes]) -> None:
    proc.kill()
    try:
        proc.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        pass


def run_process(
    args: list[str],
    cwd: str | Path,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> ProcessResult:
    """
    Run ``args`` in ``cwd`` and collect its output.

    Raises:
        OSError: If the executable cannot be started
        ProcessTimeoutError: If the child outlives ``timeout`` (it is killed)
        SearchCancelledError: If ``cancel_event`` fires first (child is killed)
    """
    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelledError(f"{args[0]} cancelled before start")

    proc = subprocess.Popen(
        args,
        cwd=str(cwd),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    deadline = None if timeout is None else time.monotonic() + timeout

    while True:
        try:
            out, err = proc.communicate(timeout=_POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if cancel_event is not None and cancel_event.is_set():
                _kill(proc)
                raise SearchCancelledError(f"{args[0]} cancelled") from None
            if deadline is not None and time.monotonic() >= deadline:
                _kill(proc)
                raise ProcessTimeoutError(args, timeout or 0.0) from None

    return ProcessResult(
        returncode=proc.returncode,
        stdout=out.decode("utf-8", errors="replace"),
        stderr=err.decode("utf-8", errors="replace"),
    )
