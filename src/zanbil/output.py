"""
Timestamped progress output for zanbil build steps.

Cargo captures everything a build script writes. `cargo:` directives own
stdout, so the CLI points this module at stderr, where each line shows the
time since the build step began as MM:SS.cc:

    00:00.01 [1/6] Loading manifest...
    00:00.02       Unit: app (C++17, export_transitive=false)
    00:00.02 [2/6] Collecting upstream include metadata...
    00:00.02       CORE -> /target/debug/build/core-1234/out/include

Library modules use these helpers for what a user reads and
`logging.getLogger(__name__)` for debug detail.
"""

import sys
import time
from types import TracebackType
from typing import Optional, TextIO

DETAIL_INDENT = 6

_started_at: Optional[float] = None
_stream: TextIO = sys.stdout
_verbose: bool = True


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """Restart the elapsed-time clock and optionally redirect output.

    Logging before this is called starts the clock implicitly.
    """
    global _started_at, _stream
    _started_at = time.time()
    if output_stream is not None:
        _stream = output_stream


def set_verbose(verbose: bool) -> None:
    """Show (True) or hide (False) messages flagged verbose_only."""
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    if _started_at is None:
        init_timer()
    return time.time() - _started_at  # type: ignore[operator]


def format_timestamp() -> str:
    minutes, seconds = divmod(get_elapsed(), 60)
    return f"{int(minutes):02d}:{seconds:05.2f}"


def _write(message: str, verbose_only: bool = False) -> None:
    if verbose_only and not _verbose:
        return
    _stream.write(f"{format_timestamp()} {message}\n")
    _stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    _write(message, verbose_only)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """Log the start of build phase `phase` of `total` as `[N/M] message`."""
    _write(f"[{phase}/{total}] {message}", verbose_only)


def log_detail(message: str, indent: int = DETAIL_INDENT, verbose_only: bool = False) -> None:
    """Log a line nested under the current phase."""
    _write(" " * indent + message, verbose_only)


def log_file(kind: str, filename: str, verbose_only: bool = True) -> None:
    """Log one file handled by a phase (a compiled source, an archive member)."""
    _write(f"{' ' * DETAIL_INDENT}[{kind}] {filename}", verbose_only)


def log_error(message: str) -> None:
    _write(f"ERROR: {message}")


def log_warning(message: str) -> None:
    _write(f"WARNING: {message}")


class TimedLogger:
    """
    Announce an operation on entry and its duration on clean exit.

        with TimedLogger("Compiling native sources", phase=(5, 6)) as step:
            step.detail("2 sources")

    When the block raises, nothing is logged on exit; the exception carries
    the story.
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        title = f"{self.operation}..."
        if self.phase is None:
            log(title, self.verbose_only)
        else:
            log_phase(*self.phase, title, verbose_only=self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if exc_type is None:
            self.detail(f"Done ({time.time() - self.start_time:.2f}s)")

    def detail(self, message: str) -> None:
        log_detail(message, verbose_only=self.verbose_only)
