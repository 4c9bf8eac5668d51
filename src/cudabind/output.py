"""
Console output for cudabind builds.

Every line is prefixed with the elapsed time since the build started, in
MM:SS.cc format, so slow phases (device query, compilation, archiving) are
visible at a glance.

Example output:
    00:00.01 cudabind v0.1.0
    00:00.02 [1/4] Preparing output directory...
    00:00.36 [2/4] Checking kernel staleness...
    00:00.36       [ptx] attention.cu
    00:00.36       [ptx] softmax.cu (cached)

Usage:
    from cudabind.output import log, log_phase, log_detail

    log_phase(2, 4, "Checking kernel staleness...")
    log_detail("Include directories: src/include")
"""

import sys
import time
from types import TracebackType
from typing import Optional, TextIO

_start_time: Optional[float] = None
_output_stream: Optional[TextIO] = None
_verbose: bool = False


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the build timer.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout at write time)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    if output_stream is not None:
        _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode.

    Args:
        verbose: If True, verbose-only messages are printed too
    """
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    """Return seconds elapsed since init_timer() (initializing it if needed)."""
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore[operator]


def format_timestamp() -> str:
    """Format the elapsed time as MM:SS.cc."""
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str) -> None:
    stream = _output_stream if _output_stream is not None else sys.stdout
    stream.write(f"{format_timestamp()} {message}\n")
    stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """Log a build phase message as ``[N/M] message``."""
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """Log an indented detail line."""
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_kernel(kind: str, filename: str, cached: bool = False, verbose_only: bool = True) -> None:
    """
    Log one kernel unit.

    Format: [kind] filename (cached)

    Args:
        kind: Artifact extension ('ptx' or 'o')
        filename: Kernel source file name
        cached: If True, the unit is up to date and will not be recompiled
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    suffix = " (cached)" if cached else ""
    _print(f"      [{kind}] {filename}{suffix}")


def log_header(title: str, version: str) -> None:
    _print(f"{title} v{version}")


def log_build_complete(build_time: float, verbose_only: bool = False) -> None:
    """Log the total build time."""
    if verbose_only and not _verbose:
        return
    _print(f"Build time: {build_time:.2f}s")


def log_warning(message: str) -> None:
    _print(f"WARNING: {message}")


class TimedLogger:
    """
    Context manager that logs an operation and how long it took.

    Usage:
        with TimedLogger("Compiling kernels", phase=(3, 4)) as timer:
            ...
            timer.detail("Compiled 3 kernels")
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({elapsed:.2f}s)", verbose_only=self.verbose_only)
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)
