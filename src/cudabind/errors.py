"""Exception hierarchy for cudabind.

Every failure in a build is fatal: nothing here is retried or recovered
locally. Callers (the CLI, or a host project's build script) decide how to
terminate.

Categories:
    - ConfigurationError: toolchain or architecture could not be resolved
    - ProcessLaunchError: an external binary could not be started
    - ToolFailedError: an external binary ran and exited non-zero
    - KernelPathError: configured kernel sources are missing
"""

from pathlib import Path
from typing import Optional, Sequence

from .subprocess_utils import format_command


class CudaBindError(Exception):
    """Base class for all cudabind errors."""

    pass


class ConfigurationError(CudaBindError):
    """Raised when the build configuration cannot be resolved."""

    pass


class UnsupportedArchitectureError(ConfigurationError):
    """Raised when nvcc cannot target the resolved compute capability."""

    def __init__(self, compute_cap: int, supported: Sequence[int], message: str):
        self.compute_cap = compute_cap
        self.supported = list(supported)
        super().__init__(message)


class KernelPathError(CudaBindError):
    """Raised when configured kernel source files do not exist."""

    def __init__(self, missing: Sequence[Path]):
        self.missing = list(missing)
        super().__init__(f"Kernel paths do not exist: {[str(p) for p in self.missing]}")


class ProcessLaunchError(CudaBindError):
    """Raised when an external tool could not be started at all."""

    def __init__(self, command: Sequence[str], reason: str):
        self.command = list(command)
        self.reason = reason
        super().__init__(
            f"{reason}\nCommand: {format_command(self.command)}"
        )


class ToolFailedError(CudaBindError):
    """Raised when an external tool exited with a non-zero status.

    The message carries the full command line and both captured output
    streams verbatim so the tool's own diagnostics are never lost.
    """

    action = "running"

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
        source: Optional[Path] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.source = source
        super().__init__(self._format())

    def _format(self) -> str:
        tool = Path(self.command[0]).name if self.command else "tool"
        subject = f"{self.action} {self.source}" if self.source is not None else self.action
        return (
            f"{tool} error while {subject} (exit code {self.returncode}): "
            f"{format_command(self.command)}\n\n"
            f"# stdout\n{self.stdout}\n\n"
            f"# stderr\n{self.stderr}"
        )


class CompileError(ToolFailedError):
    """Raised when compiling a kernel unit fails."""

    action = "compiling"


class LinkError(ToolFailedError):
    """Raised when archiving compiled objects into a library fails."""

    action = "linking"
