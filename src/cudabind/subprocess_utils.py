"""Subprocess utilities for platform-safe toolchain execution.

Every external tool cudabind launches (nvcc, nvidia-smi) goes through these
wrappers so that platform-specific flags are applied in one place and
command lines are rendered the same way in every diagnostic.
"""

import subprocess
import sys
from typing import Any, Sequence


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def _apply_platform_defaults(kwargs: dict[str, Any]) -> dict[str, Any]:
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    # Children never read from our terminal
    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    return kwargs


def safe_run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL (prevents console input handle inheritance)

    Args:
        cmd: Command and arguments (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run

    Raises:
        FileNotFoundError: If the executable is not on PATH. Callers translate
            this into ProcessLaunchError with the attempted command line.
    """
    return subprocess.run(cmd, **_apply_platform_defaults(kwargs))


def format_command(command: Sequence[str]) -> str:
    """Render a command line for diagnostics, quoting arguments as subprocess would.

    Args:
        command: Command and arguments

    Returns:
        A single shell-like string
    """
    return subprocess.list2cmdline(str(arg) for arg in command)
