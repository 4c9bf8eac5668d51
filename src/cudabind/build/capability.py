"""Compute capability resolution.

Determines which ``sm_<N>`` architecture nvcc should target and checks that
the installed nvcc can actually generate code for it.

Resolution Order:
    1. Explicit override (setting or CUDA_COMPUTE_CAP)
    2. ``nvidia-smi --query-gpu=compute_cap --format=csv`` (first device)

Validation:
    ``nvcc --list-gpu-code`` lists lines like ``sm_86``. The resolved value
    must appear in that list and must not exceed its maximum.

Both the override and the device query may report a dotted version ("8.6");
every value passes through normalize_compute_cap() before comparison.
"""

import logging
from typing import Optional, Union

from ..errors import ConfigurationError, ProcessLaunchError, UnsupportedArchitectureError
from ..subprocess_utils import safe_run

logger = logging.getLogger(__name__)

NVCC = "nvcc"
NVIDIA_SMI = "nvidia-smi"

DEVICE_QUERY_CMD = [NVIDIA_SMI, "--query-gpu=compute_cap", "--format=csv"]
GPU_CODE_QUERY_CMD = [NVCC, "--list-gpu-code"]


def normalize_compute_cap(value: Union[str, int]) -> int:
    """Normalize a compute capability to its integer form.

    Args:
        value: "8.6", "86" or 86

    Returns:
        86 for all of the above

    Raises:
        ConfigurationError: If the value is not a (dotted) number
    """
    if isinstance(value, int):
        if value <= 0:
            raise ConfigurationError(f"Compute capability must be positive, got {value}")
        return value

    text = str(value).strip().replace(".", "")
    if not (text.isascii() and text.isdigit()):
        raise ConfigurationError(
            f"Could not parse compute capability {value!r}: expected a number such as '86' or '8.6'"
        )
    cap = int(text)
    if cap <= 0:
        raise ConfigurationError(f"Compute capability must be positive, got {value!r}")
    return cap


def _query(cmd: list[str], hint: str) -> str:
    logger.debug(f"Running capability query: {' '.join(cmd)}")
    try:
        result = safe_run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        raise ProcessLaunchError(cmd, f"`{cmd[0]}` failed to start. {hint}") from None
    if result.returncode != 0:
        raise ConfigurationError(
            f"`{' '.join(cmd)}` exited with code {result.returncode}\n"
            f"# stdout\n{result.stdout}\n\n# stderr\n{result.stderr}"
        )
    return result.stdout


def query_device_compute_cap() -> int:
    """Ask nvidia-smi for the active device's compute capability.

    Raises:
        ProcessLaunchError: If nvidia-smi is not on PATH
        ConfigurationError: If the output is not the expected two-line CSV
    """
    out = _query(
        DEVICE_QUERY_CMD,
        "Ensure that you have CUDA installed and that `nvidia-smi` is in your PATH.",
    )
    lines = [line.strip() for line in out.splitlines()]
    if not lines or lines[0] != "compute_cap":
        raise ConfigurationError(
            f"Unexpected nvidia-smi output: expected header line 'compute_cap', got {out!r}"
        )
    if len(lines) < 2 or not lines[1]:
        raise ConfigurationError(f"Unexpected nvidia-smi output: missing compute_cap value in {out!r}")
    return normalize_compute_cap(lines[1])


def parse_gpu_codes(output: str) -> list[int]:
    """Parse ``nvcc --list-gpu-code`` output into sorted numeric codes.

    Lines that are not ``sm_<N>`` (e.g. ``compute_90``, ``sm_90a``) are ignored.
    """
    codes = []
    for line in output.splitlines():
        parts = line.strip().split("_")
        if len(parts) >= 2 and "sm" in parts and parts[1].isascii() and parts[1].isdigit():
            codes.append(int(parts[1]))
    return sorted(set(codes))


def list_gpu_codes() -> list[int]:
    """Return the sm_<N> codes the installed nvcc supports, ascending.

    Raises:
        ProcessLaunchError: If nvcc is not on PATH
        ConfigurationError: If nvcc reports no sm codes
    """
    out = _query(
        GPU_CODE_QUERY_CMD,
        "Ensure that you have CUDA installed and that `nvcc` is in your PATH.",
    )
    codes = parse_gpu_codes(out)
    if not codes:
        raise ConfigurationError(f"No gpu codes parsed from `nvcc --list-gpu-code` output: {out!r}")
    return codes


def validate_compute_cap(compute_cap: int, supported: list[int]) -> int:
    """Check a compute capability against nvcc's supported codes.

    Raises:
        UnsupportedArchitectureError: If the code is unsupported or above the maximum
    """
    if compute_cap not in supported:
        raise UnsupportedArchitectureError(
            compute_cap,
            supported,
            f"nvcc cannot target gpu arch {compute_cap}. Available nvcc targets are {supported}.",
        )
    max_code = max(supported)
    if compute_cap > max_code:
        raise UnsupportedArchitectureError(
            compute_cap,
            supported,
            f"CUDA compute cap {compute_cap} is higher than the highest gpu code from nvcc {max_code}",
        )
    return compute_cap


def resolve_compute_cap(override: Optional[Union[str, int]] = None) -> int:
    """Resolve and validate the target compute capability.

    Args:
        override: Explicit value; when None the device is queried

    Returns:
        The validated integer compute capability

    Raises:
        ConfigurationError: If the value cannot be resolved or is unsupported
        ProcessLaunchError: If nvidia-smi or nvcc cannot be started
    """
    if override is not None:
        compute_cap = normalize_compute_cap(override)
        logger.info(f"Using compute capability override: {compute_cap}")
    else:
        compute_cap = query_device_compute_cap()
        logger.info(f"Detected device compute capability: {compute_cap}")

    return validate_compute_cap(compute_cap, list_gpu_codes())
