"""Environment configuration for cudabind.

All environment variables cudabind reads are named here. Values are read at
call time (never cached at import) so a build script can adjust os.environ
before resolving its settings.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import psutil

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_COMPUTE_CAP = "CUDA_COMPUTE_CAP"
ENV_CCBIN = "NVCC_CCBIN"
ENV_NUM_JOBS = "CUDABIND_NUM_JOBS"
ENV_OUT_DIR = "CUDABIND_OUT_DIR"
ENV_LOG_LEVEL = "CUDABIND_LOG_LEVEL"

# Checked in order before the standard install roots
CUDA_ROOT_ENV_VARS = (
    "CUDA_PATH",
    "CUDA_ROOT",
    "CUDA_TOOLKIT_ROOT_DIR",
    "CUDNN_LIB",
)


def _get(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def get_compute_cap_override() -> Optional[str]:
    """Return the raw CUDA_COMPUTE_CAP value, or None when unset.

    Normalization (e.g. "8.6" -> 86) is left to the capability resolver so the
    same rule applies to every source of the value.
    """
    return _get(ENV_COMPUTE_CAP)


def get_ccbin() -> Optional[str]:
    """Return the host compiler override from NVCC_CCBIN, or None."""
    return _get(ENV_CCBIN)


def get_out_dir() -> Optional[Path]:
    """Return the output directory from CUDABIND_OUT_DIR, or None."""
    value = _get(ENV_OUT_DIR)
    return Path(value) if value is not None else None


def get_cuda_root_candidates() -> list[Path]:
    """Return CUDA root directories named by the environment, in priority order."""
    return [Path(v) for v in (_get(name) for name in CUDA_ROOT_ENV_VARS) if v is not None]


def physical_core_count() -> int:
    """Return the number of physical cores, falling back to logical cores."""
    count = psutil.cpu_count(logical=False)
    if not count:
        count = os.cpu_count() or 1
    return count


def get_num_jobs() -> int:
    """Resolve the compilation concurrency bound.

    Priority: CUDABIND_NUM_JOBS > physical core count.

    Raises:
        ConfigurationError: If CUDABIND_NUM_JOBS is not a positive integer
    """
    value = _get(ENV_NUM_JOBS)
    if value is None:
        jobs = physical_core_count()
        logger.debug(f"Using {jobs} compilation jobs (physical cores)")
        return jobs
    return parse_num_jobs(value, source=ENV_NUM_JOBS)


def parse_num_jobs(value: object, source: str = "num_jobs") -> int:
    """Parse a concurrency override into a positive integer.

    Raises:
        ConfigurationError: If the value is not a positive integer
    """
    try:
        jobs = int(str(value).strip())
    except ValueError:
        raise ConfigurationError(
            f"{source} must be a positive integer, got {value!r}"
        ) from None
    if jobs < 1:
        raise ConfigurationError(f"{source} must be a positive integer, got {value!r}")
    return jobs


def get_log_level(verbose: bool = False) -> int:
    """Return the log level for the CLI.

    Priority: CUDABIND_LOG_LEVEL > --verbose (DEBUG) > WARNING.
    """
    value = _get(ENV_LOG_LEVEL)
    if value is not None:
        level = logging.getLevelName(value.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if verbose else logging.WARNING
