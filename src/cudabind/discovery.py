"""Default path discovery.

Finds kernel sources, include headers and the CUDA installation when the
caller does not name them explicitly. Discovery only produces inputs; it
never decides what gets rebuilt.
"""

import glob
import logging
from pathlib import Path
from typing import Optional

from .env import get_cuda_root_candidates
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_KERNEL_GLOB = "src/**/*.cu"
DEFAULT_INCLUDE_GLOB = "src/**/*.cuh"

STANDARD_CUDA_ROOTS = (
    Path("/usr"),
    Path("/usr/local/cuda"),
    Path("/opt/cuda"),
    Path("/usr/lib/cuda"),
    Path("C:/Program Files/NVIDIA GPU Computing Toolkit"),
    Path("C:/CUDA"),
)


def glob_paths(pattern: str, root: Optional[Path] = None) -> list[Path]:
    """Expand a recursive glob pattern into a sorted list of files.

    Args:
        pattern: Glob pattern; ``**`` matches any number of directories
        root: Directory relative patterns are resolved against (default: cwd)

    Returns:
        Matching file paths, sorted for deterministic unit order

    Raises:
        ConfigurationError: If the pattern is empty
    """
    if not pattern or not pattern.strip():
        raise ConfigurationError("Invalid glob pattern: pattern is empty")

    base = Path(pattern)
    if root is not None and not base.is_absolute():
        pattern = str(root / pattern)

    matches = [Path(p) for p in glob.glob(pattern, recursive=True)]
    return sorted(p for p in matches if p.is_file())


def default_kernels(root: Optional[Path] = None) -> list[Path]:
    """Return every ``.cu`` file under ``src/``."""
    return glob_paths(DEFAULT_KERNEL_GLOB, root)


def default_includes(root: Optional[Path] = None) -> list[Path]:
    """Return every ``.cuh`` header under ``src/``."""
    return glob_paths(DEFAULT_INCLUDE_GLOB, root)


def find_cuda_root() -> Optional[Path]:
    """Locate the CUDA installation.

    Environment candidates (CUDA_PATH, CUDA_ROOT, CUDA_TOOLKIT_ROOT_DIR,
    CUDNN_LIB) are tried first, then the standard install locations. A root
    qualifies when it contains ``include/cuda.h``.

    Returns:
        The first qualifying root, or None
    """
    candidates = get_cuda_root_candidates() + list(STANDARD_CUDA_ROOTS)
    logger.debug(f"CUDA root candidates: {[str(c) for c in candidates]}")
    for candidate in candidates:
        if (candidate / "include" / "cuda.h").is_file():
            logger.debug(f"Found CUDA root: {candidate}")
            return candidate
    return None
