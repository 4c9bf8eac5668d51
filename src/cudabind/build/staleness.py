"""Staleness tracking for incremental kernel builds.

A unit is rebuilt unless its artifact is strictly newer than its source.
Equal timestamps count as stale: on filesystems with coarse mtime
granularity a source edited in the same tick as the last build must still be
recompiled.

Both sides of every comparison come from ``os.stat().st_mtime_ns``.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .units import KernelUnit

logger = logging.getLogger(__name__)


def _mtime_ns(path: Path) -> Optional[int]:
    """Return the modification time in nanoseconds, or None if the file is missing."""
    try:
        return os.stat(path).st_mtime_ns
    except FileNotFoundError:
        return None


def is_stale(unit: KernelUnit) -> bool:
    """Return True if the unit's artifact is missing or not newer than its source.

    Raises:
        FileNotFoundError: If the source itself does not exist
    """
    out_mtime = _mtime_ns(unit.output)
    if out_mtime is None:
        logger.debug(f"{unit.source.name}: stale (no artifact at {unit.output})")
        return True

    src_mtime = os.stat(unit.source).st_mtime_ns
    if out_mtime <= src_mtime:
        logger.debug(f"{unit.source.name}: stale (artifact {out_mtime} <= source {src_mtime})")
        return True
    return False


def stale_units(units: Iterable[KernelUnit]) -> list[KernelUnit]:
    """Return the units that need recompiling, in input order."""
    return [unit for unit in units if is_stale(unit)]


def library_is_stale(sources: Sequence[Path], archive: Path) -> bool:
    """Decide whether a library archive must be rebuilt.

    The whole batch is judged against the single archive: if the archive is
    missing, or any source is at least as new as it, every unit is rebuilt.

    Args:
        sources: Kernel source paths that go into the archive
        archive: Final library file

    Raises:
        FileNotFoundError: If a source does not exist
    """
    archive_mtime = _mtime_ns(archive)
    if archive_mtime is None:
        logger.debug(f"Library {archive} missing, rebuilding")
        return True

    for source in sources:
        if os.stat(source).st_mtime_ns >= archive_mtime:
            logger.debug(f"Library {archive} older than {source}, rebuilding")
            return True
    return False
