"""Kernel and include units.

A KernelUnit pairs one ``.cu`` source with the artifact it compiles to.
Include headers are staged into the output directory; afterwards only their
containing directories matter, as ``-I`` search paths.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)

PTX_EXTENSION = "ptx"
OBJECT_EXTENSION = "o"


@dataclass(frozen=True)
class KernelUnit:
    """One kernel source and its derived output artifact.

    Units compare and hash by source path only.

    Attributes:
        source: Path to the ``.cu`` file
        output: Artifact path in the output directory (same stem)
    """

    source: Path
    output: Path = field(compare=False)

    @classmethod
    def for_source(cls, source: Path, out_dir: Path, extension: str) -> "KernelUnit":
        """Derive the unit for a source file.

        Args:
            source: Kernel source path
            out_dir: Directory the artifact is written to
            extension: Artifact extension without the dot ('ptx' or 'o')
        """
        return cls(source=source, output=out_dir / f"{source.stem}.{extension}")

    @property
    def name(self) -> str:
        """File stem of the source; also the artifact's stem."""
        return self.source.stem


def make_units(sources: Iterable[Path], out_dir: Path, extension: str) -> list[KernelUnit]:
    """Create units for every source, dropping repeated paths but keeping order."""
    units: list[KernelUnit] = []
    seen: set[KernelUnit] = set()
    for source in sources:
        unit = KernelUnit.for_source(Path(source), out_dir, extension)
        if unit in seen:
            logger.debug(f"Skipping duplicate kernel path: {source}")
            continue
        seen.add(unit)
        units.append(unit)
    return units


def stage_includes(include_paths: Sequence[Path], out_dir: Path) -> list[Path]:
    """Copy include headers into the output directory.

    Args:
        include_paths: Header files to stage
        out_dir: Existing output directory

    Returns:
        Containing directories of the headers, deduplicated and sorted

    Raises:
        OSError: If a header cannot be copied
    """
    directories = set()
    for path in include_paths:
        path = Path(path)
        destination = out_dir / path.name
        logger.debug(f"Staging include {path} -> {destination}")
        shutil.copyfile(path, destination)
        directories.add(path.parent)
    return sorted(directories)
