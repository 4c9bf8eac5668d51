"""Generated bindings for compiled kernels.

Writes a Python module exposing each compiled artifact as a module-level
constant:

    from cudabind.artifacts import load_artifact
    ATTENTION = load_artifact("attention.ptx")
    FLASH_ATTENTION = load_artifact("flash.attention.ptx")

The file is rewritten only when the artifact set changed, so an unchanged
build leaves it (and its mtime) alone.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .units import PTX_EXTENSION

logger = logging.getLogger(__name__)

LOADER_IMPORT = "from cudabind.artifacts import load_artifact"


def kernel_identifier(stem: str) -> str:
    """Turn a kernel file stem into a constant name.

    ``attention`` -> ``ATTENTION``, ``flash.attention`` -> ``FLASH_ATTENTION``.
    """
    return stem.upper().replace(".", "_")


def binding_line(stem: str, extension: str = PTX_EXTENSION) -> str:
    return f'{kernel_identifier(stem)} = load_artifact("{stem}.{extension}")'


@dataclass
class Bindings:
    """Kernel paths in caller order plus whether the bindings file must be rewritten."""

    changed: bool
    paths: list[Path]
    extension: str = PTX_EXTENSION

    def render(self) -> str:
        """Return the full bindings module text."""
        lines = [LOADER_IMPORT]
        lines.extend(binding_line(Path(p).stem, self.extension) for p in self.paths)
        return "".join(f"{line}\n" for line in lines)

    def write(self, out: Union[str, Path]) -> bool:
        """Write the bindings module if the artifact set changed.

        Args:
            out: Destination file

        Returns:
            True if the file was (re)written
        """
        out = Path(out)
        if not self.changed:
            logger.debug(f"Bindings unchanged, leaving {out} untouched")
            return False

        with open(out, "w", encoding="utf-8", newline="\n") as f:
            f.write(self.render())
        logger.info(f"Wrote {len(self.paths)} kernel bindings to {out}")
        return True
