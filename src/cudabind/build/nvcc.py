"""nvcc command construction.

Builds the argument lists for the three nvcc invocations cudabind makes:

    PTX:     nvcc --gpu-architecture=sm_86 --ptx --default-stream per-thread
                  --output-directory OUT [extra] [-I...] [ccbin] SRC
    Object:  nvcc --gpu-architecture=sm_86 -c -o OUT/SRC.o --default-stream per-thread
                  [extra] [-I...] [ccbin] SRC
    Archive: nvcc --lib -o LIB OBJ...

The source path is always the last argument of a compile command.
"""

from pathlib import Path
from typing import Optional, Sequence

from .units import KernelUnit

NVCC = "nvcc"


class NvccCommandBuilder:
    """Produces nvcc command lines for one resolved configuration."""

    def __init__(
        self,
        compute_cap: int,
        extra_args: Sequence[str] = (),
        include_dirs: Sequence[Path] = (),
        ccbin: Optional[str] = None,
        nvcc: str = NVCC,
    ):
        """Initialize the builder.

        Args:
            compute_cap: Validated compute capability (e.g. 86)
            extra_args: Caller flags, appended in the given order
            include_dirs: Header search directories (deduplicated and sorted here)
            ccbin: Host compiler override; adds -allow-unsupported-compiler -ccbin
            nvcc: nvcc executable name or path
        """
        self.compute_cap = compute_cap
        self.extra_args = list(extra_args)
        self.include_dirs = sorted(set(Path(d) for d in include_dirs))
        self.ccbin = ccbin
        self.nvcc = nvcc

    @property
    def arch_flag(self) -> str:
        return f"--gpu-architecture=sm_{self.compute_cap}"

    def include_flags(self) -> list[str]:
        return [f"-I{d}" for d in self.include_dirs]

    def ccbin_flags(self) -> list[str]:
        if self.ccbin is None:
            return []
        return ["-allow-unsupported-compiler", "-ccbin", self.ccbin]

    def ptx_command(self, unit: KernelUnit) -> list[str]:
        """Command that writes ``<stem>.ptx`` into the unit's output directory."""
        cmd = [
            self.nvcc,
            self.arch_flag,
            "--ptx",
            "--default-stream", "per-thread",
            "--output-directory", str(unit.output.parent),
        ]
        cmd.extend(self.extra_args)
        cmd.extend(self.include_flags())
        cmd.extend(self.ccbin_flags())
        cmd.append(str(unit.source))
        return cmd

    def object_command(self, unit: KernelUnit) -> list[str]:
        """Command that compiles the unit into a relocatable object."""
        cmd = [
            self.nvcc,
            self.arch_flag,
            "-c",
            "-o", str(unit.output),
            "--default-stream", "per-thread",
        ]
        cmd.extend(self.extra_args)
        cmd.extend(self.include_flags())
        cmd.extend(self.ccbin_flags())
        cmd.append(str(unit.source))
        return cmd

    def archive_command(self, out_file: Path, objects: Sequence[Path]) -> list[str]:
        """Command that archives compiled objects into one library."""
        return [self.nvcc, "--lib", "-o", str(out_file)] + [str(o) for o in objects]
