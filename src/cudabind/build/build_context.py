"""Build Context - settings and resolved configuration.

This module defines:
- BuildSettings: the configuration surface as supplied by a build script or CLI
- BuildConfiguration: the validated, immutable configuration used by a build

Design:
    BuildSettings is filled in by plain field assignment (or from_env()) and
    validated exactly once by resolve(). resolve() fixes the compute
    capability, checks that kernel sources exist and settles the concurrency
    bound. BuildConfiguration then flows unchanged through staleness
    tracking, dispatch and binding emission.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .. import env
from ..discovery import default_includes, default_kernels, find_cuda_root
from ..errors import ConfigurationError, KernelPathError
from .capability import resolve_compute_cap

logger = logging.getLogger(__name__)


@dataclass
class BuildSettings:
    """Unvalidated build settings.

    Attributes:
        out_dir: Directory artifacts and staged headers are written to
        kernel_paths: Kernel sources (``.cu``), in binding order
        include_paths: Header files (``.cuh``) to stage into out_dir
        extra_args: Extra nvcc flags, passed in the given order
        compute_cap: Architecture override ("86", "8.6" or 86); None queries the device
        ccbin: Host compiler override for nvcc
        cuda_root: CUDA installation root (required for PTX builds)
        num_jobs: Concurrency override; None uses CUDABIND_NUM_JOBS or physical cores
    """

    out_dir: Optional[Path] = None
    kernel_paths: list[Path] = field(default_factory=list)
    include_paths: list[Path] = field(default_factory=list)
    extra_args: list[str] = field(default_factory=list)
    compute_cap: Optional[Union[str, int]] = None
    ccbin: Optional[str] = None
    cuda_root: Optional[Path] = None
    num_jobs: Optional[int] = None

    @classmethod
    def from_env(cls, project_dir: Optional[Path] = None) -> "BuildSettings":
        """Create settings from the environment and default path discovery.

        Args:
            project_dir: Root that ``src/**/*.cu`` and ``src/**/*.cuh`` are searched in

        Environment:
            CUDABIND_OUT_DIR, CUDA_COMPUTE_CAP, NVCC_CCBIN and the CUDA root
            variables. CUDABIND_NUM_JOBS is read later, by resolve().
        """
        return cls(
            out_dir=env.get_out_dir(),
            kernel_paths=default_kernels(project_dir),
            include_paths=default_includes(project_dir),
            compute_cap=env.get_compute_cap_override(),
            ccbin=env.get_ccbin(),
            cuda_root=find_cuda_root(),
        )

    def resolve(self) -> "BuildConfiguration":
        """Validate the settings and produce an immutable configuration.

        Raises:
            ConfigurationError: If out_dir is unset, num_jobs is invalid, or the
                compute capability cannot be resolved or is unsupported
            KernelPathError: If any kernel source does not exist
            ProcessLaunchError: If nvidia-smi or nvcc cannot be started
        """
        if self.out_dir is None:
            raise ConfigurationError(
                f"Output directory is not set. Pass out_dir or set {env.ENV_OUT_DIR}."
            )

        kernel_paths = tuple(Path(p) for p in self.kernel_paths)
        missing = [p for p in kernel_paths if not p.exists()]
        if missing:
            raise KernelPathError(missing)

        if self.num_jobs is not None:
            num_jobs = env.parse_num_jobs(self.num_jobs)
        else:
            num_jobs = env.get_num_jobs()

        compute_cap = resolve_compute_cap(self.compute_cap)

        config = BuildConfiguration(
            compute_cap=compute_cap,
            out_dir=Path(self.out_dir),
            kernel_paths=kernel_paths,
            include_paths=tuple(Path(p) for p in self.include_paths),
            extra_args=tuple(self.extra_args),
            ccbin=self.ccbin,
            cuda_root=Path(self.cuda_root) if self.cuda_root is not None else None,
            num_jobs=num_jobs,
        )
        logger.debug(f"Resolved build configuration: {config}")
        return config


@dataclass(frozen=True)
class BuildConfiguration:
    """Validated build configuration, created by BuildSettings.resolve().

    Attributes:
        compute_cap: Validated compute capability (e.g. 86)
        out_dir: Output directory
        kernel_paths: Existing kernel sources, in binding order
        include_paths: Header files to stage
        extra_args: Extra nvcc flags, in order
        ccbin: Host compiler override, if any
        cuda_root: CUDA installation root, if found
        num_jobs: Maximum concurrent nvcc processes
    """

    compute_cap: int
    out_dir: Path
    kernel_paths: tuple[Path, ...]
    include_paths: tuple[Path, ...]
    extra_args: tuple[str, ...]
    ccbin: Optional[str]
    cuda_root: Optional[Path]
    num_jobs: int

    @property
    def arch(self) -> str:
        """Architecture name as nvcc spells it (e.g. 'sm_86')."""
        return f"sm_{self.compute_cap}"

    @property
    def cuda_include_dir(self) -> Optional[Path]:
        return self.cuda_root / "include" if self.cuda_root is not None else None
