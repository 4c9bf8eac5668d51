"""
Kernel build orchestration.

Runs the incremental build for a resolved BuildConfiguration:

    1. Stage include headers into the output directory
    2. Decide which kernel units are stale
    3. Compile the stale units (and archive them, in library mode)
    4. Report whether the artifact set changed

PTX mode returns Bindings for the caller to write; library mode returns the
BuildReport after replacing the archive.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from ..errors import ConfigurationError
from ..output import TimedLogger, log_build_complete, log_detail, log_kernel, log_phase, log_warning
from .bindings import Bindings
from .build_context import BuildConfiguration
from .dispatcher import BuildDispatcher, BuildReport, count_artifacts
from .nvcc import NvccCommandBuilder
from .staleness import library_is_stale, stale_units
from .units import OBJECT_EXTENSION, PTX_EXTENSION, make_units, stage_includes

logger = logging.getLogger(__name__)


class Builder:
    """Builds kernels for one resolved configuration.

    Usage:
        config = BuildSettings.from_env().resolve()
        bindings = Builder(config).build_ptx()
        bindings.write("kernels.py")
    """

    def __init__(self, config: BuildConfiguration, verbose: bool = False, show_progress: bool = False):
        """
        Initialize the builder.

        Args:
            config: Resolved build configuration
            verbose: Log per-kernel details
            show_progress: Show a progress bar while compiling
        """
        self.config = config
        self.verbose = verbose
        self.show_progress = show_progress
        self.last_report: Optional[BuildReport] = None

    def _prepare(self) -> NvccCommandBuilder:
        """Create the output directory, stage headers and build the command factory."""
        out_dir = self.config.out_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        include_dirs = stage_includes(self.config.include_paths, out_dir)
        if include_dirs:
            log_detail(f"Include directories: {', '.join(str(d) for d in include_dirs)}", verbose_only=True)

        return NvccCommandBuilder(
            compute_cap=self.config.compute_cap,
            extra_args=self.config.extra_args,
            include_dirs=include_dirs,
            ccbin=self.config.ccbin,
        )

    def _dispatcher(self, commands: NvccCommandBuilder) -> BuildDispatcher:
        return BuildDispatcher(commands, num_jobs=self.config.num_jobs, show_progress=self.show_progress)

    def build_ptx(self) -> Bindings:
        """Compile stale kernels to PTX.

        Returns:
            Bindings for every configured kernel, marked changed when any kernel
            was compiled or fewer kernels are configured than PTX files exist

        Raises:
            ConfigurationError: If the CUDA root is unknown
            ProcessLaunchError: If nvcc cannot be started
            CompileError: If a kernel fails to compile
        """
        start_time = time.time()
        config = self.config
        if config.cuda_root is None:
            raise ConfigurationError(
                "Could not find CUDA in standard locations, set it manually using "
                "BuildSettings.cuda_root or CUDA_PATH"
            )
        logger.info(f"CUDA include dir: {config.cuda_include_dir}")

        log_phase(1, 4, "Preparing output directory...")
        commands = self._prepare()
        units = make_units(config.kernel_paths, config.out_dir, PTX_EXTENSION)

        log_phase(2, 4, "Checking kernel staleness...")
        stale = stale_units(units)
        stale_set = set(stale)
        for unit in units:
            log_kernel(PTX_EXTENSION, unit.source.name, cached=unit not in stale_set, verbose_only=not self.verbose)

        if stale:
            with TimedLogger(f"Compiling {len(stale)} of {len(units)} kernels for {config.arch}", phase=(3, 4)):
                compiled = self._dispatcher(commands).compile_ptx(stale)
        else:
            log_phase(3, 4, "All kernels up to date")
            compiled = []

        report = BuildReport(
            compiled=tuple(compiled),
            unit_count=len(units),
            artifact_count=count_artifacts(config.out_dir, PTX_EXTENSION),
        )
        self.last_report = report

        log_phase(4, 4, "Bindings changed" if report.changed else "Bindings unchanged")
        log_build_complete(time.time() - start_time, verbose_only=True)
        return Bindings(changed=report.changed, paths=[u.source for u in units], extension=PTX_EXTENSION)

    def build_lib(self, out_file: Union[str, Path]) -> BuildReport:
        """Compile every kernel to an object and archive them into one library.

        Staleness is judged once for the whole batch against out_file; when it
        is stale every unit is recompiled before archiving.

        Raises:
            ProcessLaunchError: If nvcc cannot be started
            CompileError: If a kernel fails to compile
            LinkError: If archiving fails
        """
        start_time = time.time()
        out_file = Path(out_file)
        config = self.config

        log_phase(1, 4, "Preparing output directory...")
        commands = self._prepare()
        out_file.parent.mkdir(parents=True, exist_ok=True)
        units = make_units(config.kernel_paths, config.out_dir, OBJECT_EXTENSION)

        log_phase(2, 4, f"Checking library {out_file.name}...")
        compiled = []
        if not units:
            log_warning("No kernel sources configured; nothing to archive")
        elif library_is_stale([u.source for u in units], out_file):
            dispatcher = self._dispatcher(commands)
            with TimedLogger(f"Compiling {len(units)} kernels for {config.arch}", phase=(3, 4)):
                compiled = dispatcher.compile_objects(units)

            log_phase(4, 4, f"Archiving {out_file.name}...")
            dispatcher.archive(out_file, [u.output for u in units])
        else:
            log_detail(f"{out_file.name} is up to date")

        report = BuildReport(
            compiled=tuple(compiled),
            unit_count=len(units),
            artifact_count=count_artifacts(config.out_dir, OBJECT_EXTENSION),
        )
        self.last_report = report
        log_build_complete(time.time() - start_time, verbose_only=True)
        return report
