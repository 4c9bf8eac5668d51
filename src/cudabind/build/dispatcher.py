"""Build dispatcher.

Compiles stale kernel units with bounded parallelism and, in library mode,
archives the resulting objects into one library afterwards.

Failure Handling:
    - nvcc missing from PATH -> ProcessLaunchError (with the attempted command)
    - nvcc exits non-zero while compiling -> CompileError (command, stdout, stderr)
    - nvcc exits non-zero while archiving -> LinkError (same diagnostics)

There is no partial success: the first failing unit (in unit order) aborts
the build.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from tqdm import tqdm

from ..errors import CompileError, LinkError, ProcessLaunchError
from ..subprocess_utils import safe_run
from .compilation_queue import CompilationJob, CompilationJobQueue, JobState
from .nvcc import NvccCommandBuilder
from .units import KernelUnit

logger = logging.getLogger(__name__)

NVCC_MISSING_HINT = "nvcc failed to start. Ensure that you have CUDA installed and that `nvcc` is in your PATH."

# Job outcome states that advance the progress bar
_FINISHED_STATES = (JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True)
class BuildReport:
    """Outcome of one build.

    Attributes:
        compiled: Units (re)compiled in this run, in unit order
        unit_count: Number of configured units
        artifact_count: Artifacts of this kind present in the output directory after the build
    """

    compiled: tuple[KernelUnit, ...]
    unit_count: int
    artifact_count: int

    @property
    def changed(self) -> bool:
        """True if anything was compiled or units were removed since the last build."""
        return bool(self.compiled) or self.unit_count < self.artifact_count


class BuildDispatcher:
    """Runs nvcc for each stale unit with at most ``num_jobs`` processes at once."""

    def __init__(self, commands: NvccCommandBuilder, num_jobs: int, show_progress: bool = False):
        """Initialize the dispatcher.

        Args:
            commands: Command builder for the resolved configuration
            num_jobs: Maximum concurrent compiler processes
            show_progress: Show a tqdm progress bar while compiling
        """
        self.commands = commands
        self.num_jobs = num_jobs
        self.show_progress = show_progress

    def compile_ptx(self, units: Sequence[KernelUnit]) -> list[KernelUnit]:
        """Compile units to PTX. Returns the compiled units."""
        return self._compile(units, self.commands.ptx_command, "Compiling PTX")

    def compile_objects(self, units: Sequence[KernelUnit]) -> list[KernelUnit]:
        """Compile units to relocatable objects. Returns the compiled units."""
        return self._compile(units, self.commands.object_command, "Compiling objects")

    def _compile(
        self,
        units: Sequence[KernelUnit],
        make_command: Callable[[KernelUnit], list[str]],
        description: str,
    ) -> list[KernelUnit]:
        if not units:
            logger.debug("No units to compile")
            return []

        jobs = [
            CompilationJob(job_id=f"{i}:{unit.name}", unit=unit, compiler_cmd=make_command(unit))
            for i, unit in enumerate(units)
        ]
        logger.info(f"{description}: {len(jobs)} units with {self.num_jobs} workers")

        with tqdm(
            total=len(jobs),
            desc=description,
            unit="kernel",
            ncols=80,
            leave=False,
            disable=not self.show_progress,
        ) as pbar:

            def _on_progress(job: CompilationJob) -> None:
                if job.state in _FINISHED_STATES:
                    pbar.update(1)

            with CompilationJobQueue(self.num_jobs, progress_callback=_on_progress) as queue:
                for job in jobs:
                    queue.submit_job(job)
                failed = queue.drain()

        if failed is not None:
            raise self._error_for(failed)

        return list(units)

    @staticmethod
    def _error_for(job: CompilationJob) -> Exception:
        if job.launch_error is not None:
            return ProcessLaunchError(job.compiler_cmd, f"{NVCC_MISSING_HINT} ({job.launch_error})")
        return CompileError(
            job.compiler_cmd,
            job.result_code if job.result_code is not None else -1,
            job.stdout,
            job.stderr,
            source=job.unit.source,
        )

    def archive(self, out_file: Path, objects: Sequence[Path]) -> Path:
        """Archive compiled objects into a single library.

        Runs only after every compilation job has finished.

        Raises:
            ProcessLaunchError: If nvcc cannot be started
            LinkError: If nvcc exits non-zero
        """
        cmd = self.commands.archive_command(out_file, objects)
        logger.info(f"Archiving {len(objects)} objects into {out_file}")
        logger.debug(f"Archive command: {' '.join(cmd)}")
        try:
            result = safe_run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace")
        except OSError as e:
            raise ProcessLaunchError(cmd, f"{NVCC_MISSING_HINT} ({e})") from None

        if result.returncode != 0:
            raise LinkError(cmd, result.returncode, result.stdout or "", result.stderr or "")
        return out_file


def count_artifacts(out_dir: Path, extension: str) -> int:
    """Count artifacts with the given extension anywhere under out_dir."""
    return sum(1 for p in out_dir.rglob(f"*.{extension}") if p.is_file())
