"""
Compilation Job Queue - bounded parallel nvcc invocations.

Each job runs one external compiler process to completion on a worker
thread. The queue is created for a single dispatch and shut down at the end
of it; there is no process-wide pool.

Join discipline (spawn-then-drain):
    All jobs are submitted up front and the executor keeps at most
    ``num_workers`` processes running. Results are then collected in
    submission order. The first failure in that order stops the batch:
    jobs that have not started are cancelled, jobs already running are
    drained to completion, and the failing job is returned to the caller.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Callable, Optional

from ..subprocess_utils import safe_run
from .units import KernelUnit

logger = logging.getLogger(__name__)


class JobState(Enum):
    """State of a compilation job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class CompilationJob:
    """Single compilation job and its outcome."""

    job_id: str
    unit: KernelUnit
    compiler_cmd: list[str]  # Full command including compiler executable
    state: JobState = JobState.PENDING
    result_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    launch_error: Optional[str] = None  # Set when the process never started
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def duration(self) -> Optional[float]:
        """Get job duration in seconds."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def succeeded(self) -> bool:
        return self.state == JobState.COMPLETED


class CompilationJobQueue:
    """Worker pool that runs compilation jobs with bounded concurrency.

    Usage:
        with CompilationJobQueue(num_workers=8) as queue:
            for job in jobs:
                queue.submit_job(job)
            failed = queue.drain()
    """

    def __init__(self, num_workers: int, progress_callback: Optional[Callable[[CompilationJob], None]] = None):
        """Initialize compilation queue.

        Args:
            num_workers: Maximum number of concurrent compiler processes
            progress_callback: Called on the worker thread when a job starts and when it finishes
        """
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        self.num_workers = num_workers
        self.progress_callback = progress_callback
        self.jobs: dict[str, CompilationJob] = {}
        self.jobs_lock = threading.Lock()
        self._order: list[str] = []
        self._futures: dict[str, Future] = {}
        self._executor: Optional[ThreadPoolExecutor] = None
        logger.debug(f"CompilationJobQueue initialized with {self.num_workers} workers")

    def start(self) -> None:
        """Start the worker pool."""
        if self._executor is not None:
            logger.warning("CompilationJobQueue already running")
            return
        self._executor = ThreadPoolExecutor(max_workers=self.num_workers, thread_name_prefix="nvcc")

    def __enter__(self) -> "CompilationJobQueue":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        self.shutdown(cancel_pending=exc_type is not None)

    def submit_job(self, job: CompilationJob) -> str:
        """Submit compilation job to the pool.

        Args:
            job: Compilation job to submit

        Returns:
            Job ID
        """
        if self._executor is None:
            raise RuntimeError("CompilationJobQueue is not running")

        logger.debug(f"Submitting job {job.job_id}: {' '.join(job.compiler_cmd)}")
        with self.jobs_lock:
            self.jobs[job.job_id] = job
            self._order.append(job.job_id)
        self._futures[job.job_id] = self._executor.submit(self._execute_job, job)
        return job.job_id

    def _notify(self, job: CompilationJob) -> None:
        if self.progress_callback is not None:
            self.progress_callback(job)

    def _execute_job(self, job: CompilationJob) -> None:
        """Run one compiler process to completion and record its outcome."""
        with self.jobs_lock:
            job.state = JobState.RUNNING
            job.start_time = time.time()
        self._notify(job)

        try:
            result = safe_run(
                job.compiler_cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            with self.jobs_lock:
                job.state = JobState.FAILED
                job.launch_error = str(e)
                job.end_time = time.time()
            logger.error(f"Job {job.job_id} failed to start: {e}")
            self._notify(job)
            return

        with self.jobs_lock:
            job.result_code = result.returncode
            job.stdout = result.stdout or ""
            job.stderr = result.stderr or ""
            job.end_time = time.time()
            job.state = JobState.COMPLETED if result.returncode == 0 else JobState.FAILED

        if job.succeeded:
            logger.debug(f"Job {job.job_id} completed in {job.duration() or 0.0:.2f}s")
        else:
            logger.warning(f"Job {job.job_id} failed with exit code {result.returncode}: {job.unit.source.name}")
        self._notify(job)

    def drain(self) -> Optional[CompilationJob]:
        """Wait for jobs in submission order.

        Returns:
            The first failed job in submission order, or None if all succeeded.
            After a failure, pending jobs are cancelled and running jobs are
            waited for before returning.
        """
        for job_id in list(self._order):
            self._futures[job_id].result()
            job = self.jobs[job_id]
            if not job.succeeded:
                cancelled = self.cancel_pending()
                logger.info(f"Job {job_id} failed; cancelled {cancelled} pending jobs, draining running jobs")
                self.shutdown()
                return job
        return None

    def cancel_pending(self) -> int:
        """Cancel jobs that have not started yet.

        Returns:
            Number of jobs cancelled
        """
        cancelled = 0
        for job_id, future in self._futures.items():
            if future.cancel():
                with self.jobs_lock:
                    self.jobs[job_id].state = JobState.CANCELLED
                cancelled += 1
        return cancelled

    def get_statistics(self) -> dict[str, int]:
        """Get job counts by state."""
        with self.jobs_lock:
            stats = {"total_jobs": len(self.jobs)}
            for state in JobState:
                stats[state.value] = sum(1 for j in self.jobs.values() if j.state == state)
        return stats

    def shutdown(self, cancel_pending: bool = False) -> None:
        """Shut down the pool, waiting for running processes to exit.

        Args:
            cancel_pending: Cancel jobs that have not started before waiting
        """
        if self._executor is None:
            return
        if cancel_pending:
            self.cancel_pending()
        self._executor.shutdown(wait=True)
        self._executor = None
        logger.debug(f"CompilationJobQueue shut down: {self.get_statistics()}")
