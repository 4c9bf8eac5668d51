"""Pytest configuration and shared fixtures for cudabind tests.

Also works around Python 3.13 closing stdout/stderr during capture teardown
(https://github.com/pytest-dev/pytest/issues/11439).
"""

import os
import sys
import warnings
from pathlib import Path

import pytest

from cudabind import env, output

# Suppress ResourceWarnings from file cleanup in Python 3.13
if sys.version_info >= (3, 13):
    warnings.filterwarnings("ignore", category=ResourceWarning)

_CUDABIND_ENV_VARS = (
    env.ENV_COMPUTE_CAP,
    env.ENV_CCBIN,
    env.ENV_NUM_JOBS,
    env.ENV_OUT_DIR,
    env.ENV_LOG_LEVEL,
) + env.CUDA_ROOT_ENV_VARS


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Run every test without the developer's CUDA/cudabind environment."""
    for name in _CUDABIND_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    output.set_verbose(False)
    yield
    output.set_verbose(False)


@pytest.fixture(autouse=True)
def _restore_stdio():  # noqa: PT004
    """Ensure stdout/stderr are always restored after each test."""
    yield

    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__


def set_mtime(path: Path, mtime_ns: int) -> None:
    """Set both atime and mtime of a file, in nanoseconds."""
    os.utime(path, ns=(mtime_ns, mtime_ns))


# Base timestamp for deterministic mtimes (2024-01-01T00:00:00Z)
BASE_NS = 1_704_067_200 * 1_000_000_000
SECOND_NS = 1_000_000_000


@pytest.fixture
def kernel_tree(tmp_path):
    """Project with three kernels and one header under src/.

    Returns:
        (project_dir, kernel_paths, out_dir)
    """
    project = tmp_path / "project"
    src = project / "src"
    (src / "ops").mkdir(parents=True)

    kernels = [src / "attention.cu", src / "flash.attention.cu", src / "ops" / "softmax.cu"]
    for kernel in kernels:
        kernel.write_text(f"// {kernel.stem}\n__global__ void k() {{}}\n", encoding="utf-8")
        set_mtime(kernel, BASE_NS)

    header = src / "common.cuh"
    header.write_text("#pragma once\n", encoding="utf-8")

    return project, kernels, tmp_path / "out"
