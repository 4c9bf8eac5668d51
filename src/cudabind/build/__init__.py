"""
Kernel build components for cudabind.

This package provides:
- Compute capability resolution (nvidia-smi / nvcc)
- Per-kernel and per-library staleness tracking
- Parallel nvcc dispatch and archiving
- Bindings module generation
- Build orchestration
"""

from .bindings import Bindings
from .build_context import BuildConfiguration, BuildSettings
from .dispatcher import BuildDispatcher, BuildReport
from .orchestrator import Builder

__all__ = [
    "Bindings",
    "BuildConfiguration",
    "BuildDispatcher",
    "BuildReport",
    "BuildSettings",
    "Builder",
]
