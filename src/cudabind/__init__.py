"""cudabind - Incremental CUDA kernel builds for Python projects.

Compiles CUDA kernel sources with nvcc, either to PTX text with a generated
bindings module, or to a single static library. Only kernels whose sources
changed since the last build are recompiled.

Example:
    >>> from pathlib import Path
    >>> from cudabind import Builder, BuildSettings
    >>>
    >>> settings = BuildSettings.from_env()
    >>> settings.out_dir = Path("build/kernels")
    >>> bindings = Builder(settings.resolve()).build_ptx()
    >>> bindings.write("mypkg/kernels.py")
"""

from cudabind.artifacts import load_artifact
from cudabind.build import Bindings, Builder, BuildConfiguration, BuildReport, BuildSettings
from cudabind.errors import (
    CompileError,
    ConfigurationError,
    CudaBindError,
    KernelPathError,
    LinkError,
    ProcessLaunchError,
    UnsupportedArchitectureError,
)

__version__ = "0.1.0"

__all__ = [
    "Bindings",
    "BuildConfiguration",
    "BuildReport",
    "BuildSettings",
    "Builder",
    "CompileError",
    "ConfigurationError",
    "CudaBindError",
    "KernelPathError",
    "LinkError",
    "ProcessLaunchError",
    "UnsupportedArchitectureError",
    "load_artifact",
]
